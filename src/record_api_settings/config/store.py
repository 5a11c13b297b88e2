"""Configuration stores.

A store owns the current configuration document. The core only ever reads
the whole document and writes the whole document back; there is no
version check, so concurrent writers race and the last write wins.

Example
-------
::

    store = YamlConfigStore(Path("config.yaml"))
    document = store.get()
    store.set(upsert_record_api(document, entry))
"""
from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol

from record_api_settings.config.loader import ConfigLoader
from record_api_settings.config.models import Config
from record_api_settings.errors import ConfigDocumentError, ConfigStoreError

logger = logging.getLogger(__name__)


class ConfigStore(Protocol):
    """Whole-document read/write contract.

    Both methods raise :class:`ConfigStoreError` on transport failure.
    ``get`` returns ``None`` when no document exists yet.
    """

    def get(self) -> Config | None: ...

    def set(self, config: Config) -> None: ...


class InMemoryConfigStore:
    """Holds the document in memory.

    Parameters
    ----------
    config:
        Initial document. ``None`` models a store with no document.
    fail_writes:
        When ``True``, :meth:`set` raises :class:`ConfigStoreError`.
    fail_reads:
        When ``True``, :meth:`get` raises :class:`ConfigStoreError`.
    """

    def __init__(
        self,
        config: Config | None = None,
        fail_writes: bool = False,
        fail_reads: bool = False,
    ) -> None:
        self._config = config
        self.fail_writes = fail_writes
        self.fail_reads = fail_reads
        self.write_count = 0
        self._lock = threading.Lock()

    def get(self) -> Config | None:
        with self._lock:
            if self.fail_reads:
                raise ConfigStoreError("config store unavailable")
            return self._config

    def set(self, config: Config) -> None:
        with self._lock:
            if self.fail_writes:
                raise ConfigStoreError("config store rejected the write")
            self._config = config
            self.write_count += 1


class YamlConfigStore:
    """Stores the document as a YAML file.

    Writes go to a temporary file in the same directory, which is then
    moved over the target with :func:`os.replace`. The stored document is
    either fully replaced or left as it was.

    Parameters
    ----------
    path:
        Location of the YAML document.
    loader:
        Loader used to parse and serialize documents.
    """

    def __init__(self, path: str | Path, loader: ConfigLoader | None = None) -> None:
        self._path = Path(path)
        self._loader = loader or ConfigLoader()
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> Config | None:
        """Return the stored document, or ``None`` if the file is absent."""
        with self._lock:
            if not self._path.exists():
                return None
            try:
                return self._loader.load(self._path)
            except (OSError, ConfigDocumentError) as exc:
                raise ConfigStoreError(f"Failed to read {self._path}: {exc}") from exc

    def set(self, config: Config) -> None:
        """Atomically replace the stored document with ``config``."""
        content = self._loader.dump(config)
        with self._lock:
            tmp_name: str | None = None
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
                )
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(content)
                os.replace(tmp_name, self._path)
                tmp_name = None
            except OSError as exc:
                raise ConfigStoreError(f"Failed to write {self._path}: {exc}") from exc
            finally:
                if tmp_name is not None and os.path.exists(tmp_name):
                    os.unlink(tmp_name)

        logger.info(
            "Wrote %d record API(s) to %s", len(config.record_apis), self._path
        )
