"""YAML loader for configuration documents with Pydantic v2 validation.

Example
-------
>>> loader = ConfigLoader()
>>> config = loader.load_string("record_apis: []")
>>> config.record_apis
()
"""
from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

import yaml
from pydantic import ValidationError

from record_api_settings.config.models import Config
from record_api_settings.errors import ConfigDocumentError

logger = logging.getLogger(__name__)

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1", "1.0"])


class ConfigLoader:
    """Loads, validates and serializes :class:`Config` documents."""

    def load(self, config_path: str | Path) -> Config:
        """Load and validate a YAML document from disk.

        Raises
        ------
        FileNotFoundError
            When the file does not exist.
        ConfigDocumentError
            When the YAML cannot be parsed or fails validation.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config document not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigDocumentError(
                f"Failed to parse YAML: {exc}", str(config_path)
            ) from exc

        config = self.load_dict(raw, config_path=str(config_path))
        logger.info(
            "Loaded %d record API(s) from %s", len(config.record_apis), config_path
        )
        return config

    def load_string(self, yaml_content: str, config_path: str | None = None) -> Config:
        """Load and validate a YAML string."""
        try:
            raw = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as exc:
            raise ConfigDocumentError(
                f"Failed to parse YAML string: {exc}", config_path
            ) from exc
        return self.load_dict(raw, config_path=config_path)

    def load_dict(self, raw: object, config_path: str | None = None) -> Config:
        """Validate an already-parsed document."""
        if not isinstance(raw, dict):
            raise ConfigDocumentError(
                "Config document must be a YAML mapping (dict).", config_path
            )

        try:
            config = Config.model_validate(raw)
        except ValidationError as exc:
            raise ConfigDocumentError(str(exc), config_path) from exc

        if config.version not in _SUPPORTED_VERSIONS:
            raise ConfigDocumentError(
                f"Unsupported config version {config.version!r}. "
                f"Supported: {sorted(_SUPPORTED_VERSIONS)}.",
                config_path,
            )

        duplicates = sorted(
            name
            for name, count in Counter(api.name for api in config.record_apis).items()
            if count > 1
        )
        if duplicates:
            raise ConfigDocumentError(
                f"Record API names must be unique; duplicated: {duplicates}",
                config_path,
            )
        return config

    def dump(self, config: Config) -> str:
        """Serialize ``config`` to YAML, preserving key order."""
        return yaml.safe_dump(
            config.model_dump(mode="json"),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    def defaults(self) -> Config:
        """Return an empty document."""
        return Config()
