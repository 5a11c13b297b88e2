"""Pure operations over a configuration document.

Lookups key on ``table_name`` while :func:`upsert_record_api` keys on
``name``. Renaming an API and upserting therefore appends a second entry
for the same table rather than replacing the first one; :func:`find_record_api`
keeps returning the first entry in scan order. :func:`remove_record_apis`
removes by ``table_name`` exhaustively and clears every such entry.
:func:`list_record_apis_for` exposes all entries for a table so callers can
detect the duplicate.

None of these functions mutates its input.

Example
-------
>>> from record_api_settings.config.models import Config, RecordApiConfig
>>> doc = upsert_record_api(Config(), RecordApiConfig(name="t", table_name="t"))
>>> find_record_api(doc, "t").name
't'
>>> find_record_api(remove_record_apis(doc, "t"), "t") is None
True
"""
from __future__ import annotations

import logging

from record_api_settings.config.models import (
    Config,
    RecordApiConfig,
    conflict_strategy_label,
)

logger = logging.getLogger(__name__)

__all__ = [
    "conflict_strategy_label",
    "find_record_api",
    "list_record_apis_for",
    "remove_record_apis",
    "upsert_record_api",
]


def find_record_api(document: Config | None, table_name: str) -> RecordApiConfig | None:
    """Return the first entry backed by ``table_name``, or ``None``.

    Parameters
    ----------
    document:
        The configuration document. ``None`` means no document is loaded.
    table_name:
        Backing table or view name.
    """
    if document is None:
        return None

    for api in document.record_apis:
        if api.table_name == table_name:
            return api
    return None


def list_record_apis_for(document: Config | None, table_name: str) -> list[RecordApiConfig]:
    """Return every entry backed by ``table_name``, in document order."""
    if document is None:
        return []
    return [api for api in document.record_apis if api.table_name == table_name]


def upsert_record_api(document: Config, entry: RecordApiConfig) -> Config:
    """Insert or replace ``entry`` keyed on its ``name``.

    An existing entry with the same name is replaced in place. Otherwise
    ``entry`` is appended.

    Returns
    -------
    Config
        A new document.
    """
    apis = list(document.record_apis)
    for index, api in enumerate(apis):
        if api.name == entry.name:
            apis[index] = entry
            logger.debug("Replaced record API %r at position %d", entry.name, index)
            break
    else:
        apis.append(entry)
        logger.debug("Appended record API %r for %r", entry.name, entry.table_name)

    return document.model_copy(update={"record_apis": tuple(apis)})


def remove_record_apis(document: Config, table_name: str) -> Config:
    """Remove every entry backed by ``table_name``.

    A document without matching entries comes back unchanged.

    Returns
    -------
    Config
        A new document.
    """
    apis = [api for api in document.record_apis if api.table_name != table_name]
    removed = len(document.record_apis) - len(apis)
    if removed:
        logger.debug("Removed %d record API(s) for %r", removed, table_name)
    return document.model_copy(update={"record_apis": tuple(apis)})
