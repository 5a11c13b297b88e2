"""Record API entries, the configuration document, and its stores."""
from __future__ import annotations

from record_api_settings.config.document import (
    find_record_api,
    list_record_apis_for,
    remove_record_apis,
    upsert_record_api,
)
from record_api_settings.config.loader import ConfigLoader
from record_api_settings.config.models import (
    Config,
    ConflictResolutionStrategy,
    RecordApiConfig,
    conflict_strategy_label,
)
from record_api_settings.config.store import (
    ConfigStore,
    InMemoryConfigStore,
    YamlConfigStore,
)

__all__ = [
    "Config",
    "ConfigLoader",
    "ConfigStore",
    "ConflictResolutionStrategy",
    "InMemoryConfigStore",
    "RecordApiConfig",
    "YamlConfigStore",
    "conflict_strategy_label",
    "find_record_api",
    "list_record_apis_for",
    "remove_record_apis",
    "upsert_record_api",
]
