"""record-api-settings: access-control configuration for Record APIs.

A Record API exposes one table or view for reading, writing and schema
inspection. This package models its settings (per-caller permission flags,
row- and request-level access rules, conflict resolution) inside a shared
configuration document, and provides the operations and edit session used
to enable, update and disable it.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import record_api_settings as ras
>>> resource = ras.Resource("posts", ras.ResourceKind.TABLE)
>>> entry = ras.RecordApiConfig.build(resource, acl_world={ras.PermissionFlag.READ})
>>> doc = ras.upsert_record_api(ras.Config(), entry)
>>> ras.find_record_api(doc, "posts").name
'posts'
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from record_api_settings.errors import (
    ConfigDocumentError,
    ConfigStoreError,
    IllegalFieldError,
    IllegalPermissionFlagError,
    ImmutableFieldError,
    InvalidEntryError,
    InvalidTransitionError,
    MissingBaseConfigurationError,
    PersistenceError,
    RecordApiError,
    RuleSyntaxError,
    RuleValidationError,
)

# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------
from record_api_settings.permissions.flags import (
    PermissionFlag,
    Resource,
    ResourceKind,
    ensure_legal_flags,
    legal_flags,
)

# ---------------------------------------------------------------------------
# Access rules
# ---------------------------------------------------------------------------
from record_api_settings.rules.validator import (
    AccessRuleKind,
    AccessRuleValidator,
    RuleValidationResult,
    SqlExpressionParser,
    access_rules_for,
)
from record_api_settings.rules.supersede import (
    DEFAULT_DEBOUNCE_SECONDS,
    SupersedingValidator,
)

# ---------------------------------------------------------------------------
# Configuration document
# ---------------------------------------------------------------------------
from record_api_settings.config.models import (
    Config,
    ConflictResolutionStrategy,
    RecordApiConfig,
    conflict_strategy_label,
)
from record_api_settings.config.document import (
    find_record_api,
    list_record_apis_for,
    remove_record_apis,
    upsert_record_api,
)
from record_api_settings.config.loader import ConfigLoader
from record_api_settings.config.store import (
    ConfigStore,
    InMemoryConfigStore,
    YamlConfigStore,
)

# ---------------------------------------------------------------------------
# Edit session
# ---------------------------------------------------------------------------
from record_api_settings.session.edit_session import (
    EditSession,
    SessionOutcome,
    SessionSignal,
    SessionState,
)

__all__ = [
    "__version__",
    # Errors
    "ConfigDocumentError",
    "ConfigStoreError",
    "IllegalFieldError",
    "IllegalPermissionFlagError",
    "ImmutableFieldError",
    "InvalidEntryError",
    "InvalidTransitionError",
    "MissingBaseConfigurationError",
    "PersistenceError",
    "RecordApiError",
    "RuleSyntaxError",
    "RuleValidationError",
    # Permissions
    "PermissionFlag",
    "Resource",
    "ResourceKind",
    "ensure_legal_flags",
    "legal_flags",
    # Access rules
    "DEFAULT_DEBOUNCE_SECONDS",
    "AccessRuleKind",
    "AccessRuleValidator",
    "RuleValidationResult",
    "SqlExpressionParser",
    "SupersedingValidator",
    "access_rules_for",
    # Configuration document
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
    # Edit session
    "EditSession",
    "SessionOutcome",
    "SessionSignal",
    "SessionState",
]
