"""Exception hierarchy for Record API settings.

Every error is scoped to a single edit-session call; none of them is fatal
to the surrounding process.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from record_api_settings.permissions.flags import PermissionFlag, ResourceKind
    from record_api_settings.rules.validator import AccessRuleKind


class RecordApiError(Exception):
    """Base class for all Record API settings errors."""


class RuleSyntaxError(RecordApiError, ValueError):
    """Raised by an expression parser when an access rule does not parse."""


class RuleValidationError(RecordApiError, ValueError):
    """Raised when an access rule expression fails validation.

    Attributes
    ----------
    rule:
        The rule slot the expression was written for.
    diagnostic:
        Human-readable description of the problem.
    """

    def __init__(self, rule: "AccessRuleKind", diagnostic: str) -> None:
        self.rule = rule
        self.diagnostic = diagnostic
        super().__init__(f"Invalid {rule.value} access rule: {diagnostic}")


class IllegalPermissionFlagError(RecordApiError, ValueError):
    """Raised when an ACL holds a flag the resource kind does not permit.

    Attributes
    ----------
    kind:
        The resource kind the entry targets.
    acl:
        Name of the offending ACL (``"acl_world"`` or ``"acl_authenticated"``).
    flags:
        The flags outside the legal set.
    """

    def __init__(
        self,
        kind: "ResourceKind",
        acl: str,
        flags: Iterable["PermissionFlag"],
    ) -> None:
        self.kind = kind
        self.acl = acl
        self.flags = frozenset(flags)
        names = ", ".join(sorted(f.name for f in self.flags))
        super().__init__(f"{acl} contains flags not permitted for a {kind.value}: {names}")


class IllegalFieldError(RecordApiError, ValueError):
    """Raised when a field is set that the resource kind does not support."""

    def __init__(self, field_name: str, message: str) -> None:
        self.field_name = field_name
        super().__init__(f"{field_name}: {message}")


class ImmutableFieldError(RecordApiError, ValueError):
    """Raised on an attempt to change a field that is fixed after creation."""

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(f"{field_name} cannot be changed once an entry targets a resource")


class InvalidEntryError(RecordApiError, ValueError):
    """Raised when an entry is structurally unfit for submission."""


class MissingBaseConfigurationError(RecordApiError):
    """Raised when the store has no current document to mutate against."""


class ConfigStoreError(RecordApiError):
    """Raised by a configuration store on read or write failure."""


class PersistenceError(RecordApiError):
    """Raised when persisting a document fails; the previous document stays intact."""


class ConfigDocumentError(RecordApiError, ValueError):
    """Raised when a configuration document is malformed or invalid.

    Attributes
    ----------
    config_path:
        The path to the document that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


class InvalidTransitionError(RecordApiError):
    """Raised when an edit session is asked for a transition its state forbids."""
