"""Pydantic models for Record API entries and the configuration document.

A :class:`Config` document holds an ordered tuple of
:class:`RecordApiConfig` entries plus any number of unrelated settings,
which are carried through untouched. Both models are frozen: document
operations always produce new values.

YAML shape::

    version: "1"
    record_apis:
      - name: posts
        table_name: posts
        acl_world: [read]
        acl_authenticated: [create, read, update, delete]
        read_access_rule: null
        create_access_rule: "_REQ_.owner = _USER_.id"
        update_access_rule: "_ROW_.owner = _USER_.id"
        delete_access_rule: "_ROW_.owner = _USER_.id"
        schema_access_rule: null
        conflict_resolution: undefined
        autofill_missing_user_id_columns: false
    auth:
      token_ttl_seconds: 3600
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator

from record_api_settings.errors import (
    IllegalFieldError,
    ImmutableFieldError,
)
from record_api_settings.permissions.flags import (
    PermissionFlag,
    Resource,
    ResourceKind,
    ensure_legal_flags,
)
from record_api_settings.rules.validator import AccessRuleKind, access_rules_for

UNDEFINED = "undefined"


class ConflictResolutionStrategy(str, Enum):
    """How a table-backed Record API resolves write conflicts."""

    ABORT = "abort"
    ROLLBACK = "rollback"
    FAIL = "fail"
    IGNORE = "ignore"
    REPLACE = "replace"


_STRATEGY_LABELS: dict[ConflictResolutionStrategy | None, str] = {
    ConflictResolutionStrategy.ABORT: "Abort",
    ConflictResolutionStrategy.ROLLBACK: "Rollback",
    ConflictResolutionStrategy.FAIL: "Fail",
    ConflictResolutionStrategy.IGNORE: "Ignore",
    ConflictResolutionStrategy.REPLACE: "Replace",
    None: "Undefined",
}


def conflict_strategy_label(strategy: ConflictResolutionStrategy | None) -> str:
    """Return the display label for ``strategy``; unset maps to ``"Undefined"``."""
    return _STRATEGY_LABELS[strategy]


def _serialize_flags(flags: frozenset[PermissionFlag]) -> list[str]:
    return [f.value for f in PermissionFlag if f in flags]


class RecordApiConfig(BaseModel):
    """Record API settings for a single table or view.

    Attributes
    ----------
    name:
        API-facing identifier, unique within a document.
    table_name:
        Backing table or view. Fixed once the entry exists.
    acl_world / acl_authenticated:
        Flags granted to anonymous and signed-in callers.
    read_access_rule ... schema_access_rule:
        Optional boolean SQL expressions gating each operation.
    conflict_resolution:
        Write conflict strategy, tables only. ``None`` is unset.
    autofill_missing_user_id_columns:
        Fill absent user id columns on CREATE with the caller's id.
        Tables only.
    """

    model_config = {"extra": "allow", "frozen": True}

    name: str
    table_name: str
    acl_world: frozenset[PermissionFlag] = Field(default_factory=frozenset)
    acl_authenticated: frozenset[PermissionFlag] = Field(default_factory=frozenset)
    read_access_rule: str | None = None
    create_access_rule: str | None = None
    update_access_rule: str | None = None
    delete_access_rule: str | None = None
    schema_access_rule: str | None = None
    conflict_resolution: ConflictResolutionStrategy | None = None
    autofill_missing_user_id_columns: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Api name missing")
        return value

    @field_validator("table_name")
    @classmethod
    def validate_table_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("table_name must not be empty")
        return value

    @field_validator(
        "read_access_rule",
        "create_access_rule",
        "update_access_rule",
        "delete_access_rule",
        "schema_access_rule",
        mode="before",
    )
    @classmethod
    def blank_rule_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("conflict_resolution", mode="before")
    @classmethod
    def parse_undefined_strategy(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("", UNDEFINED):
                return None
            return lowered
        return value

    @field_serializer("acl_world", "acl_authenticated", when_used="json")
    def serialize_acl(self, flags: frozenset[PermissionFlag]) -> list[str]:
        return _serialize_flags(flags)

    @field_serializer("conflict_resolution", when_used="json")
    def serialize_strategy(self, strategy: ConflictResolutionStrategy | None) -> str:
        return strategy.value if strategy is not None else UNDEFINED

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def default_for(cls, resource: Resource) -> RecordApiConfig:
        """Return a fresh entry for a never-configured ``resource``."""
        return cls(name=resource.name, table_name=resource.name)

    @classmethod
    def build(cls, resource: Resource, **fields: Any) -> RecordApiConfig:
        """Build an entry for ``resource`` and check it against its kind.

        ``name`` and ``table_name`` default to the resource name.

        Raises
        ------
        IllegalPermissionFlagError
            If an ACL holds a flag illegal for the resource kind.
        IllegalFieldError
            If a view entry sets a table-only field.
        pydantic.ValidationError
            If a field value is malformed.
        """
        data: dict[str, Any] = {"name": resource.name, "table_name": resource.name}
        data.update(fields)
        if data["table_name"] != resource.name:
            raise ImmutableFieldError("table_name")
        return cls.model_validate(data).check_against(resource.kind)

    # ------------------------------------------------------------------
    # Kind checks and mutation
    # ------------------------------------------------------------------

    def check_against(self, kind: ResourceKind) -> RecordApiConfig:
        """Ensure every field is legal for ``kind`` and return ``self``."""
        ensure_legal_flags(kind, self.acl_world, acl="acl_world")
        ensure_legal_flags(kind, self.acl_authenticated, acl="acl_authenticated")

        if kind is ResourceKind.VIEW:
            exposed = access_rules_for(kind)
            for rule in AccessRuleKind:
                if rule not in exposed and self.rule(rule) is not None:
                    raise IllegalFieldError(rule.field_name, "views have no write path")
            if self.conflict_resolution is not None:
                raise IllegalFieldError(
                    "conflict_resolution", "views have no write path"
                )
            if self.autofill_missing_user_id_columns:
                raise IllegalFieldError(
                    "autofill_missing_user_id_columns", "views have no write path"
                )
        return self

    def with_changes(self, kind: ResourceKind, **changes: Any) -> RecordApiConfig:
        """Return a copy with ``changes`` applied and re-checked for ``kind``.

        Raises
        ------
        ImmutableFieldError
            If ``changes`` alters ``table_name``.
        IllegalFieldError
            If ``changes`` names an unknown field.
        """
        if "table_name" in changes and changes["table_name"] != self.table_name:
            raise ImmutableFieldError("table_name")
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise IllegalFieldError(", ".join(sorted(unknown)), "unknown field")

        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data).check_against(kind)

    def rule(self, kind: AccessRuleKind) -> str | None:
        """Return the expression stored in the ``kind`` slot."""
        return getattr(self, kind.field_name)

    @property
    def rules(self) -> dict[AccessRuleKind, str | None]:
        return {kind: self.rule(kind) for kind in AccessRuleKind}


class Config(BaseModel):
    """The shared configuration document.

    Only ``record_apis`` is interpreted; every other top-level key is kept
    as-is so that a round trip never loses unrelated settings.
    """

    model_config = {"extra": "allow", "frozen": True}

    version: str = Field(default="1")
    record_apis: tuple[RecordApiConfig, ...] = Field(default_factory=tuple)

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, value: object) -> object:
        if isinstance(value, (int, float)):
            return str(value)
        return value
