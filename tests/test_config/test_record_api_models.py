"""Tests for RecordApiConfig, Config and conflict strategy labels."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from record_api_settings.config.models import (
    Config,
    ConflictResolutionStrategy,
    RecordApiConfig,
    conflict_strategy_label,
)
from record_api_settings.errors import (
    IllegalFieldError,
    IllegalPermissionFlagError,
    ImmutableFieldError,
)
from record_api_settings.permissions.flags import PermissionFlag, Resource, ResourceKind
from record_api_settings.rules.validator import AccessRuleKind

TABLE = Resource("posts", ResourceKind.TABLE)
VIEW = Resource("v", ResourceKind.VIEW)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestDefaultFor:
    def test_names_follow_resource(self) -> None:
        entry = RecordApiConfig.default_for(TABLE)
        assert entry.name == "posts"
        assert entry.table_name == "posts"

    def test_everything_else_unset(self) -> None:
        entry = RecordApiConfig.default_for(TABLE)
        assert entry.acl_world == frozenset()
        assert entry.acl_authenticated == frozenset()
        assert all(rule is None for rule in entry.rules.values())
        assert entry.conflict_resolution is None
        assert entry.autofill_missing_user_id_columns is False


class TestBuild:
    def test_table_accepts_all_flags(self) -> None:
        entry = RecordApiConfig.build(
            TABLE,
            acl_world=[PermissionFlag.READ],
            acl_authenticated=list(PermissionFlag),
        )
        assert entry.acl_authenticated == frozenset(PermissionFlag)

    def test_view_rejects_create_in_world_acl(self) -> None:
        with pytest.raises(IllegalPermissionFlagError):
            RecordApiConfig.build(VIEW, acl_world={PermissionFlag.CREATE})

    @pytest.mark.parametrize("flag", ["create", "update", "delete"])
    def test_view_rejects_write_flags_in_authenticated_acl(self, flag: str) -> None:
        with pytest.raises(IllegalPermissionFlagError) as exc_info:
            RecordApiConfig.build(VIEW, acl_authenticated=[flag])
        assert exc_info.value.acl == "acl_authenticated"

    def test_view_accepts_read_and_schema(self) -> None:
        entry = RecordApiConfig.build(
            VIEW,
            acl_world=[PermissionFlag.READ],
            acl_authenticated=[PermissionFlag.READ, PermissionFlag.SCHEMA],
            read_access_rule="_ROW_.public = 1",
        )
        assert entry.table_name == "v"

    def test_view_rejects_create_rule(self) -> None:
        with pytest.raises(IllegalFieldError, match="create_access_rule"):
            RecordApiConfig.build(VIEW, create_access_rule="_USER_.id IS NOT NULL")

    def test_view_rejects_conflict_strategy(self) -> None:
        with pytest.raises(IllegalFieldError, match="conflict_resolution"):
            RecordApiConfig.build(VIEW, conflict_resolution=ConflictResolutionStrategy.REPLACE)

    def test_view_rejects_autofill(self) -> None:
        with pytest.raises(IllegalFieldError, match="autofill"):
            RecordApiConfig.build(VIEW, autofill_missing_user_id_columns=True)

    def test_custom_name(self) -> None:
        entry = RecordApiConfig.build(TABLE, name="posts_api")
        assert entry.name == "posts_api"
        assert entry.table_name == "posts"

    def test_mismatched_table_name_rejected(self) -> None:
        with pytest.raises(ImmutableFieldError):
            RecordApiConfig.build(TABLE, table_name="comments")


# ---------------------------------------------------------------------------
# Field validation
# ---------------------------------------------------------------------------


class TestFieldValidation:
    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Api name missing"):
            RecordApiConfig(name="", table_name="t")

    def test_blank_rule_is_unset(self) -> None:
        entry = RecordApiConfig(name="t", table_name="t", read_access_rule="   ")
        assert entry.read_access_rule is None

    @pytest.mark.parametrize("raw", ["undefined", "UNDEFINED", "", None])
    def test_undefined_strategy_is_unset(self, raw: str | None) -> None:
        entry = RecordApiConfig(name="t", table_name="t", conflict_resolution=raw)
        assert entry.conflict_resolution is None

    def test_strategy_parsed_case_insensitively(self) -> None:
        entry = RecordApiConfig(name="t", table_name="t", conflict_resolution="REPLACE")
        assert entry.conflict_resolution is ConflictResolutionStrategy.REPLACE

    def test_unknown_strategy_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RecordApiConfig(name="t", table_name="t", conflict_resolution="merge")

    def test_entries_are_frozen(self) -> None:
        entry = RecordApiConfig(name="t", table_name="t")
        with pytest.raises(ValidationError):
            entry.name = "other"  # type: ignore[misc]


class TestSerialization:
    def test_unset_strategy_serializes_as_undefined(self) -> None:
        data = RecordApiConfig(name="t", table_name="t").model_dump(mode="json")
        assert data["conflict_resolution"] == "undefined"

    def test_acl_serializes_in_flag_order(self) -> None:
        entry = RecordApiConfig(
            name="t",
            table_name="t",
            acl_world=[PermissionFlag.SCHEMA, PermissionFlag.CREATE, PermissionFlag.READ],
        )
        assert entry.model_dump(mode="json")["acl_world"] == ["create", "read", "schema"]

    def test_python_dump_keeps_types(self) -> None:
        entry = RecordApiConfig(name="t", table_name="t")
        data = entry.model_dump()
        assert data["conflict_resolution"] is None
        assert data["acl_world"] == frozenset()


# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------


class TestWithChanges:
    def test_returns_new_entry(self) -> None:
        entry = RecordApiConfig.default_for(TABLE)
        changed = entry.with_changes(ResourceKind.TABLE, acl_world={PermissionFlag.READ})
        assert changed.acl_world == frozenset([PermissionFlag.READ])
        assert entry.acl_world == frozenset()

    def test_table_name_is_immutable(self) -> None:
        entry = RecordApiConfig.default_for(TABLE)
        with pytest.raises(ImmutableFieldError):
            entry.with_changes(ResourceKind.TABLE, table_name="comments")

    def test_same_table_name_is_allowed(self) -> None:
        entry = RecordApiConfig.default_for(TABLE)
        assert entry.with_changes(ResourceKind.TABLE, table_name="posts") == entry

    def test_unknown_field_rejected(self) -> None:
        entry = RecordApiConfig.default_for(TABLE)
        with pytest.raises(IllegalFieldError, match="owner"):
            entry.with_changes(ResourceKind.TABLE, owner="alice")

    def test_view_mutation_rechecks_flags(self) -> None:
        entry = RecordApiConfig.default_for(VIEW)
        with pytest.raises(IllegalPermissionFlagError):
            entry.with_changes(ResourceKind.VIEW, acl_world={PermissionFlag.UPDATE})

    def test_rule_accessor(self) -> None:
        entry = RecordApiConfig(name="t", table_name="t", delete_access_rule="_ROW_.a = 1")
        assert entry.rule(AccessRuleKind.DELETE) == "_ROW_.a = 1"
        assert entry.rules[AccessRuleKind.READ] is None


# ---------------------------------------------------------------------------
# Labels and document
# ---------------------------------------------------------------------------


class TestConflictStrategyLabel:
    def test_unset_is_undefined(self) -> None:
        assert conflict_strategy_label(None) == "Undefined"

    @pytest.mark.parametrize(
        ("strategy", "label"),
        [
            (ConflictResolutionStrategy.ABORT, "Abort"),
            (ConflictResolutionStrategy.ROLLBACK, "Rollback"),
            (ConflictResolutionStrategy.FAIL, "Fail"),
            (ConflictResolutionStrategy.IGNORE, "Ignore"),
            (ConflictResolutionStrategy.REPLACE, "Replace"),
        ],
    )
    def test_every_strategy_has_a_label(
        self, strategy: ConflictResolutionStrategy, label: str
    ) -> None:
        assert conflict_strategy_label(strategy) == label


class TestConfig:
    def test_defaults(self) -> None:
        config = Config()
        assert config.version == "1"
        assert config.record_apis == ()

    def test_unrelated_settings_are_kept(self) -> None:
        config = Config.model_validate({"auth": {"token_ttl": 60}, "record_apis": []})
        assert config.model_dump()["auth"] == {"token_ttl": 60}

    def test_numeric_version_coerced(self) -> None:
        assert Config.model_validate({"version": 1}).version == "1"
