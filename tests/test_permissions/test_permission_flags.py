"""Tests for the permission-flag vocabulary and resource-kind legality."""
from __future__ import annotations

import pytest

from record_api_settings.errors import IllegalPermissionFlagError
from record_api_settings.permissions.flags import (
    PermissionFlag,
    Resource,
    ResourceKind,
    ensure_legal_flags,
    legal_flags,
)


class TestLegalFlags:
    def test_table_permits_every_flag(self) -> None:
        assert legal_flags(ResourceKind.TABLE) == frozenset(
            [
                PermissionFlag.CREATE,
                PermissionFlag.READ,
                PermissionFlag.UPDATE,
                PermissionFlag.DELETE,
                PermissionFlag.SCHEMA,
            ]
        )

    def test_view_permits_read_and_schema_only(self) -> None:
        assert legal_flags(ResourceKind.VIEW) == frozenset(
            [PermissionFlag.READ, PermissionFlag.SCHEMA]
        )

    @pytest.mark.parametrize(
        "flag", [PermissionFlag.CREATE, PermissionFlag.UPDATE, PermissionFlag.DELETE]
    )
    def test_view_excludes_write_flags(self, flag: PermissionFlag) -> None:
        assert flag not in legal_flags(ResourceKind.VIEW)


class TestEnsureLegalFlags:
    def test_returns_frozenset_without_duplicates(self) -> None:
        flags = ensure_legal_flags(
            ResourceKind.TABLE,
            [PermissionFlag.READ, PermissionFlag.READ, PermissionFlag.CREATE],
        )
        assert flags == frozenset([PermissionFlag.READ, PermissionFlag.CREATE])

    def test_accepts_flag_values_as_strings(self) -> None:
        flags = ensure_legal_flags(ResourceKind.VIEW, ["read", "schema"])
        assert flags == legal_flags(ResourceKind.VIEW)

    def test_empty_is_legal(self) -> None:
        assert ensure_legal_flags(ResourceKind.VIEW, []) == frozenset()

    def test_view_rejects_create(self) -> None:
        with pytest.raises(IllegalPermissionFlagError) as exc_info:
            ensure_legal_flags(
                ResourceKind.VIEW,
                [PermissionFlag.READ, PermissionFlag.CREATE],
                acl="acl_world",
            )
        error = exc_info.value
        assert error.kind is ResourceKind.VIEW
        assert error.acl == "acl_world"
        assert error.flags == frozenset([PermissionFlag.CREATE])
        assert "CREATE" in str(error)

    def test_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            ensure_legal_flags(ResourceKind.VIEW, [PermissionFlag.DELETE])

    def test_unknown_flag_value_raises(self) -> None:
        with pytest.raises(ValueError):
            ensure_legal_flags(ResourceKind.TABLE, ["drop"])


class TestResourceKind:
    @pytest.mark.parametrize("raw", ["view", "VIEW", " View "])
    def test_parse_is_case_insensitive(self, raw: str) -> None:
        assert ResourceKind.parse(raw) is ResourceKind.VIEW

    def test_parse_unknown_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown resource kind"):
            ResourceKind.parse("index")


class TestResource:
    def test_defaults_to_table(self) -> None:
        resource = Resource("posts")
        assert resource.kind is ResourceKind.TABLE
        assert resource.is_view is False

    def test_view_resource(self) -> None:
        assert Resource("v_posts", ResourceKind.VIEW).is_view is True
