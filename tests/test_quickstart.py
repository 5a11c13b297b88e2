"""Test that the quickstart API works for record-api-settings."""
from __future__ import annotations


def test_quickstart_import() -> None:
    import record_api_settings as ras

    assert ras.__version__ == "0.1.0"


def test_quickstart_enable() -> None:
    import record_api_settings as ras

    store = ras.InMemoryConfigStore(ras.Config())
    session = ras.EditSession.open(ras.Resource("posts"), store)
    session.begin_edit()
    session.update(acl_world={ras.PermissionFlag.READ})
    assert session.submit().ok
    assert ras.find_record_api(store.get(), "posts") is not None


def test_quickstart_build_and_upsert() -> None:
    import record_api_settings as ras

    resource = ras.Resource("posts", ras.ResourceKind.TABLE)
    entry = ras.RecordApiConfig.build(resource, acl_world={ras.PermissionFlag.READ})
    doc = ras.upsert_record_api(ras.Config(), entry)
    assert ras.find_record_api(doc, "posts") == entry


def test_quickstart_validate_rule() -> None:
    import record_api_settings as ras

    result = ras.AccessRuleValidator().validate(ras.AccessRuleKind.READ, "_ROW_.owner = _USER_.id")
    assert result.valid is True


def test_public_names_exported() -> None:
    import record_api_settings as ras

    for name in ras.__all__:
        assert hasattr(ras, name), name
