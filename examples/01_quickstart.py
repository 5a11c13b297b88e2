#!/usr/bin/env python3
"""Example: Quickstart for record-api-settings

Minimal working example: enable a Record API for a table, validate its
access rules, then disable it again.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install record-api-settings
"""
from __future__ import annotations

import record_api_settings as ras


def main() -> None:
    print(f"record-api-settings version: {ras.__version__}")

    # Step 1: Start from an empty configuration document
    store = ras.InMemoryConfigStore(ras.Config())
    posts = ras.Resource("posts", ras.ResourceKind.TABLE)

    # Step 2: Check a few candidate rules before using them
    validator = ras.AccessRuleValidator()
    candidates = [
        (ras.AccessRuleKind.READ, "_ROW_.public = 1 OR _ROW_.owner = _USER_.id"),
        (ras.AccessRuleKind.CREATE, "_ROW_.owner = _USER_.id"),
        (ras.AccessRuleKind.CREATE, "_REQ_.owner = _USER_.id"),
    ]
    print("\nRule validation:")
    for rule, expression in candidates:
        result = validator.validate(rule, expression)
        icon = "VALID" if result.valid else "INVALID"
        print(f"  [{icon}] {rule.value}: {expression}")
        if not result.valid:
            print(f"    {result.diagnostic}")

    # Step 3: Enable the Record API through an edit session
    session = ras.EditSession.open(posts, store)
    session.begin_edit()
    session.update(
        acl_world={ras.PermissionFlag.READ},
        acl_authenticated={ras.PermissionFlag.CREATE, ras.PermissionFlag.READ},
        read_access_rule="_ROW_.public = 1 OR _ROW_.owner = _USER_.id",
        create_access_rule="_REQ_.owner = _USER_.id",
        conflict_resolution=ras.ConflictResolutionStrategy.REPLACE,
    )
    outcome = session.submit()
    print(f"\nSubmit: ok={outcome.ok} state={outcome.state.value}")

    # Step 4: Inspect the stored document
    print("\nStored document:")
    print(ras.ConfigLoader().dump(store.get()))

    # Step 5: Disable it again
    outcome = session.disable()
    print(f"Disable: ok={outcome.ok} state={outcome.state.value}")
    print(f"Entry left for posts: {ras.find_record_api(store.get(), 'posts')}")


if __name__ == "__main__":
    main()
