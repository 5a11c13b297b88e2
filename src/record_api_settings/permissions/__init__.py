"""Permission-flag vocabulary for Record APIs.

Example
-------
::

    from record_api_settings.permissions import PermissionFlag, ResourceKind, legal_flags

    assert PermissionFlag.CREATE not in legal_flags(ResourceKind.VIEW)
"""
from __future__ import annotations

from record_api_settings.permissions.flags import (
    PermissionFlag,
    Resource,
    ResourceKind,
    ensure_legal_flags,
    legal_flags,
)

__all__ = [
    "PermissionFlag",
    "Resource",
    "ResourceKind",
    "ensure_legal_flags",
    "legal_flags",
]
