"""Permission-flag vocabulary and per-resource-kind legality.

Tables accept every flag. Views have no write path, so only READ and
SCHEMA are legal for them.

Example
-------
::

    from record_api_settings.permissions.flags import (
        PermissionFlag,
        ResourceKind,
        legal_flags,
    )

    assert legal_flags(ResourceKind.VIEW) == {PermissionFlag.READ, PermissionFlag.SCHEMA}
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from record_api_settings.errors import IllegalPermissionFlagError

logger = logging.getLogger(__name__)


class PermissionFlag(str, Enum):
    """Operations a caller class may be granted on a Record API."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    SCHEMA = "schema"


class ResourceKind(str, Enum):
    """Kind of resource a Record API is backed by."""

    TABLE = "table"
    VIEW = "view"

    @classmethod
    def parse(cls, value: str) -> ResourceKind:
        """Parse ``"table"`` or ``"view"`` case-insensitively.

        Raises
        ------
        ValueError
            If ``value`` names neither kind.
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown resource kind {value!r}. Valid: {[k.value for k in cls]}"
            ) from None


@dataclass(frozen=True)
class Resource:
    """A table or view as reported by schema introspection.

    Attributes
    ----------
    name:
        The table or view name.
    kind:
        Whether the resource is a table or a view.
    """

    name: str
    kind: ResourceKind = ResourceKind.TABLE

    @property
    def is_view(self) -> bool:
        return self.kind is ResourceKind.VIEW


_LEGAL_FLAGS: dict[ResourceKind, frozenset[PermissionFlag]] = {
    ResourceKind.TABLE: frozenset(PermissionFlag),
    ResourceKind.VIEW: frozenset([PermissionFlag.READ, PermissionFlag.SCHEMA]),
}


def legal_flags(kind: ResourceKind) -> frozenset[PermissionFlag]:
    """Return the permission flags legal for ``kind``."""
    return _LEGAL_FLAGS[kind]


def ensure_legal_flags(
    kind: ResourceKind,
    flags: Iterable[PermissionFlag],
    acl: str = "acl",
) -> frozenset[PermissionFlag]:
    """Return ``flags`` as a frozenset, rejecting any illegal for ``kind``.

    Parameters
    ----------
    kind:
        The resource kind the ACL belongs to.
    flags:
        The candidate flags. Duplicates collapse.
    acl:
        Name of the ACL, used in the error message.

    Raises
    ------
    IllegalPermissionFlagError
        If any flag falls outside :func:`legal_flags` for ``kind``.
    """
    flag_set = frozenset(PermissionFlag(f) for f in flags)
    illegal = flag_set - legal_flags(kind)
    if illegal:
        logger.debug("Rejected %s flags for %s: %s", acl, kind.value, sorted(illegal))
        raise IllegalPermissionFlagError(kind, acl, illegal)
    return flag_set
