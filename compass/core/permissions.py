"""
Permission catalog and role definitions for Compass.

Each permission key names one resource/action pair and carries the set of
roles that may ever hold it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class Role(str, Enum):
    AGENT = "agent"
    AGENT_MEMBER = "agent_member"
    TRAVELLER = "traveller"


@dataclass(frozen=True)
class PermissionEntry:
    key: str
    allowed_roles: frozenset[Role]


def _entry(key: str, *roles: Role) -> PermissionEntry:
    return PermissionEntry(key=key, allowed_roles=frozenset(roles))


_STAFF = (Role.AGENT, Role.AGENT_MEMBER)
_EVERYONE = (Role.AGENT, Role.TRAVELLER, Role.AGENT_MEMBER)


class PackagePermissions:
    CREATE = _entry("package:create", *_STAFF)
    READ = _entry("package:read", *_EVERYONE)
    UPDATE = _entry("package:update", *_STAFF)
    DELETE = _entry("package:delete", *_STAFF)


class TravellerPermissions:
    ADD = _entry("traveller:add", *_STAFF)
    REMOVE = _entry("traveller:remove", *_STAFF)
    UPDATE = _entry("traveller:update", *_STAFF)


class DestinationPermissions:
    CREATE = _entry("destination:create", *_STAFF)
    UPDATE = _entry("destination:update", *_STAFF)
    DELETE = _entry("destination:delete", *_STAFF)


class CommonPermissions:
    READ_COUNTRIES = _entry("countries:read", *_EVERYONE)
    SEARCH_CUSTOMER_EMAIL = _entry("search_email:read", *_STAFF)
    SEARCH_CUSTOMER_USERNAME = _entry("search_username:read", *_STAFF)
    GET_ALL_PERMISSIONS = _entry("permissions:read", *_STAFF)


class AgentMemberPermissions:
    CREATE = _entry("agent_member:create", *_STAFF)
    UPDATE = _entry("agent_member:update", *_STAFF)
    DELETE = _entry("agent_member:delete", *_STAFF)
    READ = _entry("agent_member:read", *_STAFF)


PERMISSION_GROUPS = (
    PackagePermissions,
    TravellerPermissions,
    DestinationPermissions,
    CommonPermissions,
    AgentMemberPermissions,
)


def _collect_catalog() -> dict[str, PermissionEntry]:
    catalog: dict[str, PermissionEntry] = {}
    for group in PERMISSION_GROUPS:
        for value in vars(group).values():
            if not isinstance(value, PermissionEntry):
                continue
            if value.key in catalog:
                raise ValueError(f"Duplicate permission key in catalog: {value.key}")
            catalog[value.key] = value
    return catalog


PERMISSIONS: dict[str, PermissionEntry] = _collect_catalog()


def catalog_keys() -> frozenset[str]:
    return frozenset(PERMISSIONS)


def get_entry(key: str) -> PermissionEntry:
    return PERMISSIONS[key]


def derive_permissions(role: Role) -> frozenset[str]:
    """All catalog keys grantable to ``role``."""
    return frozenset(
        entry.key for entry in PERMISSIONS.values() if role in entry.allowed_roles
    )


def _normalize_permission(permission: str) -> str:
    return permission.strip().lower()


def normalize_delegate_permissions(requested_permissions: Iterable[str] | None) -> list[str]:
    """
    Normalize and validate a per-delegate permission list.

    Agent members may only hold keys the catalog grants to their role, which
    keeps every stored list inside what the owning agent could grant.
    """
    requested = {
        _normalize_permission(p) for p in (requested_permissions or []) if p and p.strip()
    }

    unknown = requested - derive_permissions(Role.AGENT_MEMBER)
    if unknown:
        raise ValueError(f"Invalid permissions for role 'agent_member': {sorted(unknown)}")

    return sorted(requested)
