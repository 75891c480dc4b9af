"""
Authorization guard.

A required entry is satisfied only when the principal's role is within the
entry's allowed roles (the ceiling for the role) AND the principal currently
holds the key (the grant for this identity).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import structlog

from compass.core.exceptions import Forbidden
from compass.core.identity import Principal
from compass.core.permissions import PermissionEntry

logger = structlog.get_logger()


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    missing: tuple[str, ...] = field(default_factory=tuple)


def is_satisfied(principal: Principal, entry: PermissionEntry) -> bool:
    return principal.role in entry.allowed_roles and entry.key in principal.permissions


def authorize(principal: Principal, required: Sequence[PermissionEntry]) -> AuthorizationDecision:
    # Every entry is evaluated so diagnostics list all missing keys
    missing = tuple(entry.key for entry in required if not is_satisfied(principal, entry))
    return AuthorizationDecision(allowed=not missing, missing=missing)


def ensure_authorized(principal: Principal, required: Sequence[PermissionEntry]) -> Principal:
    """Return the principal if allowed, raise Forbidden otherwise."""
    decision = authorize(principal, required)
    if not decision.allowed:
        logger.warning(
            "Principal lacks required permissions",
            role=principal.role.value,
            subject_id=str(principal.subject_id),
            missing=list(decision.missing),
        )
        raise Forbidden(missing=list(decision.missing))
    return principal
