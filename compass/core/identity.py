"""
Identity resolution for authenticated requests.

Turns a decoded credential (role + subject id) into a live principal: the
subject must still exist, its permissions are computed per role, and agent
members are substituted by their owning agent for resource ownership.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from compass.core.exceptions import Forbidden, StoreUnavailable, Unauthenticated
from compass.core.permissions import Role, catalog_keys, derive_permissions
from compass.core.simple_config import settings
from compass.repositories.agent import agent_repository
from compass.repositories.agent_member import agent_member_repository
from compass.repositories.traveller import traveller_repository

logger = structlog.get_logger()


@dataclass(frozen=True)
class Principal:
    role: Role
    subject_id: UUID
    effective_owner_id: UUID
    permissions: frozenset[str]

    def owns(self, owner_id: Optional[UUID]) -> bool:
        """Ownership checks always compare against the effective owner."""
        return owner_id is not None and owner_id == self.effective_owner_id

    def has(self, key: str) -> bool:
        return key in self.permissions


async def bounded_lookup(lookup: Awaitable[Any], *, timeout: Optional[float] = None) -> Any:
    """
    Run a single store read, surfacing any failure as StoreUnavailable.

    No retry: the caller's request fails instead.
    """
    timeout = settings.STORE_LOOKUP_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        if timeout and timeout > 0:
            return await asyncio.wait_for(lookup, timeout=timeout)
        return await lookup
    except asyncio.TimeoutError as exc:
        raise StoreUnavailable("Store lookup timed out") from exc
    except (SQLAlchemyError, OSError) as exc:
        raise StoreUnavailable(f"Store lookup failed: {exc}") from exc


def _parse_subject_id(subject_id: UUID | str) -> UUID:
    if isinstance(subject_id, UUID):
        return subject_id
    try:
        return UUID(str(subject_id))
    except ValueError as exc:
        raise Unauthenticated("Malformed subject id") from exc


class IdentityResolver:
    """Resolves credentials against the agent, agent member and traveller stores."""

    def __init__(self, *, agents=agent_repository, agent_members=agent_member_repository,
                 travellers=traveller_repository) -> None:
        self._agents = agents
        self._agent_members = agent_members
        self._travellers = travellers

    async def resolve(self, db: AsyncSession, role: Role | str, subject_id: UUID | str) -> Principal:
        try:
            role = Role(role)
        except ValueError:
            logger.warning("Credential carries unknown role", role=str(role))
            raise Forbidden("Unknown role")

        subject = _parse_subject_id(subject_id)

        if role == Role.AGENT:
            agent = await bounded_lookup(self._agents.get_active(db, subject))
            if agent is None:
                logger.warning("Agent no longer resolvable", subject_id=str(subject))
                raise Unauthenticated("Agent not found or inactive")
            principal = Principal(
                role=role,
                subject_id=subject,
                effective_owner_id=subject,
                permissions=derive_permissions(Role.AGENT),
            )

        elif role == Role.AGENT_MEMBER:
            member = await bounded_lookup(self._agent_members.get_active(db, subject))
            if member is None:
                logger.warning("Agent member no longer resolvable", subject_id=str(subject))
                raise Unauthenticated("Agent member not found or inactive")
            # Stored lists may predate catalog changes; never hand out unknown keys
            granted = frozenset(member.permissions or []) & catalog_keys()
            principal = Principal(
                role=role,
                subject_id=subject,
                effective_owner_id=member.agent_id,
                permissions=granted,
            )

        elif role == Role.TRAVELLER:
            traveller = await bounded_lookup(self._travellers.get(db, subject))
            if traveller is None:
                logger.warning("Traveller no longer resolvable", subject_id=str(subject))
                raise Unauthenticated("Traveller not found")
            principal = Principal(
                role=role,
                subject_id=subject,
                effective_owner_id=subject,
                permissions=derive_permissions(Role.TRAVELLER),
            )

        else:
            raise Forbidden("Unsupported role")

        logger.debug(
            "Principal resolved",
            role=principal.role.value,
            subject_id=str(principal.subject_id),
            effective_owner_id=str(principal.effective_owner_id),
        )
        return principal


identity_resolver = IdentityResolver()
