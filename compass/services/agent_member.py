"""
Agent Member Service
Business logic for agent-managed staff accounts.
"""

from __future__ import annotations

import secrets
from typing import Iterable
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from compass.core.identity import Principal
from compass.core.permissions import Role
from compass.core.security import get_password_hash
from compass.models.agent_member import AgentMember
from compass.repositories.agent_member import agent_member_repository
from compass.schemas.agent_member import (
    AgentMemberCreateRequest,
    AgentMemberDetail,
    AgentMemberUpdateRequest,
)
from compass.services.existence import agent_member_username_reconciler

logger = structlog.get_logger()

USERNAME_ATTEMPTS = 3

# Fields a member may not change on its own record
SELF_PROTECTED_FIELDS = frozenset({"permissions", "password", "is_active"})


class AgentMemberService:
    def _to_detail(self, member: AgentMember) -> AgentMemberDetail:
        return AgentMemberDetail(
            id=member.id,
            agent_id=member.agent_id,
            username=member.username,
            first_name=member.first_name,
            last_name=member.last_name,
            is_active=member.is_active,
            permissions=list(member.permissions or []),
            created_at=member.created_at,
        )

    async def _generate_username(self, db: AsyncSession) -> str:
        for _ in range(USERNAME_ATTEMPTS):
            username = secrets.token_hex(13).upper()
            taken = await agent_member_username_reconciler.check_existence(db, [username])
            if not taken[username].exists:
                return username
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Could not allocate a username")

    async def _get_owned(self, db: AsyncSession, principal: Principal, member_id: UUID) -> AgentMember:
        member = await agent_member_repository.get_for_agent(
            db, member_id=member_id, agent_id=principal.effective_owner_id
        )
        if member is None or not principal.owns(member.agent_id):
            logger.debug("Member not found for owner", member_id=str(member_id),
                         agent_id=str(principal.effective_owner_id))
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
        return member

    def _ensure_within_grant(self, principal: Principal, permissions: Iterable[str], action: str) -> None:
        """A member may only hand out or touch permissions it holds itself."""
        if principal.role != Role.AGENT_MEMBER:
            return

        exceeding = sorted(key for key in permissions if not principal.has(key))
        if exceeding:
            logger.warning(
                "Member exceeded its own grant",
                action=action,
                subject_id=str(principal.subject_id),
                missing=exceeding,
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    async def create_member(
        self, db: AsyncSession, principal: Principal, data: AgentMemberCreateRequest
    ) -> AgentMemberDetail:
        self._ensure_within_grant(principal, data.permissions, action="create")
        username = await self._generate_username(db)

        member = await agent_member_repository.create(
            db,
            obj_in={
                # Members always belong to the effective owner, even when created by another member
                "agent_id": principal.effective_owner_id,
                "username": username,
                "first_name": data.first_name,
                "last_name": data.last_name,
                "hashed_password": get_password_hash(data.password),
                "permissions": list(data.permissions),
                "is_active": True,
            },
        )
        agent_member_username_reconciler.record(member.username)

        logger.info(
            "Agent member created",
            agent_member_id=str(member.id),
            agent_id=str(member.agent_id),
            created_by=str(principal.subject_id),
        )
        return self._to_detail(member)

    async def list_members(
        self, db: AsyncSession, principal: Principal, *, skip: int = 0, limit: int = 100
    ) -> list[AgentMemberDetail]:
        members = await agent_member_repository.list_for_agent(
            db, principal.effective_owner_id, skip=skip, limit=limit
        )
        return [self._to_detail(member) for member in members]

    async def update_member(
        self, db: AsyncSession, principal: Principal, member_id: UUID, data: AgentMemberUpdateRequest
    ) -> AgentMemberDetail:
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        if principal.subject_id == member_id and SELF_PROTECTED_FIELDS & update_data.keys():
            logger.warning("Member attempted to change its own access", subject_id=str(member_id),
                           fields=sorted(SELF_PROTECTED_FIELDS & update_data.keys()))
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

        member = await self._get_owned(db, principal, member_id)

        # Resetting credentials of a member with wider rights would hand those rights over
        self._ensure_within_grant(principal, member.permissions or [], action="update")
        if "permissions" in update_data:
            self._ensure_within_grant(principal, update_data["permissions"], action="update")

        password = update_data.pop("password", None)
        if password:
            update_data["hashed_password"] = get_password_hash(password)

        member = await agent_member_repository.update(db, db_obj=member, obj_in=update_data)
        logger.info("Agent member updated", agent_member_id=str(member.id), fields=sorted(update_data))
        return self._to_detail(member)

    async def delete_member(self, db: AsyncSession, principal: Principal, member_id: UUID) -> None:
        if principal.subject_id == member_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete yourself")

        member = await self._get_owned(db, principal, member_id)
        await agent_member_repository.delete(db, db_obj=member)
        logger.info("Agent member deleted", agent_member_id=str(member_id))


agent_member_service = AgentMemberService()
