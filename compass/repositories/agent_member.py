"""
Agent Member Repository
"""

from __future__ import annotations

from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compass.models.agent_member import AgentMember
from compass.repositories.base import CRUDBase
from compass.schemas.agent_member import AgentMemberCreateRequest, AgentMemberUpdateRequest


class AgentMemberRepository(CRUDBase[AgentMember, AgentMemberCreateRequest, AgentMemberUpdateRequest]):
    async def get_active(self, db: AsyncSession, id) -> Optional[AgentMember]:
        member = await self.get(db, id=id)
        if member is None or not member.is_active:
            return None
        return member

    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[AgentMember]:
        query = select(AgentMember).where(
            AgentMember.username == username.strip(),
            AgentMember.is_deleted == False,
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_for_agent(self, db: AsyncSession, *, member_id: UUID, agent_id: UUID) -> Optional[AgentMember]:
        query = select(AgentMember).where(
            AgentMember.id == member_id,
            AgentMember.agent_id == agent_id,
            AgentMember.is_deleted == False,
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def list_for_agent(self, db: AsyncSession, agent_id: UUID, *, skip: int = 0, limit: int = 100) -> list[AgentMember]:
        return await self.get_multi(db, skip=skip, limit=limit, filters={"agent_id": agent_id})

    async def find_ids_by_usernames(self, db: AsyncSession, usernames: Sequence[str]) -> dict[str, UUID]:
        return await self.find_ids_by(db, "username", usernames)

    async def all_usernames(self, db: AsyncSession) -> list[str]:
        return await self.all_values(db, "username")


agent_member_repository = AgentMemberRepository(AgentMember)
