"""
Agent Repository
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compass.models.agent import Agent
from compass.repositories.base import CRUDBase
from compass.schemas.auth import AgentSignupRequest


class AgentRepository(CRUDBase[Agent, AgentSignupRequest, AgentSignupRequest]):
    async def get_active(self, db: AsyncSession, id) -> Optional[Agent]:
        agent = await self.get(db, id=id)
        if agent is None or not agent.is_active:
            return None
        return agent

    async def get_by_email(self, db: AsyncSession, email: str, include_deleted: bool = False) -> Optional[Agent]:
        query = select(Agent).where(Agent.email == email.lower().strip())
        if not include_deleted:
            query = query.where(Agent.is_deleted == False)

        result = await db.execute(query)
        return result.scalar_one_or_none()


agent_repository = AgentRepository(Agent)
