"""
Traveller Repository
"""

from __future__ import annotations

from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compass.models.traveller import Traveller
from compass.repositories.base import CRUDBase
from compass.schemas.auth import TravellerSignupRequest


class TravellerRepository(CRUDBase[Traveller, TravellerSignupRequest, TravellerSignupRequest]):
    async def get_by_email(self, db: AsyncSession, email: str, include_deleted: bool = False) -> Optional[Traveller]:
        query = select(Traveller).where(Traveller.email == email.lower().strip())
        if not include_deleted:
            query = query.where(Traveller.is_deleted == False)

        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def find_ids_by_emails(self, db: AsyncSession, emails: Sequence[str]) -> dict[str, UUID]:
        return await self.find_ids_by(db, "email", emails)

    async def all_emails(self, db: AsyncSession) -> list[str]:
        return await self.all_values(db, "email")


traveller_repository = TravellerRepository(Traveller)
