"""Shared endpoints: permission listing and bulk existence searches."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from compass.core.database import get_db
from compass.core.deps import require_permissions
from compass.core.identity import Principal
from compass.core.permissions import CommonPermissions, Role, derive_permissions
from compass.schemas.existence import (
    EmailExistenceRequest,
    ExistenceEntry,
    ExistenceResponse,
    UsernameExistenceRequest,
)
from compass.services.existence import (
    ExistenceResult,
    agent_member_username_reconciler,
    traveller_email_reconciler,
)

router = APIRouter()


def _to_response(results: dict[str, ExistenceResult]) -> ExistenceResponse:
    return ExistenceResponse(
        results={key: ExistenceEntry(exists=r.exists, id=r.id) for key, r in results.items()}
    )


@router.get("/permissions")
async def get_all_permissions(
    principal: Principal = Depends(require_permissions(CommonPermissions.GET_ALL_PERMISSIONS)),
) -> Any:
    """Permission keys an agent can grant to its members."""
    permissions = sorted(derive_permissions(Role.AGENT_MEMBER))
    return {
        "message": "Grantable permissions fetched successfully",
        "role": Role.AGENT_MEMBER.value,
        "permissions": permissions,
    }


@router.post("/search-customer-email", response_model=ExistenceResponse)
async def search_customer_email(
    payload: EmailExistenceRequest,
    principal: Principal = Depends(require_permissions(CommonPermissions.SEARCH_CUSTOMER_EMAIL)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Which of these emails already belong to a traveller."""
    results = await traveller_email_reconciler.check_existence(db, [str(e) for e in payload.emails])
    return _to_response(results)


@router.post("/search-username", response_model=ExistenceResponse)
async def search_username(
    payload: UsernameExistenceRequest,
    principal: Principal = Depends(require_permissions(CommonPermissions.SEARCH_CUSTOMER_USERNAME)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Which of these usernames already belong to an agent member."""
    results = await agent_member_username_reconciler.check_existence(db, payload.usernames)
    return _to_response(results)
