"""Agent member management endpoints."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from compass.core.database import get_db
from compass.core.deps import require_permissions
from compass.core.identity import Principal
from compass.core.permissions import AgentMemberPermissions, Role
from compass.core.security import create_access_token
from compass.schemas.agent_member import (
    AgentMemberCreateRequest,
    AgentMemberCreateResponse,
    AgentMemberDetail,
    AgentMemberUpdateRequest,
)
from compass.schemas.base import SuccessResponse
from compass.services.agent_member import agent_member_service

router = APIRouter()


@router.post("/", response_model=AgentMemberCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_agent_member(
    data: AgentMemberCreateRequest,
    principal: Principal = Depends(require_permissions(AgentMemberPermissions.CREATE)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Create an agent member under the caller's agent."""
    member = await agent_member_service.create_member(db, principal, data)
    return AgentMemberCreateResponse(
        message="Agent member created successfully",
        member=member,
        access_token=create_access_token(subject=member.id, role=Role.AGENT_MEMBER),
    )


@router.get("/", response_model=list[AgentMemberDetail])
async def list_agent_members(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    principal: Principal = Depends(require_permissions(AgentMemberPermissions.READ)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await agent_member_service.list_members(db, principal, skip=skip, limit=limit)


@router.patch("/{member_id}", response_model=AgentMemberDetail)
async def update_agent_member(
    member_id: UUID,
    data: AgentMemberUpdateRequest,
    principal: Principal = Depends(require_permissions(AgentMemberPermissions.UPDATE)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await agent_member_service.update_member(db, principal, member_id, data)


@router.delete("/{member_id}", response_model=SuccessResponse)
async def delete_agent_member(
    member_id: UUID,
    principal: Principal = Depends(require_permissions(AgentMemberPermissions.DELETE)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Delete a member; its outstanding tokens stop resolving immediately."""
    await agent_member_service.delete_member(db, principal, member_id)
    return SuccessResponse(
        message="Agent member deleted successfully",
        data={"id": str(member_id)},
    )
