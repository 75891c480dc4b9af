"""Agent member management schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import Field, field_validator

from compass.core.permissions import normalize_delegate_permissions
from compass.schemas.base import BaseCreateSchema, BaseSchema, BaseUpdateSchema


class AgentMemberCreateRequest(BaseCreateSchema):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6, max_length=128)
    permissions: List[str] = Field(default_factory=list)

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v: List[str]) -> List[str]:
        return normalize_delegate_permissions(v)


class AgentMemberUpdateRequest(BaseUpdateSchema):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    password: Optional[str] = Field(None, min_length=6, max_length=128)
    permissions: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return normalize_delegate_permissions(v)


class AgentMemberDetail(BaseSchema):
    id: UUID
    agent_id: UUID
    username: str
    first_name: str
    last_name: str
    is_active: bool
    permissions: List[str]
    created_at: Optional[datetime] = None


class AgentMemberCreateResponse(BaseSchema):
    message: str
    member: AgentMemberDetail
    access_token: str
