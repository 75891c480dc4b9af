"""
Authentication Schemas
Signup, login and token payloads for agents, agent members and travellers
"""

from typing import List
from uuid import UUID
from pydantic import EmailStr, Field, field_validator

from compass.core.permissions import Role
from compass.schemas.base import BaseCreateSchema, BaseSchema


class _SignupRequest(BaseCreateSchema):
    email: EmailStr = Field(..., description="Login email")
    password: str = Field(..., min_length=6, max_length=128, description="Plain text password")
    full_name: str = Field(..., min_length=1, max_length=100, description="Display name")

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class AgentSignupRequest(_SignupRequest):
    """Agent registration"""


class TravellerSignupRequest(_SignupRequest):
    """Traveller registration"""


class LoginRequest(BaseSchema):
    email: EmailStr = Field(..., description="Login email")
    password: str = Field(..., min_length=6, description="Plain text password")


class AgentMemberLoginRequest(BaseSchema):
    username: str = Field(..., min_length=1, description="Generated agent member username")
    password: str = Field(..., min_length=6, description="Plain text password")


class TokenResponse(BaseSchema):
    message: str = Field("Login successful", description="Result message")
    access_token: str = Field(..., description="Bearer access token")
    token_type: str = Field("bearer", description="Token type")
    expires_in: int = Field(..., description="Seconds until the token expires")
    role: Role = Field(..., description="Role carried by the token")


class PrincipalResponse(BaseSchema):
    role: Role
    subject_id: UUID
    effective_owner_id: UUID
    permissions: List[str]
