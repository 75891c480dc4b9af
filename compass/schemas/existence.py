"""Bulk existence check schemas."""

from typing import Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field


class EmailExistenceRequest(BaseModel):
    emails: List[EmailStr] = Field(..., min_length=1, max_length=1000)


class UsernameExistenceRequest(BaseModel):
    usernames: List[str] = Field(..., min_length=1, max_length=1000)


class ExistenceEntry(BaseModel):
    exists: bool
    id: Optional[UUID] = None


class ExistenceResponse(BaseModel):
    results: Dict[str, ExistenceEntry]
