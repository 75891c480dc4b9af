"""
Authentication Endpoints
Signup and login for agents, agent members and travellers
"""

import asyncio
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from compass.core.database import get_db
from compass.core.deps import get_current_principal
from compass.core.identity import Principal
from compass.core.permissions import Role
from compass.core.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    get_password_hash,
    verify_password,
)
from compass.repositories.agent import agent_repository
from compass.repositories.agent_member import agent_member_repository
from compass.repositories.traveller import traveller_repository
from compass.schemas.auth import (
    AgentMemberLoginRequest,
    AgentSignupRequest,
    LoginRequest,
    PrincipalResponse,
    TokenResponse,
    TravellerSignupRequest,
)
from compass.services.existence import traveller_email_reconciler

logger = structlog.get_logger()
router = APIRouter()

INVALID_CREDENTIALS = "Invalid credentials"


def _token_response(subject, role: Role, message: str = "Login successful") -> TokenResponse:
    return TokenResponse(
        message=message,
        access_token=create_access_token(subject=subject, role=role),
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        role=role,
    )


async def _check_password(password: str, hashed_password: str) -> bool:
    # Run in a thread to avoid blocking the event loop on bcrypt
    return await asyncio.to_thread(verify_password, password, hashed_password)


@router.post("/agent/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def agent_signup(data: AgentSignupRequest, db: AsyncSession = Depends(get_db)) -> Any:
    """Register a new agent and return an access token."""
    if await agent_repository.get_by_email(db, data.email, include_deleted=True):
        logger.debug("Agent signup with existing email", email=data.email)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Resource already exists")

    agent = await agent_repository.create(
        db,
        obj_in={
            "email": data.email,
            "full_name": data.full_name,
            "hashed_password": get_password_hash(data.password),
            "is_active": True,
        },
    )

    logger.info("Agent registered", agent_id=str(agent.id))
    return _token_response(agent.id, Role.AGENT, message="Signup successful")


@router.post("/agent/login", response_model=TokenResponse)
async def agent_login(data: LoginRequest, db: AsyncSession = Depends(get_db)) -> Any:
    """Authenticate an agent by email and password."""
    agent = await agent_repository.get_by_email(db, data.email)
    if not agent or not agent.is_active:
        logger.warning("Agent login for unknown or inactive account", email=data.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    if not await _check_password(data.password, agent.hashed_password):
        logger.warning("Agent login with invalid password", agent_id=str(agent.id))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    agent.last_login_at = datetime.now(timezone.utc)
    await db.commit()

    logger.info("Agent login successful", agent_id=str(agent.id))
    return _token_response(agent.id, Role.AGENT)


@router.post("/agent-member/login", response_model=TokenResponse)
async def agent_member_login(data: AgentMemberLoginRequest, db: AsyncSession = Depends(get_db)) -> Any:
    """Authenticate an agent member by generated username and password."""
    member = await agent_member_repository.get_by_username(db, data.username)
    if not member or not member.is_active:
        logger.warning("Agent member login for unknown or inactive account", username=data.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    if not await _check_password(data.password, member.hashed_password):
        logger.warning("Agent member login with invalid password", agent_member_id=str(member.id))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    member.last_login_at = datetime.now(timezone.utc)
    await db.commit()

    logger.info("Agent member login successful", agent_member_id=str(member.id))
    return _token_response(member.id, Role.AGENT_MEMBER)


@router.post("/traveller/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def traveller_signup(data: TravellerSignupRequest, db: AsyncSession = Depends(get_db)) -> Any:
    """Register a new traveller and return an access token."""
    if await traveller_repository.get_by_email(db, data.email, include_deleted=True):
        logger.debug("Traveller signup with existing email", email=data.email)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Resource already exists")

    traveller = await traveller_repository.create(
        db,
        obj_in={
            "email": data.email,
            "full_name": data.full_name,
            "hashed_password": get_password_hash(data.password),
        },
    )
    traveller_email_reconciler.record(traveller.email)

    logger.info("Traveller registered", traveller_id=str(traveller.id))
    return _token_response(traveller.id, Role.TRAVELLER, message="Signup successful")


@router.post("/traveller/login", response_model=TokenResponse)
async def traveller_login(data: LoginRequest, db: AsyncSession = Depends(get_db)) -> Any:
    """Authenticate a traveller by email and password."""
    traveller = await traveller_repository.get_by_email(db, data.email)
    if not traveller:
        logger.warning("Traveller login for unknown account", email=data.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    if not await _check_password(data.password, traveller.hashed_password):
        logger.warning("Traveller login with invalid password", traveller_id=str(traveller.id))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    traveller.last_login_at = datetime.now(timezone.utc)
    await db.commit()

    logger.info("Traveller login successful", traveller_id=str(traveller.id))
    return _token_response(traveller.id, Role.TRAVELLER)


@router.get("/me", response_model=PrincipalResponse)
async def me(principal: Principal = Depends(get_current_principal)) -> Any:
    """Describe the resolved principal behind the current credential."""
    return PrincipalResponse(
        role=principal.role,
        subject_id=principal.subject_id,
        effective_owner_id=principal.effective_owner_id,
        permissions=sorted(principal.permissions),
    )
