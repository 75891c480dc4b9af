"""
API v1 Router
Main router for all API v1 endpoints
"""

from fastapi import APIRouter
from compass.api.v1.endpoints import agent_members, auth, common

api_router = APIRouter()

# Authentication endpoints
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["authentication"]
)

# Agent member management endpoints
api_router.include_router(
    agent_members.router,
    prefix="/agent-members",
    tags=["agent-members"]
)

# Permission listing and existence search endpoints
api_router.include_router(
    common.router,
    prefix="/common",
    tags=["common"]
)
