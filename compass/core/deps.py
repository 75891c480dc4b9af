"""
FastAPI Dependencies
Principal resolution and permission guards for protected routes
"""

from typing import Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from compass.core.authorization import ensure_authorized
from compass.core.database import get_db
from compass.core.exceptions import Forbidden, StoreUnavailable, Unauthenticated
from compass.core.identity import Principal, identity_resolver
from compass.core.permissions import PermissionEntry
from compass.core.security import decode_credential

logger = structlog.get_logger()

security = HTTPBearer(auto_error=False)

# Callers only ever see these; the specific failing check goes to the logs
UNAUTHORIZED_DETAIL = "Unauthorized"
FORBIDDEN_DETAIL = "Forbidden"
UNAVAILABLE_DETAIL = "Authentication service unavailable"


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=UNAUTHORIZED_DETAIL,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(
    db: AsyncSession = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> Principal:
    """
    Resolve the bearer credential to a live principal

    Raises:
        HTTPException: 401 for missing, invalid or revoked credentials,
            403 for unknown roles, 503 when the store cannot be reached
    """
    if not credentials:
        logger.warning("Missing authentication credentials")
        raise _unauthorized()

    try:
        credential = decode_credential(credentials.credentials)
    except HTTPException as exc:
        if exc.status_code != status.HTTP_401_UNAUTHORIZED:
            raise
        logger.warning("Credential rejected at decode", reason=exc.detail)
        raise _unauthorized()

    try:
        return await identity_resolver.resolve(db, credential.role, credential.subject_id)
    except Unauthenticated as exc:
        logger.warning("Credential subject not resolvable", role=credential.role,
                       subject_id=credential.subject_id, reason=str(exc))
        raise _unauthorized()
    except Forbidden as exc:
        logger.warning("Credential rejected", role=credential.role, reason=str(exc))
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN_DETAIL)
    except StoreUnavailable as exc:
        logger.error("Identity store unavailable", role=credential.role, error=str(exc))
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=UNAVAILABLE_DETAIL)


def require_permissions(*required: PermissionEntry):
    """
    Dependency factory guarding a route with a required permission set

    Args:
        required: Catalog entries the principal must satisfy, all of them

    Returns:
        Dependency resolving to the authorized Principal
    """
    required_entries = tuple(required)

    async def permission_checker(
        principal: Principal = Depends(get_current_principal)
    ) -> Principal:
        try:
            ensure_authorized(principal, required_entries)
        except Forbidden:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN_DETAIL)

        logger.debug(
            "Permission check passed",
            subject_id=str(principal.subject_id),
            permissions=[entry.key for entry in required_entries],
        )
        return principal

    return permission_checker
