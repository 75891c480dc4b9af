"""
Security utilities for JWT credentials and password hashing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from fastapi import HTTPException, status
from joserfc import jwt as jose_jwt
from joserfc.jwk import OctKey
from pwdlib import PasswordHash
from pwdlib.hashers.bcrypt import BcryptHasher
import structlog

from compass.core.permissions import Role
from compass.core.simple_config import settings
from compass.core.token_validator import IssuerAwareTokenValidator, LocalJWTValidationStrategy

logger = structlog.get_logger()

pwd_context = PasswordHash((BcryptHasher(),))

ALGORITHM = settings.JWT_ALGORITHM
SECRET_KEY = settings.JWT_SECRET_KEY
ACCESS_TOKEN_EXPIRE_MINUTES = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES

_jwt_key = OctKey.import_key(SECRET_KEY)

_token_validator = IssuerAwareTokenValidator(
    active_issuer=settings.AUTH_ACTIVE_ISSUER,
    trusted_issuers=settings.AUTH_TRUSTED_ISSUERS,
    local_strategy=LocalJWTValidationStrategy(
        secret_key=SECRET_KEY,
        algorithm=ALGORITHM,
        issuer=settings.AUTH_LOCAL_ISSUER,
    ),
)


@dataclass(frozen=True)
class Credential:
    """Decoded, signature-checked credential. Liveness is not yet verified."""
    role: str
    subject_id: str


def create_access_token(
    subject: Union[str, Any],
    role: Role,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[dict] = None
) -> str:
    """
    Create JWT access token

    Args:
        subject: Token subject (agent, agent member or traveller id)
        role: Role the subject authenticated as
        expires_delta: Custom expiration time
        additional_claims: Additional claims to include in token

    Returns:
        Encoded JWT token
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode = {
        "exp": int(expire.timestamp()),
        "iat": int(now.timestamp()),
        "sub": str(subject),
        "role": Role(role).value,
        "type": "access",
        "iss": settings.AUTH_LOCAL_ISSUER,
    }

    if additional_claims:
        to_encode.update(additional_claims)

    encoded_jwt = jose_jwt.encode({"alg": ALGORITHM}, to_encode, _jwt_key)

    logger.debug("Access token created", subject=str(subject), role=to_encode["role"], expires=expire)
    return encoded_jwt


def decode_credential(token: str) -> Credential:
    """
    Verify a bearer token and return its role and subject

    Raises:
        HTTPException: If the token is invalid, expired or untrusted
    """
    result = _token_validator.validate(token, token_type="access")
    return Credential(role=result.role, subject_id=result.subject)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    Returns:
        True if password matches, False otherwise
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:  # noqa: BLE001
        logger.error("Password verification error", error=str(e))
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a password

    Raises:
        HTTPException: If hashing fails
    """
    try:
        # Bcrypt has a 72 byte limit
        password_bytes = password.encode('utf-8')
        if len(password_bytes) > 72:
            password = password_bytes[:72].decode('utf-8', errors='ignore')
            logger.warning("Password truncated to 72 bytes for bcrypt")

        return pwd_context.hash(password)
    except Exception as e:
        logger.error("Password hashing error", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error processing password"
        )
