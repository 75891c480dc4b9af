"""
Bearer token validation.

Tokens are verified by the local JWT strategy and must carry a trusted
issuer. `AUTH_ACTIVE_ISSUER` must name the local strategy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import HTTPException, status
from joserfc import jwt as jose_jwt
from joserfc.jwk import OctKey
from joserfc.errors import BadSignatureError, DecodeError, ExpiredTokenError, InvalidTokenError
import structlog

logger = structlog.get_logger()


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


@dataclass(frozen=True)
class TokenValidationResult:
    subject: str
    role: str
    claims: dict
    issuer: str


class TokenValidationStrategy(ABC):
    @abstractmethod
    def validate(self, token: str, token_type: str = "access") -> TokenValidationResult:
        raise NotImplementedError


class LocalJWTValidationStrategy(TokenValidationStrategy):
    def __init__(self, secret_key: str, algorithm: str, issuer: str) -> None:
        self._jwt_key = OctKey.import_key(secret_key)
        self._algorithm = algorithm
        self._issuer = issuer

    def validate(self, token: str, token_type: str = "access") -> TokenValidationResult:
        try:
            token_obj = jose_jwt.decode(token, self._jwt_key, algorithms=[self._algorithm])
        except (BadSignatureError, DecodeError, ExpiredTokenError, InvalidTokenError, ValueError) as exc:
            logger.warning("JWT verification failed", error=str(exc))
            raise _unauthorized()

        payload = token_obj.claims

        if payload.get("type") != token_type:
            logger.warning("Invalid token type", expected=token_type, actual=payload.get("type"))
            raise _unauthorized("Invalid token type")

        subject = payload.get("sub")
        role = payload.get("role")
        if subject is None or role is None:
            logger.warning("Token missing subject or role")
            raise _unauthorized("Invalid token: missing subject or role")

        exp = payload.get("exp")
        if exp and datetime.now(timezone.utc) > datetime.fromtimestamp(exp, tz=timezone.utc):
            logger.warning("Token expired", subject=subject)
            raise _unauthorized("Token expired")

        issuer = payload.get("iss") or self._issuer
        logger.debug("Token verified successfully", subject=subject, role=role, issuer=issuer)
        return TokenValidationResult(subject=str(subject), role=str(role), claims=dict(payload), issuer=issuer)


class IssuerAwareTokenValidator:
    """Validates with the configured issuer strategy and checks the issuer claim."""

    def __init__(
        self,
        *,
        active_issuer: str,
        trusted_issuers: list[str],
        local_strategy: TokenValidationStrategy,
    ) -> None:
        self._active_issuer = active_issuer
        self._trusted_issuers = set(trusted_issuers)
        self._strategies = {"local": local_strategy}

    def validate(self, token: str, token_type: str = "access") -> TokenValidationResult:
        strategy = self._strategies.get(self._active_issuer)
        if strategy is None:
            logger.error("Unsupported active auth issuer", active_issuer=self._active_issuer)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Unsupported authentication issuer strategy",
            )

        result = strategy.validate(token, token_type=token_type)
        if self._trusted_issuers and result.issuer not in self._trusted_issuers:
            logger.warning(
                "Token issuer is not trusted",
                issuer=result.issuer,
                trusted=sorted(self._trusted_issuers),
            )
            raise _unauthorized("Untrusted token issuer")

        return result
