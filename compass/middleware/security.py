"""
Security Middleware
Security headers and request rate limiting
"""

import time
from collections import defaultdict
from typing import Dict, List, Optional

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
import structlog

from compass.core.simple_config import settings

logger = structlog.get_logger()

UNLIMITED_PATHS = ("/health", "/", "/docs", "/redoc", "/openapi.json")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses
    """

    async def dispatch(self, request: Request, call_next):
        # Preflight CORS requests pass through untouched
        if request.method == "OPTIONS":
            return await call_next(request)

        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        response.headers["API-Version"] = "v1"

        if "server" in response.headers:
            del response.headers["server"]

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding one-minute rate limit keyed by credential subject or client IP
    """

    def __init__(self, app, calls_per_minute: Optional[int] = None):
        super().__init__(app)
        self.calls_per_minute = calls_per_minute or settings.RATE_LIMIT_PER_MINUTE
        self.requests: Dict[str, List[float]] = defaultdict(list)
        self.cleanup_interval = 60
        self.last_cleanup = time.time()

    def _get_client_id(self, request: Request) -> str:
        """Get client identifier for rate limiting"""
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            from compass.core.security import decode_credential

            try:
                credential = decode_credential(auth_header[7:])
                return f"{credential.role}:{credential.subject_id}"
            except HTTPException:
                # Invalid tokens are rejected later; limit them by address
                pass

        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return f"ip:{forwarded_for.split(',')[0].strip()}"

        client_host = getattr(request.client, "host", "unknown")
        return f"ip:{client_host}"

    def _cleanup_old_requests(self, current_time: float):
        cutoff_time = current_time - 60

        for client_id in list(self.requests.keys()):
            self.requests[client_id] = [
                req_time for req_time in self.requests[client_id]
                if req_time > cutoff_time
            ]
            if not self.requests[client_id]:
                del self.requests[client_id]

        self.last_cleanup = current_time

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        current_time = time.time()
        if current_time - self.last_cleanup > self.cleanup_interval:
            self._cleanup_old_requests(current_time)

        client_id = self._get_client_id(request)
        recent_requests = [
            req_time for req_time in self.requests[client_id]
            if req_time > current_time - 60
        ]
        self.requests[client_id] = recent_requests

        if len(recent_requests) >= self.calls_per_minute:
            logger.warning(
                "Rate limit exceeded",
                client_id=client_id,
                requests_count=len(recent_requests),
                limit=self.calls_per_minute,
                path=request.url.path,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Rate limit exceeded",
                    "message": f"Maximum {self.calls_per_minute} requests per minute allowed",
                    "retry_after": 60,
                },
                headers={"Retry-After": "60"},
            )

        recent_requests.append(current_time)

        response = await call_next(request)

        remaining = max(0, self.calls_per_minute - len(recent_requests))
        response.headers["X-RateLimit-Limit"] = str(self.calls_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(int(current_time + 60))

        return response
