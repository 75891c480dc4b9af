"""
Request Logging Middleware
Binds a request id to every log event emitted while serving a request
"""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger()

EXCLUDED_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                error=str(e),
            )
            raise
        finally:
            process_time = time.perf_counter() - start_time

        if request.url.path not in EXCLUDED_PATHS:
            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round(process_time * 1000, 2),
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        structlog.contextvars.clear_contextvars()
        return response
