"""
FastAPI Main Application
Compass API Service
"""

from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
import structlog

from compass.api.v1.router import api_router
from compass.core.database import AsyncSessionLocal, check_database_health, close_database, init_database
from compass.core.logging import setup_logging
from compass.core.simple_config import settings
from compass.middleware.logging import LoggingMiddleware
from compass.middleware.security import RateLimitMiddleware, SecurityHeadersMiddleware
from compass.schemas.base import ErrorResponse
from compass.services.existence import agent_member_username_reconciler, traveller_email_reconciler

VERSION = "1.0.0"

# Setup structured logging
setup_logging()
logger = structlog.get_logger()


async def warm_up_membership_filters() -> None:
    """Load existing traveller emails and member usernames into their filters."""
    async with AsyncSessionLocal() as session:
        for reconciler in (traveller_email_reconciler, agent_member_username_reconciler):
            await reconciler.warm_up(session)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting Compass API Service", version=VERSION)

    await init_database()
    await warm_up_membership_filters()

    yield

    logger.info("Shutting down Compass API Service")
    await close_database()


app = FastAPI(
    title="Compass API",
    description="Travel agency accounts, delegated staff and access control",
    version=VERSION,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan
)

# ==========================================
# CORS Middleware
# ==========================================
cors_origins = settings.CORS_ORIGINS or []
logger.info("Configuring CORS", environment=settings.ENVIRONMENT, origins=cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    # Wildcard origins cannot be combined with credentials
    allow_credentials="*" not in cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "X-Requested-With",
        "X-Request-ID",
        "Origin",
    ],
    expose_headers=["X-Request-ID"],
    max_age=600,
)

# ==========================================
# Security Middlewares (after CORS)
# ==========================================
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(LoggingMiddleware)

if settings.ENVIRONMENT == "production":
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.ALLOWED_HOSTS
    )

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint for Docker and load balancers"""
    healthy = await check_database_health()
    payload = {
        "status": "healthy" if healthy else "unhealthy",
        "service": "compass-api",
        "version": VERSION,
        "timestamp": time.time(),
        "database": "connected" if healthy else "unreachable",
    }
    if not healthy:
        return JSONResponse(status_code=503, content=payload)
    return payload


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Compass API Service",
        "version": VERSION,
        "docs": "/docs" if settings.ENVIRONMENT == "development" else "disabled",
        "health": "/health"
    }


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True
    )

    error = ErrorResponse(
        error="Internal server error",
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=500, content=error.model_dump())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "compass.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower()
    )
