"""
Database Configuration and Session Management
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
import structlog

from compass.core.simple_config import settings, DATABASE_CONFIG

logger = structlog.get_logger()

database_url = settings.DATABASE_URL
if database_url.startswith("postgresql://"):
    database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

engine_kwargs = {
    "echo": settings.ENVIRONMENT == "development" and settings.DEBUG,
}

# Pool sizing and server settings only apply to PostgreSQL
if "postgresql" in database_url:
    engine_kwargs.update(DATABASE_CONFIG)
    engine_kwargs["connect_args"] = {
        "server_settings": {
            "application_name": "compass-api",
        }
    }

engine = create_async_engine(
    database_url,
    **engine_kwargs
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncSession:
    """
    Database session dependency for FastAPI endpoints
    Ensures proper session cleanup and error handling
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def check_database_health() -> bool:
    """
    Check database connectivity
    Used by the health endpoint
    """
    try:
        async with engine.begin() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return False


async def init_database():
    """
    Create tables for all registered models
    Called during application startup
    """
    try:
        async with engine.begin() as conn:
            # Import all models to ensure they're registered
            from compass.models import agent, agent_member, traveller  # noqa: F401

            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        raise


async def close_database():
    """
    Close database connections
    Called during application shutdown
    """
    try:
        await engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error("Error closing database connections", error=str(e))
