"""
Simple Configuration
Environment-driven settings for the Compass API
"""

import os
from dotenv import load_dotenv

load_dotenv()


class SimpleSettings:
    """Simple settings without complex validation"""

    def __init__(self):
        # Application
        self.ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
        self.DEBUG = os.getenv("DEBUG", "false").lower() == "true"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        # Database
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./compass.db")
        self.DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
        self.DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
        self.DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
        self.DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "3600"))

        # Liveness and existence lookups are bounded; 0 disables the bound
        self.STORE_LOOKUP_TIMEOUT_SECONDS = float(os.getenv("STORE_LOOKUP_TIMEOUT_SECONDS", "5"))

        # JWT Authentication
        self.JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your-super-secret-jwt-key-change-in-production-min-32-chars-for-security")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "180"))

        # Issuer strategy (local is the only active issuer)
        self.AUTH_ACTIVE_ISSUER = os.getenv("AUTH_ACTIVE_ISSUER", "local")
        trusted_issuers = os.getenv("AUTH_TRUSTED_ISSUERS", "compass-local")
        self.AUTH_TRUSTED_ISSUERS = [issuer.strip() for issuer in trusted_issuers.split(",") if issuer.strip()]
        self.AUTH_LOCAL_ISSUER = os.getenv("AUTH_LOCAL_ISSUER", "compass-local")

        # Membership filter (traveller emails, agent member usernames)
        self.MEMBERSHIP_FILTER_CAPACITY = int(os.getenv("MEMBERSHIP_FILTER_CAPACITY", "10000"))
        self.MEMBERSHIP_FILTER_ERROR_RATE = float(os.getenv("MEMBERSHIP_FILTER_ERROR_RATE", "0.01"))
        self.MEMBERSHIP_FILTER_GROWTH_FACTOR = int(os.getenv("MEMBERSHIP_FILTER_GROWTH_FACTOR", "2"))

        # Security
        self.ALLOWED_HOSTS = ["*"]
        cors_origins = os.getenv("CORS_ORIGINS", "*")
        self.CORS_ORIGINS = [
            origin.strip()
            for origin in cors_origins.split(",")
            if origin.strip()
        ]

        # Rate Limiting
        self.RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "100"))


# Create settings instance
settings = SimpleSettings()

# Derived settings
DATABASE_CONFIG = {
    "pool_size": settings.DB_POOL_SIZE,
    "max_overflow": settings.DB_MAX_OVERFLOW,
    "pool_timeout": settings.DB_POOL_TIMEOUT,
    "pool_recycle": settings.DB_POOL_RECYCLE,
    "pool_pre_ping": True,
}
