"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures consistent configuration across the application.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration
    # DATABASE_URL wins when set (tests point it at sqlite://)
    DATABASE_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="coachflow")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)

    # Database Pool Configuration
    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour

    # Redis Configuration (rate limiting)
    REDIS_URL: str = Field(default="redis://redis:6379/0")

    # JWT Authentication - REQUIRED for token verification
    # Must be set via environment variable, never use default in production
    SECRET_KEY: str = Field(
        default=...,  # Required - no default
        description="JWT signing key. Must be cryptographically secure (32+ chars). "
                    "Generate with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=7 * 24 * 60)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = Field(default=True)
    COMPLETION_RATE_LIMIT_PER_MINUTE: int = Field(default=30)  # per (actor, client)

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)
    EXPOSE_API_DOCS: bool = Field(default=False)

    # CORS - comma-separated list of allowed origins for production
    # e.g., "https://app.coachflow.fit,https://coachflow.fit"
    CORS_ORIGINS: Optional[str] = Field(default=None)

    # Sentry Error Tracking
    SENTRY_DSN: Optional[str] = Field(default=None)
    SENTRY_TRACES_SAMPLE_RATE: float = Field(default=0.1)  # 10% of transactions
    SENTRY_PROFILES_SAMPLE_RATE: float = Field(default=0.1)

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/"
            f"{self.POSTGRES_DB}"
        )


# Global settings instance
settings = Settings()
