"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables or a local .env file.
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "VoteRing"
    APP_ENV: str = "development"
    DEBUG: bool = False

    # Static bearer token guarding vote creation/update
    ADMIN_TOKEN: str = ""  # Required - loaded from environment

    # Database - PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "votering"
    POSTGRES_PASSWORD: str = ""  # Required - loaded from environment
    POSTGRES_DB: str = "votering"
    POSTGRES_SSL: bool = True
    DB_POOL_SIZE: int = 5

    @field_validator("ADMIN_TOKEN", "POSTGRES_PASSWORD")
    @classmethod
    def validate_required_secrets(cls, v: str, info: Any) -> str:
        """Validate that required secrets are set."""
        if not v:
            raise ValueError(f"{info.field_name} must be set in environment")
        return v

    @property
    def POSTGRES_URL(self) -> str:
        """Construct PostgreSQL connection URL."""
        url = (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )
        return f"{url}?ssl=require" if self.POSTGRES_SSL else url

    # Identity provider (OpenID Connect ID tokens, Google by default)
    IDENTITY_JWKS_URL: str = "https://www.googleapis.com/oauth2/v3/certs"
    # Comma-separated; Google signs with either form of its issuer
    IDENTITY_ISSUER: str = "https://accounts.google.com,accounts.google.com"
    IDENTITY_AUDIENCE: str = ""
    IDENTITY_JWKS_TIMEOUT_SECONDS: float = 5.0
    IDENTITY_JWKS_CACHE_TTL_SECONDS: int = 600
    IDENTITY_JWKS_COOLDOWN_SECONDS: int = 30

    # Upper bound for every store / identity-provider call made during enrollment
    RING_OPERATION_TIMEOUT_SECONDS: float = 10.0

    # CORS - stored as comma-separated string to avoid pydantic-settings JSON parsing issues
    CORS_ORIGINS: str = "*"

    @property
    def identity_issuers_list(self) -> list[str]:
        """Get accepted token issuers as a list."""
        return [issuer.strip() for issuer in self.IDENTITY_ISSUER.split(",") if issuer.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        import json

        try:
            return json.loads(self.CORS_ORIGINS)
        except json.JSONDecodeError:
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
