"""Application settings."""

from __future__ import annotations

import json
from functools import cached_property
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration entrypoint for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    # Server
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Observability
    log_level: str = "INFO"
    log_json: bool = True
    metrics_username: str = "prometheus"
    metrics_password: str | None = None

    # Database
    database_url: str = Field(
        default="sqlite:///./data/scribe.db",
        validation_alias=AliasChoices("DATABASE_URL"),
    )
    async_database_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ASYNC_DATABASE_URL"),
    )
    db_echo: bool = Field(
        default=False,
        validation_alias=AliasChoices("DB_ECHO", "SQL_ECHO"),
    )
    create_tables_on_startup: bool = True

    # Security
    secret_key: str = "dev-secret"
    jwt_lifetime_seconds: int = 60 * 60 * 24 * 30
    auth_cookie_name: str = "scribe-auth"
    password_hash_rounds: int = 12
    min_password_length: int = 6

    # Rate limits (slowapi syntax)
    rate_limit_enabled: bool = True
    default_rate_limit: str = "120/minute"
    auth_rate_limit: str = "10/minute"

    # Federated login (Google)
    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_redirect_url: str | None = None
    oauth_state_lifetime_seconds: int = 600

    # Feeds
    feed_page_size: int = 20

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: str | list[str] | None) -> list[str]:
        """Normalize ALLOWED_ORIGINS env input into a list."""
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return []
            if raw.startswith("["):
                try:
                    parsed = json.loads(raw)
                    if isinstance(parsed, list):
                        return parsed
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in raw.split(",") if item.strip()]
        return []

    @field_validator("password_hash_rounds")
    @classmethod
    def validate_hash_rounds(cls, value: int) -> int:
        if value < 10:
            raise ValueError("PASSWORD_HASH_ROUNDS must be at least 10")
        return value

    @property
    def is_production(self) -> bool:
        """Return True when running in production."""
        return self.environment == "production"

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    @property
    def cors_origins(self) -> list[str]:
        return self.allowed_origins

    @cached_property
    def resolved_database_url(self) -> str:
        """Return the sync SQLAlchemy URL (used by Alembic and tooling)."""
        return self.database_url

    @cached_property
    def resolved_async_database_url(self) -> str:
        """Return the async SQLAlchemy URL derived from the sync configuration."""
        if self.async_database_url:
            return self.async_database_url
        base_url = self.resolved_database_url
        if base_url.startswith("sqlite:///"):
            return base_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        if base_url.startswith("postgresql://"):
            return base_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return base_url


settings = Settings()
