"""Application configuration management."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralised application settings derived from environment variables."""

    resend_api_key: str
    cron_secret: str

    database_url: str = Field(
        default="sqlite:///./data/tickets.db",
        description="SQLAlchemy-compatible database URL, or the Supabase project URL.",
    )
    database_access_key: str | None = Field(
        default=None,
        description="Supabase service key; only used by the supabase ticket store.",
    )
    ticket_store_backend: Literal["sql", "supabase"] = Field(default="sql")

    email_from: str = Field(default="Tickets <noreply@example.com>")
    ticket_code_width: int = Field(default=4, ge=1, le=32)

    app_host: str = Field(default="0.0.0.0")
    app_port: int = Field(default=8000, ge=1, le=65535)

    debug: bool = Field(default=False)

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("logs"))
    scheduler_hour: int = Field(default=8, ge=0, le=23)
    scheduler_minute: int = Field(default=0, ge=0, le=59)
    scheduler_lock_file: Path = Field(default=Path(".scheduler.lock"))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("cron_secret")
    @classmethod
    def validate_cron_secret(cls, value: str) -> str:
        """Ensure the cron secret is not left as a placeholder."""

        if value.strip().lower() in {"", "change-me", "changeme"}:
            raise ValueError(
                "CRON_SECRET is required. Update your .env file with a strong secret before running the app."
            )
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        valid = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        upper = value.upper()
        if upper not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(sorted(valid))}")
        return upper

    @model_validator(mode="after")
    def require_supabase_key(self) -> "Settings":
        if self.ticket_store_backend == "supabase" and not self.database_access_key:
            raise ValueError("DATABASE_ACCESS_KEY is required when TICKET_STORE_BACKEND=supabase")
        return self


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance so it can be reused across the app."""

    settings = Settings()
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    return settings
