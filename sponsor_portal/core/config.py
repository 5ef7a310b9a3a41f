"""Human-friendly configuration loader.

The ``AppSettings`` class centralises every environment variable the portal
relies on. That means anyone inspecting the project can quickly answer:

*What:* Which settings exist and what do they control?
*When:* They are read once, the first time ``get_settings`` is called.
*Why:* Centralising configuration prevents magic strings scattered all over the
codebase.
*How:* ``pydantic-settings`` reads the environment (and an optional ``.env``)
and validates each value against the declared type.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Sponsor Portal"
    LOG_LEVEL: str = "INFO"

    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent)
    TEMPLATES_DIR: Path | None = None
    TZ: str = "Europe/London"

    # ---- REST backend the portal consumes
    BACKEND_API_URL: str = Field(
        default="http://localhost:8000/api",
        validation_alias=AliasChoices("BACKEND_API_URL", "API_URL"),
    )
    BACKEND_TIMEOUT: float = 10.0

    # ---- Browser session (durable client storage for the credential)
    APP_SECRET: str = "dev-insecure-secret-change-me"
    SESSION_COOKIE_NAME: str = "sp_session"
    SESSION_MAX_AGE: int = 60 * 60 * 24 * 7
    SESSION_HTTPS_ONLY: bool = False
    CREDENTIAL_KEY: str = "sponsor_portal_token"

    HOST: str = "0.0.0.0"
    PORT: int = 8090

    @field_validator("BACKEND_API_URL")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def templates_dir(self) -> Path:
        return self.TEMPLATES_DIR if self.TEMPLATES_DIR is not None else self.BASE_DIR / "templates"


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()


# Importing ``settings`` anywhere gives access to the configured values without
# rebuilding the object each time.
settings = get_settings()
