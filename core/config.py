"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Natours happen here. No module should
call os.getenv() or os.environ.get() directly. The app factory and the CLI
entry point call get_settings() once and hand the resulting Settings (or the
individual values) to the components that need them.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  frozen=True: Settings is immutable once loaded. Components never mutate
      configuration at runtime.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. JWT signing relies
  on key entropy -- a short key weakens every session token.

  Outside DEBUG mode a missing SECRET_KEY is a hard startup failure. This
  prevents accidentally running with a random key in production (where
  sessions must survive a restart).

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("natours.config")

# Reset tokens are short-lived on purpose and not configurable.
RESET_TOKEN_TTL = timedelta(minutes=10)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Only affects the cookie "secure" attribute.
    environment: Literal["development", "production"] = "development"
    # Empty string is the sentinel for "not configured". The validator below
    # either generates a dev key or raises, so callers never see "".
    secret_key: str = Field(default="", validate_default=True)

    database_url: str = "sqlite:///natours_users.db"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # 90 days, matching the default cookie lifetime.
    token_expire_seconds: int = 90 * 24 * 60 * 60
    cookie_expire_days: int = 90
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["*"]
    # When set, password-reset links are built from this origin instead of
    # the request Host header. Set it in production.
    public_base_url: str = ""
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Email (empty host = log messages instead of sending them)
    # ------------------------------------------------------------------

    email_host: str = ""
    email_port: int = 587
    email_username: str = ""
    email_password: str = ""
    email_from: str = "Natours <hello@natours.io>"
    email_use_tls: bool = True
    email_timeout_seconds: float = 10.0

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, value: str, info: ValidationInfo) -> str:
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not value:
            if info.data.get("debug"):
                logger.warning("Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
                return secrets.token_hex(32)
            raise ValueError(
                "SECRET_KEY is required unless DEBUG=true. Set SECRET_KEY in your environment or .env file."
            )
        if len(value) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return value

    @property
    def secure_cookies(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables, or build Settings(...) directly
    and pass it to create_app().
    """
    return Settings()
