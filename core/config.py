"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Usersvc happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. bcrypt_rounds -> BCRYPT_ROUNDS). List fields are read as JSON
      (e.g. ALLOWED_ORIGINS='["https://example.com"]').

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment.

Security notes:
  bcrypt_rounds is the bcrypt work factor (log2 of the iteration count).
  Values below 10 are accepted so tests can hash quickly, but a warning is
  logged when one is used outside DEBUG mode.

  A wildcard CORS origin combined with credentials is rejected outright.
  Browsers refuse that combination, and it would otherwise reflect any
  origin with cookies attached.

Layer rule: core/ is the kernel. This module may not import from api/ or
accounts/.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("usersvc.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'usersvc.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 3000

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    # "sql" uses SQLAlchemy against database_url (SQLite, PostgreSQL, ...).
    # "memory" keeps accounts in a process-local dict; lost on restart.
    account_store: Literal["sql", "memory"] = "sql"
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------

    allowed_origins: list[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True
    trusted_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]

    # ------------------------------------------------------------------
    # Rate limiting (slowapi / limits syntax)
    # ------------------------------------------------------------------

    rate_limit: str = "100 per 15 minutes"
    verify_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_security_policy(self) -> "Settings":
        """Reject unsafe CORS settings; warn on a weak work factor in production."""
        if "*" in self.allowed_origins and self.cors_allow_credentials:
            raise ValueError(
                "ALLOWED_ORIGINS may not contain '*' while CORS_ALLOW_CREDENTIALS is true. "
                "List the allowed origins explicitly."
            )
        if self.bcrypt_rounds < 10 and not self.debug:
            logger.warning(
                "BCRYPT_ROUNDS=%d is below the recommended minimum of 10 outside DEBUG mode.",
                self.bcrypt_rounds,
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
