"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the service happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, database_url -> DATABASE_URL).

  @model_validator(mode="after"): cross-field checks once every field is
      resolved. SECRET_KEY and DATABASE_URL are both mandatory; the launcher
      (main.py) turns the resulting error into a logged exit(1).

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or blog/.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("campusblog.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `auth_rate_limit` reads from AUTH_RATE_LIMIT.
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
    # Empty string is the sentinel for "not configured"; the validator rejects it.
    secret_key: str = ""
    database_url: str = ""
    host: str = "0.0.0.0"  # noqa: S104 # nosec B104 -- bind address for the container
    port: int = 3000

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    email_domain: str = "gecidukki.ac.in"
    token_expire_seconds: int = 24 * 3600
    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Timeouts (seconds) for store round-trips, hashing and signing
    # ------------------------------------------------------------------

    db_timeout_seconds: float = 5.0
    op_timeout_seconds: float = 10.0

    # ------------------------------------------------------------------
    # Rate limiting -- one ceiling per route group
    # ------------------------------------------------------------------

    general_rate_limit: str = "200/15 minutes"
    auth_rate_limit: str = "50/15 minutes"
    content_rate_limit: str = "20/hour"
    comment_rate_limit: str = "30/15 minutes"

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    upload_dir: str = "uploads"
    max_upload_bytes: int = 5 * 1024 * 1024

    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_required(self) -> "Settings":
        """Refuse to start without a signing secret or a database URL.

        A missing secret would mean every token becomes invalid on restart and
        a missing database URL leaves the credential store unreachable, so both
        are hard startup failures regardless of DEBUG. Keys shorter than 32
        characters are rejected because HS256 signing relies on key entropy.
        """
        if not self.secret_key:
            raise ValueError("SECRET_KEY is required. Set SECRET_KEY in your environment or .env file.")
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if not self.database_url:
            raise ValueError("DATABASE_URL is required. Set DATABASE_URL in your environment or .env file.")
        if not 4 <= self.bcrypt_rounds <= 16:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 16.")
        if self.debug:
            logger.warning("DEBUG is on: error responses will include stack traces.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
