"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the SSO service happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. access_token_ttl_seconds -> ACCESS_TOKEN_TTL_SECONDS).

  @model_validator(mode="after"): Cross-field checks run once all fields are
      resolved, so a bad deployment fails at startup instead of on the first
      login.

Signing secrets are NOT configured here. Each app (tenant) carries its own
secret in the apps table; see auth/store.py and `main.py create-app`.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sso.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'sso.db'}"

# bcrypt accepts log2 cost factors in this range
_BCRYPT_MIN_ROUNDS = 4
_BCRYPT_MAX_ROUNDS = 31


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
    log_level: str = "INFO"
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Access tokens are short-lived; refresh tokens only mint new access tokens.
    access_token_ttl_seconds: int = 15 * 60
    refresh_token_ttl_seconds: int = 24 * 60 * 60

    # ------------------------------------------------------------------
    # Password hashing
    # ------------------------------------------------------------------

    bcrypt_rounds: int = 10

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    # Upper bound for any single store call or hash computation.
    request_timeout_seconds: float = 10.0

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject TTLs, timeouts and cost factors that cannot work."""
        if self.access_token_ttl_seconds <= 0 or self.refresh_token_ttl_seconds <= 0:
            raise ValueError("Token TTLs must be positive.")
        if self.request_timeout_seconds <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive.")
        if not _BCRYPT_MIN_ROUNDS <= self.bcrypt_rounds <= _BCRYPT_MAX_ROUNDS:
            raise ValueError(f"BCRYPT_ROUNDS must be between {_BCRYPT_MIN_ROUNDS} and {_BCRYPT_MAX_ROUNDS}.")
        if self.refresh_token_ttl_seconds <= self.access_token_ttl_seconds:
            logger.warning(
                "REFRESH_TOKEN_TTL_SECONDS (%d) is not longer than ACCESS_TOKEN_TTL_SECONDS (%d)",
                self.refresh_token_ttl_seconds,
                self.access_token_ttl_seconds,
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
