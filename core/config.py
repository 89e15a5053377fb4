"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for DatingApp happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. token_key -> TOKEN_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs after all fields are resolved. In dev
      mode (DEBUG=true) a missing TOKEN_KEY is generated with a warning.

Security notes:
  TOKEN_KEY strength (>= 64 characters for HMAC-SHA512) is NOT enforced here.
  auth.tokens owns that rule and raises TokenConfigurationError the moment the
  identity services are built, so a weak key fails startup or the first
  issuance and never signs a token.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("datingapp.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'datingapp.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `token_key` reads from TOKEN_KEY, `debug` reads from DEBUG.
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
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured".
    token_key: str = ""
    token_expire_days: int = 7

    # Issuer/audience checks are off for the single-service, single-client
    # deployment. Turn them on (and set the values) to harden.
    validate_issuer: bool = False
    validate_audience: bool = False
    token_issuer: str = ""
    token_audience: str = ""

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    # The SPA dev server.
    cors_origins: list[str] = ["http://localhost:4200", "https://localhost:4200"]
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def generate_dev_token_key(self) -> "Settings":
        """Auto-generate TOKEN_KEY in dev mode (DEBUG=true).

        Tokens will not survive a restart -- acceptable for local dev. Outside
        dev mode an empty key is left as-is; the token layer rejects it.
        """
        if not self.token_key and self.debug:
            self.token_key = secrets.token_hex(64)
            logger.warning("WARNING: Using auto-generated TOKEN_KEY. " "Tokens will not persist across restarts.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
