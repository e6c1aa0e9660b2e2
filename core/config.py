"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for userdir happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, users_file -> USERS_FILE).

  @model_validator(mode="after"): Enforces the SECRET_KEY policy once all
      fields are resolved.

Security notes:
  A missing SECRET_KEY is a hard startup failure in every mode. An empty
  signing key would make every bearer token forgeable, and a generated one
  would silently invalidate tokens on restart.

  SECRET_KEY shorter than 32 chars is rejected outright. HS256 signing relies
  on key entropy -- a short key weakens it.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("userdir.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field except secret_key has a default, so tests only need to export
    SECRET_KEY before the first get_settings() call.
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

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = Field(default=4001, ge=1, le=65535)

    # ------------------------------------------------------------------
    # Credential store
    # ------------------------------------------------------------------

    users_file: Path = Path("data/users.json")

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # bcrypt accepts 4..31. 12 is the library default and the production value.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    # 0 = tokens carry no exp claim (documented limitation, no refresh flow).
    token_expire_seconds: int = Field(default=0, ge=0)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Refuse to build settings without a usable signing key."""
        if not self.secret_key:
            raise ValueError(
                "SECRET_KEY is required. " "Set SECRET_KEY in your environment or .env file before starting the service."
            )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
