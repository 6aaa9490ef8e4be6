"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for TaskBoard happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, jwt_algorithm -> JWT_ALGORITHM).

  @model_validator(mode="after"): cross-field validation after all fields are
      resolved. Dev mode generates a signing key with a warning, production
      mode refuses to start without one.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. The credential codec
  signs with HMAC, so a short key weakens every issued credential.

  In production mode (DEBUG not set or false), a missing SECRET_KEY is a hard
  startup failure. The insecure fallback is only ever used when DEBUG=true.

  JWT_ALGORITHM is restricted to the HMAC family. The codec pins verification
  to this single algorithm, so whatever is configured here is the only one
  the server ever accepts.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or boards/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("taskboard.config")

SUPPORTED_ALGORITHMS: frozenset[str] = frozenset({"HS256", "HS384", "HS512"})

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent.parent / 'taskboard.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file (with DEBUG=true).
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
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    jwt_algorithm: str = "HS256"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    # Comma-separated list, e.g. "http://localhost:3000,https://board.example.com"
    cors_origins: str = "http://localhost,http://localhost:3000,http://127.0.0.1"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_signing_config(self) -> "Settings":
        """Enforce the SECRET_KEY and JWT_ALGORITHM policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Issued credentials will not survive a restart.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters and any algorithm
            outside SUPPORTED_ALGORITHMS.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated SECRET_KEY. " "Credentials will not survive a restart."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.jwt_algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(
                f"JWT_ALGORITHM must be one of: {', '.join(sorted(SUPPORTED_ALGORITHMS))}"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
