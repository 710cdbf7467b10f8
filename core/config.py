"""
core/config.py -- LocalHelp settings, read once from the environment.

Every environment variable the service understands is a field on Settings.
Other modules call get_settings(); nothing else reads os.environ.

  get_settings() is wrapped in lru_cache, so the process builds one Settings
      object on first use and shares it afterwards.

  pydantic-settings maps each field to the upper-cased env var of the same
      name (database_url <- DATABASE_URL) and also reads a .env file in the
      working directory when one exists.

Startup checks (check_secret_key and the field validators):
  SECRET_KEY signs every session token. Missing in production is fatal;
  missing with DEBUG=true gets a throwaway random key. Under 32 characters
  is always fatal.

  Cookies default to Secure with SameSite=None because the web client is on
  another origin. Plain-HTTP local development needs COOKIE_SECURE=false.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
listings/, or geocode/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("localhelp.config")

_SEVEN_DAYS = 7 * 24 * 60 * 60
_MIN_SECRET_LENGTH = 32
# bcrypt refuses secrets longer than this many UTF-8 bytes
MAX_PASSWORD_BYTES = 72


class Settings(BaseSettings):
    """Runtime configuration for the API process.

    Every field has a default, so tests can build Settings(debug=True, ...)
    directly without touching the environment.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Process
    debug: bool = False
    # "" means unset; check_secret_key replaces or rejects it.
    secret_key: str = ""
    database_url: str = "sqlite:///localhelp.db"

    # Sessions
    token_expire_seconds: int = _SEVEN_DAYS
    cookie_name: str = "token"
    cookie_secure: bool = True
    cookie_samesite: str = "none"
    accept_bearer_tokens: bool = True
    bcrypt_rounds: int = 12

    # HTTP surface
    cors_origins: list[str] = ["http://localhost:5173"]
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost", "testserver"]

    # Per-IP limits on the public auth endpoints (slowapi syntax)
    rate_limit_enabled: bool = True
    login_rate_limit: str = "10/minute"
    register_rate_limit: str = "5/minute"

    # Seeded as an admin account at startup when email and password are both set
    bootstrap_admin_email: str = ""
    bootstrap_admin_password: str = ""
    bootstrap_admin_name: str = "Administrator"

    @field_validator("cookie_samesite")
    @classmethod
    def check_samesite(cls, value: str) -> str:
        value = value.lower()
        if value not in ("lax", "strict", "none"):
            raise ValueError("COOKIE_SAMESITE must be lax, strict or none.")
        return value

    @field_validator("bootstrap_admin_password")
    @classmethod
    def check_bootstrap_password(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"BOOTSTRAP_ADMIN_PASSWORD must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8.")
        return value

    @field_validator("bcrypt_rounds")
    @classmethod
    def check_bcrypt_rounds(cls, value: int) -> int:
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return value

    @model_validator(mode="after")
    def check_secret_key(self) -> "Settings":
        if not self.secret_key and self.debug:
            self.secret_key = secrets.token_hex(_MIN_SECRET_LENGTH)
            logger.warning("DEBUG is on and SECRET_KEY is unset: using a random key, sessions end on restart.")
        elif not self.secret_key:
            raise ValueError("SECRET_KEY must be set unless DEBUG=true.")
        if len(self.secret_key) < _MIN_SECRET_LENGTH:
            raise ValueError(f"SECRET_KEY must be at least {_MIN_SECRET_LENGTH} characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, built on first call.

    Tests that change the environment afterwards must call
    get_settings.cache_clear().
    """
    return Settings()
