"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the KIN API happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead,
or better, take the Settings instance the app lifespan stored on app.state.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  Immutable settings: the model is frozen. Secrets and TTLs are read once at
      process start and passed explicitly to the auth service and the mailer.

  @model_validator(mode="before"): fills in missing signing secrets before
      field validation runs. Dev mode (DEBUG=true) generates random keys with a
      warning; production mode refuses to start without them.

Signing secrets (one per token purpose so a token minted for one flow can never
be replayed against another):
  SECRET_KEY                 -- session tokens (login)
  VERIFY_SECRET_KEY          -- account activation tokens (code and link)
  PASSWORD_RESET_SECRET_KEY  -- password reset tokens carried in the cookie
  RESET_PASSWORD_SECRET_KEY  -- password reset tokens carried in the URL

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
content/, or storage/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("kin.config")

_SECRET_FIELDS = (
    "secret_key",
    "verify_secret_key",
    "password_reset_secret_key",
    "reset_password_secret_key",
)

_TRUTHY = {"1", "true", "yes", "on"}

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'kin.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments with DEBUG=true and no .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `secret_key` reads from SECRET_KEY, `debug` reads from DEBUG.
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
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Signing secrets -- "" means "not configured"; see fill_secret_keys()
    # ------------------------------------------------------------------

    secret_key: str = ""
    verify_secret_key: str = ""
    password_reset_secret_key: str = ""
    reset_password_secret_key: str = ""

    # ------------------------------------------------------------------
    # Token lifetimes (seconds)
    # ------------------------------------------------------------------

    session_expire_seconds: int = 3600
    verify_expire_seconds: int = 600
    password_reset_expire_seconds: int = 300
    reset_link_expire_seconds: int = 900

    # Number of digits in activation and reset codes
    code_length: int = 4

    # ------------------------------------------------------------------
    # Cookies and HTTP
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    client_url: str = "http://localhost:3000"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "100/hour"

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    upload_dir: str = "public/images"
    max_upload_bytes: int = 2 * 1024 * 1024
    default_user_photo: str = "default.png"

    # ------------------------------------------------------------------
    # SMTP (email). smtp_host unset -> codes are logged instead of mailed
    # ------------------------------------------------------------------

    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from_email: Optional[str] = None
    smtp_timeout_seconds: float = 10.0

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="before")
    @classmethod
    def fill_secret_keys(cls, data):
        """Enforce the signing-secret policy before fields are validated.

        Dev mode (DEBUG=true): auto-generate random keys with a warning.
            Sessions and outstanding reset links will not survive a restart.

        Production mode (DEBUG=false or not set): refuse to start if any
            signing secret is missing.
        """
        if not isinstance(data, dict):
            return data
        debug = str(data.get("debug", "")).strip().lower() in _TRUTHY
        missing = [name for name in _SECRET_FIELDS if not data.get(name)]
        if not missing:
            return data
        if not debug:
            names = ", ".join(name.upper() for name in missing)
            raise ValueError(
                f"{names} must be set in production mode. "
                "Set them in your environment or .env file. "
                "To run in development mode, set DEBUG=true."
            )
        for name in missing:
            data[name] = secrets.token_hex(32)
        logger.warning(
            "Using auto-generated signing secrets (%s). Tokens will not persist across restarts.",
            ", ".join(missing),
        )
        return data

    @field_validator(*_SECRET_FIELDS)
    @classmethod
    def check_secret_length(cls, value: str) -> str:
        """Reject short keys -- HS256 signing relies on key entropy."""
        if len(value) < 32:
            raise ValueError("Signing secrets must be at least 32 characters.")
        return value

    @field_validator("smtp_host", "smtp_user", "smtp_password", "smtp_from_email", mode="before")
    @classmethod
    def parse_optional_str(cls, value):
        if value == "":
            return None
        return value

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
