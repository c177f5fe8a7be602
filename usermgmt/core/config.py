"""
Configuration helpers for the user management backend.

Exposes a frozen Settings object built from environment variables so that
routers/services do not fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os

DEV_SESSION_SECRET = "dev-insecure-session-secret-change-me"


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    database_url: str
    session_secret: str
    session_ttl_seconds: int
    session_cookie_name: str
    allow_registration: bool
    cors_origins: tuple[str, ...]
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _bool(value: str | None, default: bool = False) -> bool:
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "on"}

    app_env = (os.getenv("APP_ENV") or "dev").lower()
    secret = (os.getenv("SESSION_SECRET") or "").strip()
    if not secret:
        if app_env == "prod":
            raise RuntimeError("SESSION_SECRET must be configured in production.")
        secret = DEV_SESSION_SECRET

    return Settings(
        app_env=app_env,
        database_url=os.getenv("DATABASE_URL", "sqlite:///./data/usermgmt.sqlite3"),
        session_secret=secret,
        session_ttl_seconds=max(60, _int(os.getenv("SESSION_TTL_SECONDS", "86400"), 86400)),
        session_cookie_name=os.getenv("SESSION_COOKIE_NAME", "session") or "session",
        allow_registration=_bool(os.getenv("ALLOW_REGISTRATION"), False),
        cors_origins=tuple(
            origin.strip().rstrip("/")
            for origin in (os.getenv("CORS_ORIGINS", "") or "").split(",")
            if origin.strip()
        ),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
