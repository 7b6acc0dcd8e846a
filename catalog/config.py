"""Runtime configuration read from the environment."""
import os
from typing import NamedTuple, Tuple


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(NamedTuple):
    database_url: str
    db_pool_size: int
    session_backend: str
    session_cookie_name: str
    session_ttl_seconds: int
    cookie_secure: bool
    cors_origins: Tuple[str, ...]
    default_admin_email: str
    default_admin_password: str
    allow_admin_registration: bool
    log_level: str


def load_settings() -> Settings:
    origins = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./catalog.db"),
        db_pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
        session_backend=os.getenv("SESSION_BACKEND", "memory").lower(),
        session_cookie_name=os.getenv("SESSION_COOKIE_NAME", "sessionId"),
        session_ttl_seconds=int(os.getenv("SESSION_TTL_SECONDS", str(60 * 60 * 24))),
        cookie_secure=_flag(os.getenv("COOKIE_SECURE", "0")),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        default_admin_email=os.getenv("DEFAULT_ADMIN_EMAIL", "admin@admin.com").strip().lower(),
        default_admin_password=os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123"),
        allow_admin_registration=_flag(os.getenv("ALLOW_ADMIN_REGISTRATION", "1")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


settings = load_settings()


def set_allow_admin_registration(value: bool):
    global settings
    settings = settings._replace(allow_admin_registration=bool(value))


def get_settings() -> Settings:
    return settings
