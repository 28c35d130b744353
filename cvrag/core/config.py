from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    log_level: str
    sentry_dsn: str | None
    rate_limit: str
    rate_limit_enabled: bool
    cors_allowed_origins: tuple[str, ...]
    profile_store_db_path: str
    draft_store_db_path: str
    draft_ttl_minutes: int
    max_update_retries: int
    durable_photo_scheme: str


settings = Settings(
    api_key=_get_env("API_KEY"),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    rate_limit=_get_env("RATE_LIMIT", "60/minute") or "60/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
    ),
    profile_store_db_path=_get_env("PROFILE_STORE_DB_PATH", "data/profiles.db") or "data/profiles.db",
    draft_store_db_path=_get_env("DRAFT_STORE_DB_PATH", "data/drafts.db") or "data/drafts.db",
    draft_ttl_minutes=_get_env_int("DRAFT_TTL_MINUTES", 60 * 24),
    max_update_retries=_get_env_int("MAX_UPDATE_RETRIES", 3),
    durable_photo_scheme=_get_env("DURABLE_PHOTO_SCHEME", "storage") or "storage",
)

if settings.max_update_retries < 1:
    raise RuntimeError("MAX_UPDATE_RETRIES must be at least 1.")

if ":" in settings.durable_photo_scheme:
    raise RuntimeError("DURABLE_PHOTO_SCHEME must not contain ':'.")
