from __future__ import annotations

from cvrag.core.config import settings


def cors_allowed_origins() -> list[str]:
    return [origin.rstrip("/") for origin in settings.cors_allowed_origins]
