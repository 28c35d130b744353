from __future__ import annotations

from fastapi import Header, HTTPException, status

from cvrag.core.config import settings

_AUTH_MESSAGES = {
    "en": "Please provide a valid API key to access profiles.",
    "fr": "Veuillez fournir une clé API valide pour accéder aux profils.",
}


def _normalize_lang(lang: str | None) -> str:
    if not lang:
        return "en"
    return lang.split(",")[0].split("-")[0].strip().lower()


def check_api_key(x_api_key: str | None, lang: str | None = None) -> None:
    if not settings.api_key:
        return
    if x_api_key != settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_AUTH_MESSAGES.get(_normalize_lang(lang), _AUTH_MESSAGES["en"]),
        )


def require_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    accept_language: str | None = Header(default=None, alias="Accept-Language"),
) -> None:
    check_api_key(x_api_key, accept_language)
