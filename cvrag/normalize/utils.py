from __future__ import annotations

import re
import unicodedata
from typing import Any, Iterable

_WS_RE = re.compile(r"\s+")
_TRAILING_PUNCT_RE = re.compile(r"[\s.;,:!\-–—]+$")


def normalize_line(line: str) -> str:
    return _WS_RE.sub(" ", line).strip()


def fold_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_key(value: Any) -> str:
    """Case-, accent- and whitespace-insensitive comparison key."""
    if value is None:
        return ""
    return normalize_line(fold_accents(str(value)).casefold())


def text_key(value: Any) -> str:
    return _TRAILING_PUNCT_RE.sub("", normalize_key(value))


def as_text(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, str):
        return None
    cleaned = normalize_line(value)
    return cleaned or None


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def dedupe_texts(items: Iterable[str]) -> list[str]:
    """Ordered dedup by normalized text; the first spelling wins."""
    output: list[str] = []
    seen: set[str] = set()
    for item in items:
        key = text_key(item)
        if not key or key in seen:
            continue
        seen.add(key)
        output.append(item)
    return output
