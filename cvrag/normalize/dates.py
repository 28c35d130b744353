from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from .utils import normalize_key

_PRESENT_MARKERS = {
    "present",
    "now",
    "today",
    "current",
    "aujourd'hui",
    "aujourdhui",
    "actuel",
    "actuellement",
    "en cours",
    "a ce jour",
}

_MONTHS: dict[str, int] = {
    "janvier": 1, "janv": 1, "jan": 1, "january": 1,
    "fevrier": 2, "fevr": 2, "fev": 2, "feb": 2, "february": 2,
    "mars": 3, "mar": 3, "march": 3,
    "avril": 4, "avr": 4, "apr": 4, "april": 4,
    "mai": 5, "may": 5,
    "juin": 6, "jun": 6, "june": 6,
    "juillet": 7, "juil": 7, "jul": 7, "july": 7,
    "aout": 8, "aug": 8, "august": 8,
    "septembre": 9, "sept": 9, "sep": 9, "september": 9,
    "octobre": 10, "oct": 10, "october": 10,
    "novembre": 11, "nov": 11, "november": 11,
    "decembre": 12, "dec": 12, "december": 12,
}

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})(?:-\d{1,2})?(?:[ t].*)?$")
_MONTH_YEAR_RE = re.compile(r"^(\d{1,2})\s*[/.\-]\s*(\d{4})$")
_YEAR_RE = re.compile(r"^(\d{4})$")
_NAMED_MONTH_RE = re.compile(r"^([a-z]+)\.?\s+(\d{4})$")
_ANY_YEAR_RE = re.compile(r"\b((?:19|20)\d{2})\b")


def _format(year: int, month: int | None) -> str | None:
    if year < 1900 or year > 2100:
        return None
    if month is None or not 1 <= month <= 12:
        return f"{year:04d}"
    return f"{year:04d}-{month:02d}"


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def is_present_marker(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return normalize_key(value) in _PRESENT_MARKERS


def normalize_date(value: Any) -> str | None:
    """Canonicalize a start/end date to 'YYYY-MM' or 'YYYY'.

    Accepts ISO strings, 'MM/YYYY', month names in French or English, bare
    years, date objects and {year, month} / {annee, mois} mappings. Returns
    None for anything unparseable and for "present" markers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (datetime, date)):
        return _format(value.year, value.month)
    if isinstance(value, int):
        return _format(value, None)
    if isinstance(value, Mapping):
        year = _to_int(value.get("year", value.get("annee")))
        if year is None:
            return None
        return _format(year, _to_int(value.get("month", value.get("mois"))))
    if not isinstance(value, str):
        return None

    text = normalize_key(value)
    if not text or text in _PRESENT_MARKERS:
        return None

    match = _ISO_RE.match(text)
    if match:
        return _format(int(match.group(1)), int(match.group(2)))
    match = _MONTH_YEAR_RE.match(text)
    if match:
        return _format(int(match.group(2)), int(match.group(1)))
    match = _YEAR_RE.match(text)
    if match:
        return _format(int(match.group(1)), None)
    match = _NAMED_MONTH_RE.match(text)
    if match:
        return _format(int(match.group(2)), _MONTHS.get(match.group(1)))
    match = _ANY_YEAR_RE.search(text)
    if match:
        return _format(int(match.group(1)), None)
    return None


def year_of(value: Any) -> str | None:
    normalized = normalize_date(value)
    return normalized[:4] if normalized else None
