from __future__ import annotations

import re
from typing import Any

# zero-width space/non-joiner/joiner, BOM, soft hyphen
_INVISIBLE_RE = re.compile(r"[\u200b-\u200d\ufeff\u00ad]")

# Word pairs that upstream extraction glues together. Only exact whole-word
# matches are repaired; this is not a dictionary splitter.
_GLUED_PAIRS: dict[str, str] = {
    "etde": "et de",
    "etla": "et la",
    "etles": "et les",
    "dela": "de la",
    "deles": "de les",
    "àla": "à la",
    "enplace": "en place",
    "pourla": "pour la",
    "surle": "sur le",
    "avecle": "avec le",
    "dansle": "dans le",
}
_GLUED_RE = re.compile(
    r"\b(" + "|".join(re.escape(word) for word in sorted(_GLUED_PAIRS, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)

# "12clients" -> "12 clients"; uppercase suffixes (3D, 4K, 2FA) and French
# ordinals (1ère, 2ème) are left alone.
_DIGIT_WORD_RE = re.compile(r"(\d)([a-zà-öø-ÿœæ]{3,})")
_ORDINAL_SUFFIXES = {"ere", "ère", "eme", "ème", "ieme", "ième"}

_DIGIT_PERCENT_RE = re.compile(r"(\d)%")
_PERCENT_DIGIT_RE = re.compile(r"%(\d)")
_PLUS_DIGIT_RE = re.compile(r"\+(\d)")
_DIGIT_PLUS_RE = re.compile(r"(\d)\+")
_WS_RE = re.compile(r"\s+")


def _unglue(match: re.Match[str]) -> str:
    word = match.group(0)
    repaired = _GLUED_PAIRS[word.lower()]
    if word[0].isupper():
        return repaired[0].upper() + repaired[1:]
    return repaired


def _split_digit_word(match: re.Match[str]) -> str:
    digit, word = match.group(1), match.group(2)
    if word.lower() in _ORDINAL_SUFFIXES:
        return match.group(0)
    return f"{digit} {word}"


def sanitize_text(text: Any) -> str:
    if not isinstance(text, str) or not text:
        return ""

    cleaned = _INVISIBLE_RE.sub("", text)
    # digit boundaries first so "2etde" exposes a word boundary to the pair pass
    cleaned = _DIGIT_WORD_RE.sub(_split_digit_word, cleaned)
    cleaned = _PLUS_DIGIT_RE.sub(r"+ \1", cleaned)
    cleaned = _DIGIT_PLUS_RE.sub(r"\1 +", cleaned)
    cleaned = _DIGIT_PERCENT_RE.sub(r"\1 %", cleaned)
    cleaned = _PERCENT_DIGIT_RE.sub(r"% \1", cleaned)
    cleaned = _GLUED_RE.sub(_unglue, cleaned)
    return _WS_RE.sub(" ", cleaned).strip()
