from __future__ import annotations

from typing import Any

from .utils import normalize_key

_TRUE_TOKENS = {
    "true",
    "vrai",
    "oui",
    "yes",
    "y",
    "1",
    "present",
    "actuel",
    "actuelle",
    "current",
    "en cours",
}
_FALSE_TOKENS = {
    "false",
    "faux",
    "non",
    "no",
    "n",
    "0",
    "absent",
    "passe",
    "termine",
    "terminee",
}


def coerce_boolean(value: Any) -> bool | None:
    """Map heterogeneous truthy/falsy tokens to a bool.

    Returns None when the value is not recognised; callers must not read
    None as False.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value == 1:
            return True
        if value == 0:
            return False
        return None
    if not isinstance(value, str):
        return None

    token = normalize_key(value)
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    return None
