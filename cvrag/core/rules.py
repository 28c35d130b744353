from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

_RULES_CACHE: dict[str, Any] | None = None
_RULES_PATH = Path(__file__).resolve().parents[1] / "config" / "merge_rules.yaml"


def get_merge_rules() -> dict[str, Any]:
    """Load merge rules from cvrag/config/merge_rules.yaml and cache them."""
    global _RULES_CACHE

    if _RULES_CACHE is not None:
        return _RULES_CACHE

    if not _RULES_PATH.exists():
        raise RuntimeError(
            f"Merge rules not found at '{_RULES_PATH}'. "
            "Expected file: cvrag/config/merge_rules.yaml"
        )

    try:
        raw = _RULES_PATH.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(
            f"Failed to read merge rules '{_RULES_PATH}': {exc}"
        ) from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise RuntimeError(
            f"Invalid YAML in merge rules '{_RULES_PATH}': {exc}"
        ) from exc

    if not isinstance(parsed, dict):
        raise RuntimeError(
            f"Invalid merge rules '{_RULES_PATH}': expected a top-level mapping."
        )

    _RULES_CACHE = parsed
    return _RULES_CACHE


def get_rule_value(path: str, default: Any = None) -> Any:
    """Get nested rule value using dot path notation, e.g. 'dedup.realisation_similarity'."""
    if not path:
        return default

    current: Any = get_merge_rules()
    for key in path.split("."):
        if not isinstance(current, dict):
            return default
        if key not in current:
            return default
        current = current[key]
    return current
