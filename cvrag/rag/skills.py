from __future__ import annotations

from typing import Any

from cvrag.normalize.profile import normalize_profile
from cvrag.normalize.utils import as_text, dedupe_texts
from cvrag.schemas.profile import InferredCompetences, ProfileRecord

from .identity import skill_key

_INFERRED_CATEGORIES = ("techniques", "tools", "soft_skills")


def _skill_name(name: Any) -> str:
    cleaned = as_text(name)
    if cleaned is None or not skill_key(cleaned):
        raise ValueError("skill name is required")
    return cleaned


def _record(value: Any) -> ProfileRecord:
    if isinstance(value, ProfileRecord):
        return value.model_copy(deep=True)
    return normalize_profile(value).record


def reject_inferred_skill(record: Any, name: Any) -> ProfileRecord:
    """Dismiss a suggestion: remember the rejection and drop it from every inferred list."""
    cleaned = _skill_name(name)
    key = skill_key(cleaned)
    current = _record(record)

    inferred = InferredCompetences(
        **{
            category: [
                skill for skill in getattr(current.competences.inferred, category) if skill_key(skill) != key
            ]
            for category in _INFERRED_CATEGORIES
        }
    )
    return current.model_copy(
        update={
            "competences": current.competences.model_copy(update={"inferred": inferred}),
            "rejected_inferred": dedupe_texts([*current.rejected_inferred, cleaned]),
        }
    )


def accept_inferred_skill(record: Any, name: Any) -> tuple[ProfileRecord, bool]:
    """Flag a suggestion as added to the profile.

    Returns the updated record and whether a matching suggestion was found.
    A rejected skill stays rejected; accepting it again is a no-op.
    """
    cleaned = _skill_name(name)
    key = skill_key(cleaned)
    current = _record(record)
    if key in {skill_key(item) for item in current.rejected_inferred}:
        return current, False

    found = False
    values = {}
    for category in _INFERRED_CATEGORIES:
        skills = []
        for skill in getattr(current.competences.inferred, category):
            if skill_key(skill) == key:
                found = True
                skill = skill.model_copy(update={"added_to_profile": True})
            skills.append(skill)
        values[category] = skills

    if not found:
        return current, False
    return (
        current.model_copy(
            update={"competences": current.competences.model_copy(update={"inferred": InferredCompetences(**values)})}
        ),
        True,
    )
