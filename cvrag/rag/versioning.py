from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from cvrag.normalize.profile import normalize_profile
from cvrag.normalize.utils import dedupe_texts
from cvrag.schemas.profile import CANONICAL_SECTIONS, ProfileRecord

from .history import HistoryRecorder, MergeResult
from .identity import skill_key
from .photo import resolve_photo
from .sticky import drop_rejected_skills

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SectionDiff:
    added: tuple[str, ...] = ()
    modified: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.modified or self.removed)

    def summary(self) -> str:
        parts = []
        if self.added:
            parts.append(f"{len(self.added)} section(s) added")
        if self.modified:
            parts.append(f"{len(self.modified)} section(s) modified")
        if self.removed:
            parts.append(f"{len(self.removed)} section(s) removed")
        return ", ".join(parts) if parts else "no changes"


def _is_empty_section(value: Any) -> bool:
    if isinstance(value, dict):
        return all(_is_empty_section(item) for item in value.values())
    if isinstance(value, list):
        return not value
    return value in (None, "", False, 0, 0.0)


def diff_sections(previous: ProfileRecord, current: ProfileRecord) -> SectionDiff:
    """Compare two records section by section.

    A section going from empty to filled is added, the reverse is removed,
    and any other difference is a modification.
    """
    before_all = previous.model_dump()
    after_all = current.model_dump()
    added, modified, removed = [], [], []
    for section in CANONICAL_SECTIONS:
        before, after = before_all[section], after_all[section]
        if before == after:
            continue
        if _is_empty_section(before):
            added.append(section)
        elif _is_empty_section(after):
            removed.append(section)
        else:
            modified.append(section)
    return SectionDiff(added=tuple(added), modified=tuple(modified), removed=tuple(removed))


def restore_profile(
    current: Any,
    snapshot: Any,
    *,
    version: int,
    now: datetime | None = None,
) -> MergeResult:
    """Bring a saved version back as the current record.

    The snapshot replaces the record except for what must never go
    backwards: rejections made since the snapshot are kept and their
    suggestions stay hidden, and a transient snapshot photo does not
    displace a durable current one.
    """
    recorder = HistoryRecorder()
    current_result = normalize_profile(current)
    snapshot_result = normalize_profile(snapshot)
    recorder.record_issues("current", current_result.issues)
    recorder.record_issues("snapshot", snapshot_result.issues)
    base = current_result.record
    restored = snapshot_result.record

    rejected = dedupe_texts([*restored.rejected_inferred, *base.rejected_inferred])
    competences = restored.competences.model_copy(
        update={
            "inferred": drop_rejected_skills(
                restored.competences.inferred,
                {skill_key(name) for name in rejected},
                recorder,
            )
        }
    )
    photo, _ = resolve_photo(base.profil.photo_url, restored.profil.photo_url)
    restored = restored.model_copy(
        update={
            "profil": restored.profil.model_copy(update={"photo_url": photo}),
            "competences": competences,
            "rejected_inferred": rejected,
        }
    )

    diff = diff_sections(base, restored)
    detail = f"restored from version {version}"
    for section in diff.added:
        recorder.record(section, section, "added", detail)
    for section in diff.modified:
        recorder.record(section, section, "merged", detail)
    for section in diff.removed:
        recorder.record(section, section, "dropped", detail)
        recorder.touch(section)

    history = recorder.build(source=f"version:{version}", action="restore", now=now)
    logger.info("profile_restore_completed version=%s diff=%s", version, diff.summary())
    return MergeResult(merged=restored, history=history)
