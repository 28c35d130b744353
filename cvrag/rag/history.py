from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone

from cvrag.core.rules import get_rule_value
from cvrag.normalize.profile import NormalizationIssue
from cvrag.schemas.history import MergeAction, MergeChange, MergeDecision, MergeHistoryEntry
from cvrag.schemas.profile import ProfileRecord

# decisions that mean the stored record changed for that field
_UPDATING_DECISIONS = {"added", "merged", "preserved"}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _truncate(detail: str | None) -> str | None:
    if detail is None:
        return None
    limit = int(get_rule_value("history.max_detail_chars", 160))
    if limit <= 0 or len(detail) <= limit:
        return detail
    return detail[: max(1, limit - 3)].rstrip() + "..."


@dataclass(slots=True)
class MergeResult:
    merged: ProfileRecord
    history: MergeHistoryEntry


class HistoryRecorder:
    """Collects merge decisions in call order and freezes them into one entry."""

    def __init__(self) -> None:
        self._changes: list[MergeChange] = []
        self._fields: list[str] = []

    def record(
        self,
        section: str,
        identity: str,
        decision: MergeDecision,
        detail: str | None = None,
        *,
        field: str | None = None,
    ) -> None:
        self._changes.append(
            MergeChange(section=section, identity=identity, decision=decision, detail=_truncate(detail))
        )
        if decision in _UPDATING_DECISIONS:
            self.touch(field or section)

    def touch(self, field: str) -> None:
        if field not in self._fields:
            self._fields.append(field)

    def record_issues(self, side: str, issues: list[NormalizationIssue]) -> None:
        for issue in issues:
            self.record(issue.section, side, issue.kind, issue.detail)

    @property
    def changes(self) -> tuple[MergeChange, ...]:
        return tuple(self._changes)

    def build(self, *, source: str, action: MergeAction, now: datetime | None = None) -> MergeHistoryEntry:
        timestamp = (now or _utc_now()).isoformat()
        counts = Counter(change.decision for change in self._changes)
        return MergeHistoryEntry(
            date=timestamp,
            source=source,
            action=action,
            changes=tuple(self._changes),
            counts=dict(sorted(counts.items())),
            fields_updated=tuple(sorted(self._fields)),
        )
