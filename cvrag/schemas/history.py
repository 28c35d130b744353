from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MergeAction = Literal["create", "merge", "regenerate", "restore"]
MergeDecision = Literal["added", "merged", "kept", "preserved", "conflict", "dropped", "issue"]


class MergeChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    section: str
    identity: str
    decision: MergeDecision
    detail: str | None = None


class MergeHistoryEntry(BaseModel):
    """Write-once audit record of one merge pass."""

    model_config = ConfigDict(frozen=True)

    date: str
    source: str
    action: MergeAction
    changes: tuple[MergeChange, ...] = ()
    counts: dict[str, int] = Field(default_factory=dict)
    fields_updated: tuple[str, ...] = ()

    def content(self) -> dict:
        """Entry payload without the timestamp, for determinism checks."""
        return self.model_dump(exclude={"date"})
