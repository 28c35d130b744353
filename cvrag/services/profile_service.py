from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from cvrag.core.config import settings
from cvrag.rag.errors import ConcurrentUpdateError, ProfileNotFoundError, VersionNotFoundError, require_identity
from cvrag.rag.history import MergeResult
from cvrag.rag.merge import merge_profiles
from cvrag.rag.skills import accept_inferred_skill, reject_inferred_skill
from cvrag.rag.sticky import regenerate_profile
from cvrag.rag.versioning import restore_profile
from cvrag.schemas.history import MergeHistoryEntry
from cvrag.schemas.profile import ProfileRecord
from cvrag.store.draft_store import DraftStore
from cvrag.store.profile_store import ProfileVersion, SQLiteProfileStore, StoredProfile

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProfileUpdate:
    user_id: str
    version: int
    record: ProfileRecord
    history: MergeHistoryEntry | None = None


class ProfileService:
    """Read-compute-write cycles around the pure merge core.

    Each update reads the stored record and its version, runs the core, and
    saves against that version. A concurrent writer makes the save fail, in
    which case the whole cycle is retried from a fresh read.
    """

    def __init__(self, store: SQLiteProfileStore, *, max_retries: int = 3) -> None:
        self._store = store
        self._max_retries = max(1, int(max_retries))

    def _run(
        self,
        user_id: Any,
        operation: str,
        compute: Callable[[StoredProfile | None], tuple[ProfileRecord, MergeHistoryEntry | None]],
    ) -> ProfileUpdate:
        key = require_identity(user_id)
        attempt = 0

        while True:
            attempt += 1
            stored = self._store.get(key)
            record, history = compute(stored)
            try:
                version = self._store.save(
                    key,
                    record,
                    expected_version=stored.version if stored else None,
                    history=history,
                    reason=history.action if history is not None else operation,
                )
            except ConcurrentUpdateError:
                logger.warning(
                    "profile_update_conflict op=%s user_id=%s attempt=%s/%s",
                    operation,
                    key,
                    attempt,
                    self._max_retries,
                )
                if attempt >= self._max_retries:
                    raise
                continue

            logger.info("profile_update_saved op=%s user_id=%s version=%s", operation, key, version)
            return ProfileUpdate(user_id=key, version=version, record=record, history=history)

    def apply_update(self, user_id: Any, incoming: Any, *, source: str = "unknown") -> ProfileUpdate:
        def compute(stored: StoredProfile | None) -> tuple[ProfileRecord, MergeHistoryEntry]:
            result: MergeResult = merge_profiles(stored.record if stored else None, incoming, source=source)
            return result.merged, result.history

        return self._run(user_id, "merge", compute)

    def regenerate(self, user_id: Any, generated: Any, *, source: str = "regeneration") -> ProfileUpdate:
        def compute(stored: StoredProfile | None) -> tuple[ProfileRecord, MergeHistoryEntry]:
            result = regenerate_profile(stored.record if stored else None, generated, source=source)
            return result.merged, result.history

        return self._run(user_id, "regenerate", compute)

    def reject_skill(self, user_id: Any, name: Any) -> ProfileUpdate:
        def compute(stored: StoredProfile | None) -> tuple[ProfileRecord, None]:
            if stored is None:
                raise ProfileNotFoundError(require_identity(user_id))
            return reject_inferred_skill(stored.record, name), None

        return self._run(user_id, "reject_skill", compute)

    def accept_skill(self, user_id: Any, name: Any) -> ProfileUpdate:
        def compute(stored: StoredProfile | None) -> tuple[ProfileRecord, None]:
            if stored is None:
                raise ProfileNotFoundError(require_identity(user_id))
            record, found = accept_inferred_skill(stored.record, name)
            if not found:
                logger.info("inferred_skill_not_found user_id=%s skill=%s", user_id, name)
            return record, None

        return self._run(user_id, "accept_skill", compute)

    def restore(self, user_id: Any, version: int) -> ProfileUpdate:
        """Make a previously saved version current again, as a new version."""

        def compute(stored: StoredProfile | None) -> tuple[ProfileRecord, MergeHistoryEntry]:
            key = require_identity(user_id)
            if stored is None:
                raise ProfileNotFoundError(key)
            snapshot = self._store.get_version(key, version)
            if snapshot is None:
                raise VersionNotFoundError(key, version)
            result = restore_profile(stored.record, snapshot.record, version=snapshot.version)
            return result.merged, result.history

        return self._run(user_id, "restore", compute)

    def get_profile(self, user_id: Any) -> StoredProfile:
        key = require_identity(user_id)
        stored = self._store.get(key)
        if stored is None:
            raise ProfileNotFoundError(key)
        return stored

    def get_history(self, user_id: Any, *, limit: int | None = None) -> list[MergeHistoryEntry]:
        return self._store.list_history(require_identity(user_id), limit=limit)

    def list_versions(self, user_id: Any, *, limit: int | None = None) -> list[ProfileVersion]:
        return self._store.list_versions(require_identity(user_id), limit=limit)


@lru_cache(maxsize=1)
def get_profile_service() -> ProfileService:
    return ProfileService(
        SQLiteProfileStore(settings.profile_store_db_path),
        max_retries=settings.max_update_retries,
    )


@lru_cache(maxsize=1)
def get_draft_store() -> DraftStore:
    return DraftStore(settings.draft_store_db_path, ttl_minutes=settings.draft_ttl_minutes)
