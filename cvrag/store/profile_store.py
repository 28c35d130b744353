from __future__ import annotations

import os
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

from cvrag.rag.errors import ConcurrentUpdateError
from cvrag.schemas.history import MergeHistoryEntry
from cvrag.schemas.profile import ProfileRecord


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class StoredProfile:
    user_id: str
    record: ProfileRecord
    version: int
    updated_at: str


@dataclass(slots=True)
class ProfileVersion:
    version: int
    reason: str
    created_at: str


class SQLiteProfileStore:
    """Profile upsert keyed by user id with optimistic concurrency.

    Every save names the version it was computed from; a stale version
    raises ConcurrentUpdateError instead of overwriting a newer record.
    History entries and a full snapshot of every saved version are written
    in the same transaction as the profile, so any version can be restored.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn

        directory = os.path.dirname(self._db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        conn = sqlite3.connect(
            self._db_path,
            check_same_thread=False,
            timeout=5,
            isolation_level=None,
        )
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute("PRAGMA busy_timeout=5000;")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS profiles (
                user_id TEXT PRIMARY KEY,
                version INTEGER NOT NULL,
                record_json TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS merge_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                version INTEGER NOT NULL,
                entry_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_merge_history_user
            ON merge_history (user_id, id);
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS profile_versions (
                user_id TEXT NOT NULL,
                version INTEGER NOT NULL,
                reason TEXT NOT NULL,
                record_json TEXT NOT NULL,
                created_at TEXT NOT NULL,
                PRIMARY KEY (user_id, version)
            );
            """
        )
        self._conn = conn
        return conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def get(self, user_id: str) -> StoredProfile | None:
        with self._lock:
            cur = self._connection().execute(
                "SELECT user_id, version, record_json, updated_at FROM profiles WHERE user_id = ?",
                (user_id,),
            )
            row = cur.fetchone()

        if not row:
            return None
        return StoredProfile(
            user_id=row[0],
            version=int(row[1]),
            record=ProfileRecord.model_validate_json(row[2]),
            updated_at=row[3],
        )

    def save(
        self,
        user_id: str,
        record: ProfileRecord,
        *,
        expected_version: int | None,
        history: MergeHistoryEntry | None = None,
        reason: str | None = None,
    ) -> int:
        """Write ``record`` and return its new version.

        ``expected_version`` is None when the caller saw no stored profile.
        ``reason`` labels the version snapshot and defaults to the history
        action.
        """
        reason = reason or (history.action if history is not None else "update")
        now_iso = _utc_now().isoformat()
        record_json = record.model_dump_json()
        new_version = 1 if expected_version is None else expected_version + 1

        with self._lock:
            conn = self._connection()
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute("SELECT version FROM profiles WHERE user_id = ?", (user_id,)).fetchone()
                actual_version = int(row[0]) if row else None
                if actual_version != expected_version:
                    raise ConcurrentUpdateError(user_id, expected_version, actual_version)

                if row is None:
                    conn.execute(
                        """
                        INSERT INTO profiles (user_id, version, record_json, updated_at)
                        VALUES (?, ?, ?, ?)
                        """,
                        (user_id, new_version, record_json, now_iso),
                    )
                else:
                    conn.execute(
                        """
                        UPDATE profiles
                        SET version = ?, record_json = ?, updated_at = ?
                        WHERE user_id = ? AND version = ?
                        """,
                        (new_version, record_json, now_iso, user_id, expected_version),
                    )

                if history is not None:
                    conn.execute(
                        """
                        INSERT INTO merge_history (user_id, version, entry_json, created_at)
                        VALUES (?, ?, ?, ?)
                        """,
                        (user_id, new_version, history.model_dump_json(), now_iso),
                    )
                conn.execute(
                    """
                    INSERT INTO profile_versions (user_id, version, reason, record_json, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (user_id, new_version, reason, record_json, now_iso),
                )
                conn.execute("COMMIT")
            except BaseException:
                conn.execute("ROLLBACK")
                raise
        return new_version

    def list_history(self, user_id: str, *, limit: int | None = None) -> list[MergeHistoryEntry]:
        """Return history entries oldest first, optionally only the last ``limit``."""
        query = "SELECT entry_json FROM merge_history WHERE user_id = ? ORDER BY id DESC"
        params: tuple = (user_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (user_id, max(0, int(limit)))

        with self._lock:
            rows = self._connection().execute(query, params).fetchall()

        return [MergeHistoryEntry.model_validate_json(row[0]) for row in reversed(rows)]

    def list_versions(self, user_id: str, *, limit: int | None = None) -> list[ProfileVersion]:
        """Return saved versions newest first."""
        query = "SELECT version, reason, created_at FROM profile_versions WHERE user_id = ? ORDER BY version DESC"
        params: tuple = (user_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (user_id, max(0, int(limit)))

        with self._lock:
            rows = self._connection().execute(query, params).fetchall()

        return [ProfileVersion(version=int(row[0]), reason=row[1], created_at=row[2]) for row in rows]

    def get_version(self, user_id: str, version: int) -> StoredProfile | None:
        with self._lock:
            row = self._connection().execute(
                "SELECT version, record_json, created_at FROM profile_versions WHERE user_id = ? AND version = ?",
                (user_id, int(version)),
            ).fetchone()

        if not row:
            return None
        return StoredProfile(
            user_id=user_id,
            record=ProfileRecord.model_validate_json(row[1]),
            version=int(row[0]),
            updated_at=row[2],
        )
