from __future__ import annotations

import json
import os
import sqlite3
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DraftStore:
    """Key-value store for unsaved profile drafts with a per-entry TTL.

    The clock is injectable so expiry can be exercised without waiting.
    """

    def __init__(
        self,
        db_path: str,
        *,
        ttl_minutes: int,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._db_path = db_path
        self._ttl = timedelta(minutes=max(1, int(ttl_minutes)))
        self._clock = clock or _utc_now
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
        conn.execute("PRAGMA busy_timeout=5000;")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS profile_drafts (
                draft_key TEXT PRIMARY KEY,
                payload_json TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                expires_at TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_profile_drafts_expiry
            ON profile_drafts (expires_at);
            """
        )
        self._conn = conn
        return conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def purge_expired(self) -> int:
        now_iso = self._clock().isoformat()
        with self._lock:
            cur = self._connection().execute("DELETE FROM profile_drafts WHERE expires_at <= ?", (now_iso,))
            return cur.rowcount

    def put(self, key: str, payload: dict[str, Any]) -> datetime:
        """Store ``payload`` under ``key`` and return its expiry time."""
        updated_at = self._clock()
        expires_at = updated_at + self._ttl
        payload_json = json.dumps(payload, ensure_ascii=False)

        with self._lock:
            self._connection().execute(
                """
                INSERT INTO profile_drafts (draft_key, payload_json, updated_at, expires_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(draft_key) DO UPDATE SET
                    payload_json = excluded.payload_json,
                    updated_at = excluded.updated_at,
                    expires_at = excluded.expires_at
                """,
                (key, payload_json, updated_at.isoformat(), expires_at.isoformat()),
            )
        return expires_at

    def get(self, key: str) -> dict[str, Any] | None:
        self.purge_expired()
        with self._lock:
            row = self._connection().execute(
                "SELECT payload_json, updated_at, expires_at FROM profile_drafts WHERE draft_key = ?",
                (key,),
            ).fetchone()

        if not row:
            return None
        return {
            "payload": json.loads(row[0]) if row[0] else {},
            "updated_at": row[1],
            "expires_at": row[2],
        }

    def delete(self, key: str) -> bool:
        with self._lock:
            cur = self._connection().execute("DELETE FROM profile_drafts WHERE draft_key = ?", (key,))
            return cur.rowcount > 0
