import os
import sys
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvrag.rag.errors import ConcurrentUpdateError  # noqa: E402
from cvrag.rag.merge import merge_profiles  # noqa: E402
from cvrag.schemas.profile import ProfileRecord  # noqa: E402
from cvrag.store.draft_store import DraftStore  # noqa: E402
from cvrag.store.profile_store import SQLiteProfileStore  # noqa: E402


class ProfileStoreTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = SQLiteProfileStore(os.path.join(self._tmp.name, "nested", "profiles.db"))

    def tearDown(self):
        self.store.close()
        self._tmp.cleanup()

    def test_insert_then_update_with_versions(self):
        self.assertIsNone(self.store.get("user-1"))
        result = merge_profiles(None, {"profil": {"nom": "Doe"}}, source="cv1.pdf")
        version = self.store.save("user-1", result.merged, expected_version=None, history=result.history)
        self.assertEqual(version, 1)

        stored = self.store.get("user-1")
        self.assertEqual(stored.version, 1)
        self.assertEqual(stored.record.profil.nom, "Doe")

        second = merge_profiles(stored.record, {"profil": {"prenom": "Jane"}}, source="cv2.pdf")
        self.assertEqual(
            self.store.save("user-1", second.merged, expected_version=1, history=second.history),
            2,
        )
        history = self.store.list_history("user-1")
        self.assertEqual([entry.source for entry in history], ["cv1.pdf", "cv2.pdf"])
        self.assertEqual(history[1].content(), second.history.content())
        self.assertEqual([entry.source for entry in self.store.list_history("user-1", limit=1)], ["cv2.pdf"])

    def test_stale_version_is_rejected(self):
        self.store.save("user-1", ProfileRecord(), expected_version=None)
        self.store.save("user-1", ProfileRecord(rejected_inferred=["Cobol"]), expected_version=1)

        with self.assertRaises(ConcurrentUpdateError) as ctx:
            self.store.save("user-1", ProfileRecord(), expected_version=1)
        self.assertEqual(ctx.exception.actual_version, 2)
        with self.assertRaises(ConcurrentUpdateError):
            self.store.save("user-1", ProfileRecord(), expected_version=None)

        stored = self.store.get("user-1")
        self.assertEqual(stored.version, 2)
        self.assertEqual(stored.record.rejected_inferred, ["Cobol"])

    def test_failed_save_writes_no_history(self):
        self.store.save("user-1", ProfileRecord(), expected_version=None)
        entry = merge_profiles(None, {}).history
        with self.assertRaises(ConcurrentUpdateError):
            self.store.save("user-1", ProfileRecord(), expected_version=5, history=entry)
        self.assertEqual(self.store.list_history("user-1"), [])
        self.assertEqual([item.version for item in self.store.list_versions("user-1")], [1])

    def test_every_save_keeps_a_snapshot(self):
        created = merge_profiles(None, {"profil": {"nom": "Doe"}}, source="cv1.pdf")
        self.store.save("user-1", created.merged, expected_version=None, history=created.history)
        self.store.save("user-1", ProfileRecord(rejected_inferred=["Cobol"]), expected_version=1, reason="reject_skill")

        versions = self.store.list_versions("user-1")
        self.assertEqual([(item.version, item.reason) for item in versions], [(2, "reject_skill"), (1, "create")])
        self.assertEqual([item.version for item in self.store.list_versions("user-1", limit=1)], [2])

        first = self.store.get_version("user-1", 1)
        self.assertEqual(first.record.profil.nom, "Doe")
        self.assertEqual(first.version, 1)
        self.assertIsNone(self.store.get_version("user-1", 3))
        self.assertIsNone(self.store.get_version("someone-else", 1))


class DraftStoreTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.store = DraftStore(
            os.path.join(self._tmp.name, "drafts.db"),
            ttl_minutes=30,
            clock=lambda: self.now,
        )

    def tearDown(self):
        self.store.close()
        self._tmp.cleanup()

    def test_put_get_delete(self):
        expires_at = self.store.put("user-1", {"profil": {"nom": "Doe"}})
        self.assertEqual(expires_at, self.now + timedelta(minutes=30))
        draft = self.store.get("user-1")
        self.assertEqual(draft["payload"], {"profil": {"nom": "Doe"}})
        self.assertTrue(self.store.delete("user-1"))
        self.assertFalse(self.store.delete("user-1"))
        self.assertIsNone(self.store.get("user-1"))

    def test_entries_expire(self):
        self.store.put("user-1", {"a": 1})
        self.now += timedelta(minutes=29)
        self.assertIsNotNone(self.store.get("user-1"))
        self.now += timedelta(minutes=2)
        self.assertIsNone(self.store.get("user-1"))

    def test_put_refreshes_ttl(self):
        self.store.put("user-1", {"a": 1})
        self.now += timedelta(minutes=20)
        self.store.put("user-1", {"a": 2})
        self.now += timedelta(minutes=20)
        self.assertEqual(self.store.get("user-1")["payload"], {"a": 2})

    def test_purge_expired_counts_rows(self):
        self.store.put("user-1", {})
        self.store.put("user-2", {})
        self.now += timedelta(hours=1)
        self.assertEqual(self.store.purge_expired(), 2)


if __name__ == "__main__":
    unittest.main()
