import os
import sys
import tempfile
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvrag.rag.errors import (  # noqa: E402
    ConcurrentUpdateError,
    InvalidIdentityError,
    ProfileNotFoundError,
    VersionNotFoundError,
)
from cvrag.services.profile_service import ProfileService  # noqa: E402
from cvrag.store.profile_store import SQLiteProfileStore  # noqa: E402


class _RacingStore(SQLiteProfileStore):
    """Simulates another writer landing between our read and our save."""

    def __init__(self, db_path, conflicts):
        super().__init__(db_path)
        self.conflicts = conflicts
        self.attempts = 0

    def save(self, user_id, record, *, expected_version, history=None, reason=None):
        self.attempts += 1
        if self.conflicts > 0:
            self.conflicts -= 1
            raise ConcurrentUpdateError(user_id, expected_version, (expected_version or 0) + 1)
        return super().save(user_id, record, expected_version=expected_version, history=history, reason=reason)


class ProfileServiceTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self._tmp.name, "profiles.db")
        self.store = SQLiteProfileStore(self.db_path)
        self.service = ProfileService(self.store, max_retries=3)

    def tearDown(self):
        self.store.close()
        self._tmp.cleanup()

    def test_apply_update_accumulates(self):
        first = self.service.apply_update("user-1", {"experiences": [{"poste": "Dev", "entreprise": "Acme"}]}, source="cv1.pdf")
        self.assertEqual(first.version, 1)
        self.assertEqual(first.history.action, "create")

        second = self.service.apply_update(" user-1 ", {"experiences": [{"poste": "Lead", "entreprise": "Beta"}]}, source="cv2.pdf")
        self.assertEqual(second.version, 2)
        self.assertEqual(second.history.action, "merge")
        self.assertEqual(len(self.service.get_profile("user-1").record.experiences), 2)
        self.assertEqual([entry.source for entry in self.service.get_history("user-1")], ["cv1.pdf", "cv2.pdf"])

    def test_invalid_identity(self):
        for user_id in (None, "", "   ", 42):
            with self.subTest(user_id=user_id):
                with self.assertRaises(InvalidIdentityError) as ctx:
                    self.service.apply_update(user_id, {})
                self.assertEqual(ctx.exception.kind, "invalid identity")

    def test_missing_profile(self):
        with self.assertRaises(ProfileNotFoundError):
            self.service.get_profile("nobody")
        with self.assertRaises(ProfileNotFoundError):
            self.service.reject_skill("nobody", "Cobol")

    def test_conflict_is_retried(self):
        store = _RacingStore(self.db_path, conflicts=2)
        service = ProfileService(store, max_retries=3)
        update = service.apply_update("user-2", {"profil": {"nom": "Doe"}})
        self.assertEqual(update.version, 1)
        self.assertEqual(store.attempts, 3)
        store.close()

    def test_conflict_retries_are_bounded(self):
        store = _RacingStore(self.db_path, conflicts=5)
        service = ProfileService(store, max_retries=2)
        with self.assertRaises(ConcurrentUpdateError):
            service.apply_update("user-3", {"profil": {"nom": "Doe"}})
        self.assertEqual(store.attempts, 2)
        store.close()

    def test_regenerate_and_skill_actions(self):
        self.service.apply_update(
            "user-4",
            {
                "references": {"clients": [{"nom": "BNP Paribas"}]},
                "competences": {"inferred": {"techniques": [{"name": "Cobol"}, {"name": "Go"}]}},
            },
        )
        rejected = self.service.reject_skill("user-4", "Cobol")
        self.assertEqual(rejected.record.rejected_inferred, ["Cobol"])
        self.assertIsNone(rejected.history)

        accepted = self.service.accept_skill("user-4", "go")
        self.assertTrue(accepted.record.competences.inferred.techniques[0].added_to_profile)

        regenerated = self.service.regenerate(
            "user-4",
            {"competences": {"inferred": {"techniques": [{"name": "COBOL"}]}}, "references": {"clients": []}},
        )
        self.assertEqual(regenerated.history.action, "regenerate")
        self.assertEqual(regenerated.record.competences.inferred.techniques, [])
        self.assertEqual([c.nom for c in regenerated.record.references.clients], ["BNP Paribas"])
        self.assertEqual(regenerated.record.rejected_inferred, ["Cobol"])
        self.assertEqual(regenerated.version, 4)

    def test_restore_previous_version(self):
        self.service.apply_update(
            "user-5",
            {
                "experiences": [{"poste": "Dev", "entreprise": "Acme", "debut": "2019-01"}],
                "competences": {"inferred": {"techniques": [{"name": "Cobol"}, {"name": "Go"}]}},
            },
            source="cv1.pdf",
        )
        self.service.apply_update(
            "user-5",
            {"experiences": [{"poste": "Astronaute", "entreprise": "Junk", "debut": "2022-01"}]},
            source="bad.pdf",
        )
        self.service.reject_skill("user-5", "Cobol")

        restored = self.service.restore("user-5", 1)
        self.assertEqual(restored.version, 4)
        self.assertEqual([item.poste for item in restored.record.experiences], ["Dev"])
        self.assertEqual(restored.record.rejected_inferred, ["Cobol"])
        self.assertEqual([skill.name for skill in restored.record.competences.inferred.techniques], ["Go"])
        self.assertEqual(restored.history.action, "restore")
        self.assertEqual(restored.history.source, "version:1")
        self.assertIn("experiences", restored.history.fields_updated)

        versions = self.service.list_versions("user-5")
        self.assertEqual([item.reason for item in versions], ["restore", "reject_skill", "merge", "create"])
        self.assertEqual(self.service.get_history("user-5")[-1].action, "restore")

    def test_restore_unknown_version(self):
        with self.assertRaises(ProfileNotFoundError):
            self.service.restore("nobody", 1)
        self.service.apply_update("user-6", {"profil": {"nom": "Doe"}})
        with self.assertRaises(VersionNotFoundError) as ctx:
            self.service.restore("user-6", 9)
        self.assertEqual(ctx.exception.kind, "not found")


if __name__ == "__main__":
    unittest.main()
