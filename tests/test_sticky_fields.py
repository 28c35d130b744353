import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvrag.rag.photo import (  # noqa: E402
    DurablePhotoRef,
    TransientPhotoRef,
    is_durable_photo,
    parse_photo_reference,
)
from cvrag.rag.sticky import apply_sticky_fields, preserve_on_regeneration, regenerate_profile  # noqa: E402

DURABLE = "storage:profile-photos:avatars/user-1/1.jpg"
SIGNED = "https://signed.example.com/photo.jpg?token=abc"


class PhotoReferenceTests(unittest.TestCase):
    def test_durable_reference_is_parsed(self):
        ref = parse_photo_reference(DURABLE)
        self.assertEqual(ref, DurablePhotoRef(bucket="profile-photos", path="avatars/user-1/1.jpg"))
        self.assertEqual(str(ref), DURABLE)

    def test_other_shapes_are_transient(self):
        for value in (SIGNED, "storage:", "storage:bucket", "storage::path", "storage:bucket: "):
            with self.subTest(value=value):
                self.assertIsInstance(parse_photo_reference(value), TransientPhotoRef)
                self.assertFalse(is_durable_photo(value))

    def test_empty_values(self):
        self.assertIsNone(parse_photo_reference(None))
        self.assertIsNone(parse_photo_reference("   "))
        self.assertIsNone(parse_photo_reference(12))


class ApplyStickyFieldsTests(unittest.TestCase):
    def test_transient_incoming_never_displaces_durable(self):
        corrected = apply_sticky_fields({"profil": {"photo_url": DURABLE}}, {"profil": {"photo_url": SIGNED}})
        self.assertEqual(corrected.profil.photo_url, DURABLE)

    def test_durable_incoming_wins(self):
        newer = "storage:profile-photos:avatars/user-1/2.jpg"
        corrected = apply_sticky_fields({"profil": {"photo_url": DURABLE}}, {"profil": {"photo_url": newer}})
        self.assertEqual(corrected.profil.photo_url, newer)

    def test_projection_drops_ad_hoc_keys(self):
        corrected = apply_sticky_fields({}, {"profil": {"nom": "Doe"}, "score": 42, "topJobs": ["a"]})
        dumped = corrected.model_dump()
        self.assertNotIn("score", dumped)
        self.assertNotIn("topJobs", dumped)
        self.assertEqual(corrected.profil.nom, "Doe")


class RegenerationTests(unittest.TestCase):
    def test_empty_clients_are_carried_forward(self):
        previous = {"references": {"clients": [{"nom": "BNP Paribas"}]}}
        out = preserve_on_regeneration(previous, {"references": {"clients": []}})
        self.assertEqual([client.nom for client in out.references.clients], ["BNP Paribas"])

    def test_non_empty_clients_replace(self):
        previous = {"references": {"clients": [{"nom": "BNP Paribas"}]}}
        out = preserve_on_regeneration(previous, {"references": {"clients": [{"nom": "Orange"}]}})
        self.assertEqual([client.nom for client in out.references.clients], ["Orange"])

    def test_photo_replace_or_keep(self):
        previous = {"profil": {"photo_url": DURABLE}}
        self.assertEqual(preserve_on_regeneration(previous, {}).profil.photo_url, DURABLE)
        self.assertEqual(preserve_on_regeneration(previous, {"profil": {"photo_url": SIGNED}}).profil.photo_url, DURABLE)
        newer = "storage:profile-photos:avatars/user-1/3.jpg"
        self.assertEqual(preserve_on_regeneration(previous, {"profil": {"photo_url": newer}}).profil.photo_url, newer)

    def test_rejections_always_carried_forward(self):
        previous = {"rejected_inferred": ["Cobol", "Fortran"]}
        generated = {
            "rejected_inferred": ["Perl"],
            "competences": {"inferred": {"techniques": [{"name": "cobol", "confidence": 80}, {"name": "Go"}]}},
        }
        out = preserve_on_regeneration(previous, generated)
        self.assertEqual(out.rejected_inferred, ["Cobol", "Fortran", "Perl"])
        self.assertEqual([skill.name for skill in out.competences.inferred.techniques], ["Go"])

    def test_regenerate_profile_history(self):
        result = regenerate_profile(
            {"references": {"clients": [{"nom": "BNP Paribas"}]}, "experiences": [{"poste": "Dev", "entreprise": "A"}]},
            {"experiences": [{"poste": "Lead", "entreprise": "B"}]},
        )
        self.assertEqual(result.history.action, "regenerate")
        self.assertEqual(result.history.source, "regeneration")
        self.assertEqual([item.entreprise for item in result.merged.experiences], ["B"])
        self.assertEqual([client.nom for client in result.merged.references.clients], ["BNP Paribas"])
        self.assertIn(("references", "preserved"), {(c.section, c.decision) for c in result.history.changes})


if __name__ == "__main__":
    unittest.main()
