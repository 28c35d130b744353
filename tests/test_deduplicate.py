import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvrag.rag.deduplicate import consolidate_clients, deduplicate_profile, experiences_match, similarity  # noqa: E402
from cvrag.schemas.profile import Experience, ProfileRecord  # noqa: E402


class SimilarityTests(unittest.TestCase):
    def test_ratio_on_normalized_text(self):
        self.assertEqual(similarity("Développeur", " developpeur "), 1.0)
        self.assertEqual(similarity("", "x"), 0.0)
        self.assertLess(similarity("Python", "Kubernetes"), 0.5)


class ExperienceMatchTests(unittest.TestCase):
    def test_free_text_start_dates_are_compared_as_months(self):
        first = Experience(poste="Data Engineer", entreprise="Orange", debut="janvier 2020")
        second = Experience(poste="Data Engineer", entreprise="Orange", debut="2020-02")
        self.assertTrue(experiences_match(first, second))

    def test_unreadable_start_date_is_not_a_match(self):
        first = Experience(poste="Data Engineer", entreprise="Orange", debut="un jour")
        second = Experience(poste="Data Engineer", entreprise="Orange", debut="2020-02")
        self.assertFalse(experiences_match(first, second))


class DeduplicateProfileTests(unittest.TestCase):
    def test_record_with_free_text_dates(self):
        record = ProfileRecord(
            experiences=[
                Experience(poste="Data Engineer", entreprise="Orange", debut="janvier 2020"),
                Experience(poste="Data Engineer", entreprise="Orange", debut="2020-02", technologies=["Spark"]),
            ]
        )
        experiences = deduplicate_profile(record).merged.experiences
        self.assertEqual(len(experiences), 1)
        self.assertEqual(experiences[0].debut, "2020-01")
        self.assertEqual(experiences[0].technologies, ["Spark"])

    def test_near_duplicate_experiences_are_collapsed(self):
        record = {
            "experiences": [
                {
                    "poste": "Développeur Full Stack",
                    "entreprise": "Capgemini",
                    "debut": "2020-01",
                    "realisations": ["Refonte du portail client"],
                },
                {
                    "poste": "Developpeur Fullstack",
                    "entreprise": "Capgemini France",
                    "debut": "2020-02",
                    "realisations": ["Refonte du portail clients", "Tests automatisés"],
                    "technologies": ["React"],
                },
                {"poste": "Développeur Full Stack", "entreprise": "Capgemini", "debut": "2015-01"},
            ]
        }
        result = deduplicate_profile(record)
        experiences = result.merged.experiences
        self.assertEqual(len(experiences), 2)
        first = experiences[0]
        self.assertEqual(first.debut, "2020-01")
        self.assertEqual(first.technologies, ["React"])
        self.assertEqual(
            [item.description for item in first.realisations],
            ["Refonte du portail clients", "Tests automatisés"],
        )
        self.assertGreaterEqual(result.history.counts.get("merged", 0), 2)

    def test_near_duplicate_names(self):
        record = {
            "competences": {"explicit": {"techniques": ["PostgreSQL", "Postgresql ", "Python"]}},
            "certifications": [{"nom": "AWS Certified Developer"}, {"nom": "AWS Certified Developers", "numero": "X1"}],
            "langues": [{"langue": "Anglais"}, {"langue": "anglais", "niveau_cecrl": "C1"}],
        }
        merged = deduplicate_profile(record).merged
        self.assertEqual(merged.competences.explicit.techniques, ["PostgreSQL", "Python"])
        self.assertEqual(len(merged.certifications), 1)
        self.assertEqual(merged.certifications[0].numero, "X1")
        self.assertEqual(len(merged.langues), 1)
        self.assertEqual(merged.langues[0].niveau_cecrl, "C1")

    def test_distinct_entities_survive(self):
        record = {
            "formations": [
                {"diplome": "Master Informatique", "ecole": "Université de Lyon", "annee": "2015"},
                {"diplome": "Licence Informatique", "ecole": "Université de Lyon", "annee": "2013"},
            ],
            "references": {"clients": [{"nom": "Orange"}, {"nom": "Thales"}]},
        }
        merged = deduplicate_profile(record).merged
        self.assertEqual(len(merged.formations), 2)
        self.assertEqual([client.nom for client in merged.references.clients], ["Orange", "Thales"])

    def test_clients_cited_in_experiences_are_consolidated(self):
        record = ProfileRecord.model_validate(
            {
                "experiences": [{"poste": "Consultant", "entreprise": "Sopra", "clients_references": ["BNP", "Orange"]}],
                "references": {"clients": [{"nom": "BNP Paribas"}]},
            }
        )
        consolidated = consolidate_clients(record)
        self.assertEqual([client.nom for client in consolidated.references.clients], ["BNP Paribas", "Orange"])


if __name__ == "__main__":
    unittest.main()
