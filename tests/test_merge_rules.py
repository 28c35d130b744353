import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvrag.core.rules import get_merge_rules, get_rule_value  # noqa: E402


class MergeRulesTests(unittest.TestCase):
    def test_loader_and_value_lookup(self):
        rules = get_merge_rules()
        self.assertIsInstance(rules, dict)
        self.assertEqual(get_rule_value("dedup.realisation_similarity"), 0.85)
        self.assertEqual(get_rule_value("history.max_detail_chars"), 160)

    def test_missing_path_returns_default(self):
        self.assertEqual(get_rule_value("dedup.unknown_threshold", 0.5), 0.5)
        self.assertEqual(get_rule_value("dedup.title_similarity.deeper", "x"), "x")
        self.assertIsNone(get_rule_value(""))


if __name__ == "__main__":
    unittest.main()
