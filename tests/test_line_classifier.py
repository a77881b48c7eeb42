from __future__ import annotations

import re
import unittest

from document_intelligence.line_classifier import (
    LineRule,
    classify_lines,
    first_tagged,
    keyword_pattern,
    split_lines,
)


class TestSplitLines(unittest.TestCase):
    def test_drops_blank_lines_and_trims(self) -> None:
        text = "  Aspirin  \n\n   \r\n100mg\rTake twice daily\n"
        self.assertEqual(split_lines(text), ("Aspirin", "100mg", "Take twice daily"))

    def test_preserves_case_and_punctuation(self) -> None:
        self.assertEqual(split_lines("Dr. SMITH, md;"), ("Dr. SMITH, md;",))

    def test_empty_input(self) -> None:
        self.assertEqual(split_lines(""), ())
        self.assertEqual(split_lines(" \n \n"), ())
        self.assertEqual(split_lines(None), ())


class TestLineRules(unittest.TestCase):
    def test_all_patterns_must_match_and_no_exclude(self) -> None:
        rule = LineRule(
            "amount",
            patterns=(keyword_pattern(["total"]), re.compile(r"\d+")),
            excludes=(re.compile(r"tax", re.IGNORECASE),),
        )
        self.assertTrue(rule.matches("Total: 25"))
        self.assertFalse(rule.matches("Total due"))
        self.assertFalse(rule.matches("Total tax 5"))

    def test_min_length(self) -> None:
        rule = LineRule("name", patterns=(re.compile(r"^[A-Z]"),), min_length=4)
        self.assertFalse(rule.matches("Abc"))
        self.assertTrue(rule.matches("Abcd"))

    def test_classify_tags_every_matching_rule(self) -> None:
        rules = (
            LineRule("upper", patterns=(re.compile(r"^[A-Z]"),)),
            LineRule("digit", patterns=(re.compile(r"\d"),)),
        )
        classified = classify_lines(["Take 2", "take", "5mg"], rules)

        self.assertEqual(classified[0].tags, frozenset({"upper", "digit"}))
        self.assertEqual(classified[1].tags, frozenset())
        self.assertEqual(classified[2].tags, frozenset({"digit"}))
        self.assertEqual(first_tagged(classified, "digit"), "Take 2")
        self.assertEqual(first_tagged(classified, "missing"), "")


if __name__ == "__main__":
    unittest.main()
