"""Tests for field rule evaluation."""

import pytest

from statement_recon.config import ExactRule, FuzzyRule, NumericDiffRule
from statement_recon.matching.rules import evaluate, similarity_ratio


class TestExactRule:
    """Test case-insensitive, trimmed equality."""

    def test_strings_compare_case_insensitively_and_trimmed(self):
        outcome = evaluate(" INV-1 ", "inv-1", ExactRule())
        assert outcome.passed
        assert outcome.confidence == 1.0

    def test_different_strings_fail(self):
        outcome = evaluate("INV-1", "INV-2", ExactRule())
        assert not outcome.passed
        assert outcome.confidence == 0.0
        assert "INV-1 ≠ INV-2" in outcome.note

    def test_numbers_compare_numerically(self):
        assert evaluate(100, 100.0, ExactRule()).passed
        assert not evaluate(100.0, 100.5, ExactRule()).passed


class TestFuzzyRule:
    """Test string similarity against tolerance."""

    def test_one_inserted_character_passes_at_90(self):
        outcome = evaluate("Ahmed Ali", "Ahmed Alli", FuzzyRule(tolerance=90))
        assert outcome.passed
        assert outcome.confidence == pytest.approx(18 / 19)
        assert "≈" in outcome.note

    def test_different_first_name_fails_at_90(self):
        outcome = evaluate("Ahmed Ali", "Mohammed Ali", FuzzyRule(tolerance=90))
        assert not outcome.passed
        assert outcome.confidence < 0.9

    def test_identical_ignoring_case_has_no_note(self):
        outcome = evaluate("AHMED ALI", "ahmed ali", FuzzyRule(tolerance=90))
        assert outcome.passed
        assert outcome.confidence == 1.0
        assert outcome.note == ""

    def test_similarity_is_symmetric(self):
        pairs = [("Ahmed Ali", "Mohammed Ali"), ("abcd", "bcda"), ("Sara", "Sarah O")]
        for a, b in pairs:
            assert similarity_ratio(a, b) == similarity_ratio(b, a)

    def test_one_side_empty_fails(self):
        assert not evaluate("Ahmed Ali", "", FuzzyRule(tolerance=50)).passed


class TestNumericDiffRule:
    """Test absolute difference tolerance."""

    def test_difference_equal_to_max_passes(self):
        assert evaluate(100, 101, NumericDiffRule(max_diff=1)).passed

    def test_difference_above_max_fails(self):
        outcome = evaluate(100, 101.01, NumericDiffRule(max_diff=1))
        assert not outcome.passed
        assert outcome.confidence == 0.0
        assert "> 1" in outcome.note

    def test_confidence_scales_with_difference(self):
        outcome = evaluate(100, 100.5, NumericDiffRule(max_diff=1))
        assert outcome.passed
        assert outcome.confidence == pytest.approx(0.5)

    def test_zero_max_diff_requires_equality(self):
        assert evaluate(10, 10, NumericDiffRule(max_diff=0)).confidence == 1.0
        assert not evaluate(10, 10.01, NumericDiffRule(max_diff=0)).passed

    def test_float_noise_is_absorbed(self):
        assert evaluate(100.1, 100.0, NumericDiffRule(max_diff=0.1)).passed

    def test_non_numeric_value_fails(self):
        outcome = evaluate("abc", 100, NumericDiffRule(max_diff=5))
        assert not outcome.passed
        assert outcome.confidence == 0.0


class TestEmptyValues:
    """Test the neutral empty-vs-empty outcome."""

    def test_both_empty_is_neutral_pass(self):
        outcome = evaluate("", "  ", ExactRule())
        assert outcome.passed
        assert outcome.confidence == 0.5

    def test_empty_confidence_is_configurable(self):
        outcome = evaluate(None, "", FuzzyRule(tolerance=90), empty_confidence=0.2)
        assert outcome.passed
        assert outcome.confidence == 0.2
