"""
Field rule evaluators.
Each evaluator compares two field values under one rule kind and reports
whether the rule passed together with a 0-1 confidence contribution.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Any

from ..config import ExactRule, FuzzyRule, MatchingRule, NumericDiffRule
from ..mapping.column_mapper import format_string, is_blank, parse_number

EPSILON = 1e-9


@dataclass(frozen=True)
class RuleOutcome:
    """Result of evaluating a single rule."""

    passed: bool
    confidence: float
    note: str = ""


class FieldRuleEvaluator(ABC):
    """Abstract base class for rule evaluators."""

    @abstractmethod
    def compare(self, own_value: Any, counterparty_value: Any) -> RuleOutcome:
        """
        Compare two non-empty values.

        Args:
            own_value: Value from the own-side record
            counterparty_value: Value from the counterparty record

        Returns:
            Rule outcome
        """
        pass


class ExactRuleEvaluator(FieldRuleEvaluator):
    """Case-insensitive trimmed equality; numeric equality for numbers."""

    def compare(self, own_value: Any, counterparty_value: Any) -> RuleOutcome:
        if _is_number(own_value) and _is_number(counterparty_value):
            equal = float(own_value) == float(counterparty_value)
        else:
            equal = exact_key(own_value) == exact_key(counterparty_value)

        if equal:
            return RuleOutcome(True, 1.0)
        return RuleOutcome(
            False, 0.0, f"{_display(own_value)} ≠ {_display(counterparty_value)}"
        )


class FuzzyRuleEvaluator(FieldRuleEvaluator):
    """String similarity ratio (0-100) must reach the tolerance."""

    def __init__(self, tolerance: float):
        """
        Initialize with a similarity tolerance.

        Args:
            tolerance: Minimum similarity percentage (0-100)
        """
        self.tolerance = tolerance

    def compare(self, own_value: Any, counterparty_value: Any) -> RuleOutcome:
        ratio = similarity_ratio(own_value, counterparty_value)
        own_text, counterparty_text = _display(own_value), _display(counterparty_value)

        if ratio >= self.tolerance:
            note = ""
            if exact_key(own_value) != exact_key(counterparty_value):
                note = f"{own_text} ≈ {counterparty_text} ({ratio:.0f}%)"
            return RuleOutcome(True, ratio / 100, note)

        return RuleOutcome(
            False, ratio / 100, f"{own_text} ≠ {counterparty_text} ({ratio:.0f}%)"
        )


class NumericDiffRuleEvaluator(FieldRuleEvaluator):
    """Absolute difference must not exceed max_diff."""

    def __init__(self, max_diff: float):
        """
        Initialize with an allowed difference.

        Args:
            max_diff: Maximum absolute difference that still passes
        """
        self.max_diff = max_diff

    def compare(self, own_value: Any, counterparty_value: Any) -> RuleOutcome:
        own_number = parse_number(own_value)
        counterparty_number = parse_number(counterparty_value)
        if own_number is None or counterparty_number is None:
            return RuleOutcome(
                False,
                0.0,
                f"{_display(own_value)} / {_display(counterparty_value)} not numeric",
            )

        # Rounded to absorb binary float noise (100.1 - 100 etc.)
        diff = round(abs(own_number - counterparty_number), 9)
        confidence = 1 - min(1.0, diff / max(self.max_diff, EPSILON))

        if diff <= self.max_diff:
            note = f"difference {diff:.2f}" if diff > 0 else ""
            return RuleOutcome(True, confidence, note)

        return RuleOutcome(
            False,
            confidence,
            f"|{_display(own_number)} - {_display(counterparty_number)}| = "
            f"{diff:.2f} > {_display(self.max_diff)}",
        )


def build_evaluator(rule: MatchingRule) -> FieldRuleEvaluator:
    """Create the evaluator for a configured rule."""
    if isinstance(rule, ExactRule):
        return ExactRuleEvaluator()
    if isinstance(rule, FuzzyRule):
        return FuzzyRuleEvaluator(rule.tolerance)
    if isinstance(rule, NumericDiffRule):
        return NumericDiffRuleEvaluator(rule.max_diff)
    raise ValueError(f"Unsupported rule: {rule!r}")


def evaluate(
    own_value: Any,
    counterparty_value: Any,
    rule: MatchingRule,
    empty_confidence: float = 0.5,
) -> RuleOutcome:
    """
    Evaluate one rule for a pair of values.

    Both values empty is a neutral pass carrying empty_confidence.

    Args:
        own_value: Value from the own-side record
        counterparty_value: Value from the counterparty record
        rule: Rule to apply
        empty_confidence: Confidence reported for empty-vs-empty

    Returns:
        Rule outcome
    """
    return compare_with(
        build_evaluator(rule), own_value, counterparty_value, empty_confidence
    )


def compare_with(
    evaluator: FieldRuleEvaluator,
    own_value: Any,
    counterparty_value: Any,
    empty_confidence: float = 0.5,
) -> RuleOutcome:
    """Evaluate with a prebuilt evaluator, applying the empty-vs-empty rule."""
    if is_blank(own_value) and is_blank(counterparty_value):
        return RuleOutcome(True, empty_confidence)
    return evaluator.compare(own_value, counterparty_value)


def similarity_ratio(first: Any, second: Any) -> float:
    """
    Symmetric string similarity as a 0-100 percentage.

    Strings are compared case-insensitively with whitespace collapsed; the
    pair is ordered before comparison so the ratio does not depend on
    argument order.
    """
    a, b = sorted((_normalize_fuzzy(first), _normalize_fuzzy(second)))
    if not a and not b:
        return 100.0
    return SequenceMatcher(None, a, b).ratio() * 100


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def exact_key(value: Any) -> str:
    """Comparison key for exact matching; equal keys mean an exact pass."""
    if is_blank(value):
        return ""
    return format_string(value).casefold()


def _normalize_fuzzy(value: Any) -> str:
    return " ".join(exact_key(value).split())


def _display(value: Any) -> str:
    if is_blank(value):
        return "''"
    return format_string(value)
