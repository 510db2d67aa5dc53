"""Matching engine and its building blocks."""

from .engine import ReconciliationEngine
from .aggregator import aggregate
from .filters import apply_filters
from .matcher import Matcher, match
from .rules import (
    FieldRuleEvaluator,
    ExactRuleEvaluator,
    FuzzyRuleEvaluator,
    NumericDiffRuleEvaluator,
    evaluate,
)
from .summarizer import summarize

__all__ = [
    "ReconciliationEngine",
    "aggregate",
    "apply_filters",
    "Matcher",
    "match",
    "FieldRuleEvaluator",
    "ExactRuleEvaluator",
    "FuzzyRuleEvaluator",
    "NumericDiffRuleEvaluator",
    "evaluate",
    "summarize",
]
