"""
Greedy one-to-one matcher.
Pairs each own record with the best unconsumed counterparty record.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from ..config import RULE_DATA_TYPES, MatchingField
from ..models.records import (
    FieldComparison,
    MatchStatus,
    NormalizedRecord,
    ReconciliationRecord,
)
from ..utils.exceptions import ConfigurationError
from .rules import FieldRuleEvaluator, build_evaluator, compare_with, exact_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateScore:
    """Scoring of one counterparty candidate against an own record."""

    index: int
    row_index: int
    score: float
    all_passed: bool
    passed_count: int
    comparisons: tuple[FieldComparison, ...]


class Matcher:
    """
    Deterministic greedy matcher.

    Own records are processed in input order. For each one, the fully
    passing candidate with the highest mean confidence wins; failing that,
    the best scoring candidate is accepted as a partial match if it reaches
    the threshold and passed at least one field. Ties go to the lowest
    counterparty row index. The consumption state is local to one match() call.
    """

    def __init__(
        self,
        fields: list[MatchingField],
        partial_match_threshold: float = 0.5,
        empty_confidence: float = 0.5,
        anchor_field: Optional[str] = None,
    ):
        """
        Initialize the matcher.

        Args:
            fields: Matching fields; disabled ones are ignored
            partial_match_threshold: Minimum score for a partial match
            empty_confidence: Confidence for empty-vs-empty comparisons
            anchor_field: Optional exact-rule field used to bucket candidates

        Raises:
            ConfigurationError: If no field is enabled or a rule does not
                suit its field's data type
        """
        self.fields = [f for f in fields if f.enabled]
        if not self.fields:
            raise ConfigurationError("At least one matching field must be enabled")

        for field in self.fields:
            if field.data_type not in RULE_DATA_TYPES[field.rule.type]:
                raise ConfigurationError(
                    f"Field '{field.id}': rule '{field.rule.type}' cannot be used "
                    f"with data type '{field.data_type}'",
                    field.id,
                )

        if anchor_field is not None:
            anchor = next((f for f in self.fields if f.id == anchor_field), None)
            if anchor is None or anchor.rule.type != "exact":
                raise ConfigurationError(
                    f"Anchor field '{anchor_field}' must be an enabled exact-rule field",
                    anchor_field,
                )

        self.partial_match_threshold = partial_match_threshold
        self.empty_confidence = empty_confidence
        self.anchor_field = anchor_field
        self._evaluators: dict[str, FieldRuleEvaluator] = {
            f.id: build_evaluator(f.rule) for f in self.fields
        }

    def match(
        self,
        own: list[NormalizedRecord],
        counterparty: list[NormalizedRecord],
    ) -> list[ReconciliationRecord]:
        """
        Pair own records with counterparty records.

        Args:
            own: Normalized own-side records, in input order
            counterparty: Normalized (possibly aggregated) counterparty records

        Returns:
            One result per own record in input order, followed by one
            MISSING_IN_OWN result per unconsumed counterparty record
        """
        consumed = [False] * len(counterparty)
        buckets = self._build_buckets(counterparty) if self.anchor_field else None
        results: list[ReconciliationRecord] = []

        for own_record in own:
            results.append(self._pair(own_record, counterparty, consumed, buckets))

        for index, counterparty_record in enumerate(counterparty):
            if not consumed[index]:
                results.append(
                    ReconciliationRecord(
                        status=MatchStatus.MISSING_IN_OWN,
                        counterparty=counterparty_record,
                    )
                )

        return results

    def _pair(
        self,
        own_record: NormalizedRecord,
        counterparty: list[NormalizedRecord],
        consumed: list[bool],
        buckets: Optional[dict[str, list[int]]],
    ) -> ReconciliationRecord:
        """Decide the outcome for one own record and apply consumption."""
        if buckets is not None:
            # Every fully passing candidate shares the anchor key, so the
            # bucket is enough to find one; partials need the whole pool.
            key = exact_key(own_record.get(self.anchor_field))
            bucket = [i for i in buckets.get(key, []) if not consumed[i]]
            scores = self._score_candidates(own_record, counterparty, bucket)
            best = self._best_full_match(scores)
            if best is None:
                scores = self._score_candidates(
                    own_record, counterparty, self._unconsumed(consumed)
                )
        else:
            scores = self._score_candidates(
                own_record, counterparty, self._unconsumed(consumed)
            )
            best = self._best_full_match(scores)

        status = MatchStatus.MATCHED
        if best is None:
            best = self._best_partial_match(scores)
            status = MatchStatus.PARTIAL_MATCH

        if best is None:
            logger.debug(f"{own_record.record_id}: no counterpart")
            return ReconciliationRecord(
                status=MatchStatus.MISSING_IN_COUNTERPARTY, own=own_record
            )

        consumed[best.index] = True
        counterparty_record = counterparty[best.index]
        logger.debug(
            f"{own_record.record_id} -> {counterparty_record.record_id}: "
            f"{status.value} (score {best.score:.3f})"
        )
        return ReconciliationRecord(
            status=status,
            own=own_record,
            counterparty=counterparty_record,
            comparisons=best.comparisons,
            score=best.score,
        )

    def _score_candidates(
        self,
        own_record: NormalizedRecord,
        counterparty: list[NormalizedRecord],
        indices: list[int],
    ) -> list[CandidateScore]:
        """Score candidates; read-only over both record sets."""
        return [self.score_pair(own_record, counterparty[i], i) for i in indices]

    def score_pair(
        self,
        own_record: NormalizedRecord,
        counterparty_record: NormalizedRecord,
        index: int = 0,
    ) -> CandidateScore:
        """Evaluate every enabled field for one pair of records."""
        comparisons: list[FieldComparison] = []

        for field in self.fields:
            own_value = own_record.get(field.id)
            counterparty_value = counterparty_record.get(field.id)
            outcome = compare_with(
                self._evaluators[field.id],
                own_value,
                counterparty_value,
                self.empty_confidence,
            )
            comparisons.append(
                FieldComparison(
                    field_id=field.id,
                    label=field.display_name,
                    own_value=own_value,
                    counterparty_value=counterparty_value,
                    passed=outcome.passed,
                    confidence=outcome.confidence,
                    note=outcome.note,
                )
            )

        passed_count = sum(1 for c in comparisons if c.passed)
        score = sum(c.confidence for c in comparisons) / len(comparisons)

        return CandidateScore(
            index=index,
            row_index=counterparty_record.first_row_index,
            score=score,
            all_passed=passed_count == len(comparisons),
            passed_count=passed_count,
            comparisons=tuple(comparisons),
        )

    def _best_full_match(self, scores: list[CandidateScore]) -> Optional[CandidateScore]:
        return _highest([s for s in scores if s.all_passed])

    def _best_partial_match(
        self, scores: list[CandidateScore]
    ) -> Optional[CandidateScore]:
        best = _highest(scores)
        if (
            best is not None
            and best.passed_count > 0
            and best.score >= self.partial_match_threshold
        ):
            return best
        return None

    def _build_buckets(self, counterparty: list[NormalizedRecord]) -> dict[str, list[int]]:
        """Index counterparty positions by anchor key, in input order."""
        buckets: dict[str, list[int]] = {}
        for index, record in enumerate(counterparty):
            buckets.setdefault(exact_key(record.get(self.anchor_field)), []).append(index)
        return buckets

    @staticmethod
    def _unconsumed(consumed: list[bool]) -> list[int]:
        return [i for i, used in enumerate(consumed) if not used]


def _highest(scores: list[CandidateScore]) -> Optional[CandidateScore]:
    """Highest score; the lowest counterparty row index wins ties."""
    best: Optional[CandidateScore] = None
    for candidate in sorted(scores, key=lambda s: (s.row_index, s.index)):
        if best is None or candidate.score > best.score:
            best = candidate
    return best


def match(
    own: list[NormalizedRecord],
    counterparty: list[NormalizedRecord],
    fields: list[MatchingField],
    partial_match_threshold: float = 0.5,
    empty_confidence: float = 0.5,
) -> list[ReconciliationRecord]:
    """Match two record sets with a fresh Matcher."""
    matcher = Matcher(
        fields,
        partial_match_threshold=partial_match_threshold,
        empty_confidence=empty_confidence,
    )
    return matcher.match(own, counterparty)
