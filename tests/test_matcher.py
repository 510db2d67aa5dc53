"""Tests for the greedy one-to-one matcher."""

import pytest

from statement_recon.config import ExactRule, FuzzyRule, MatchingField, NumericDiffRule
from statement_recon.matching.matcher import Matcher
from statement_recon.models.records import MatchStatus, NormalizedRecord, RecordSource
from statement_recon.utils.exceptions import ConfigurationError


def make_record(index: int, source: str = "counterparty", **values) -> NormalizedRecord:
    """Helper to create normalized records."""
    record_source = RecordSource(source)
    return NormalizedRecord(
        record_id=f"{source}-{index}",
        source=record_source,
        row_indices=(index,),
        values=values,
    )


def own(index: int, **values) -> NormalizedRecord:
    return make_record(index, "own", **values)


def ref_amount_fields(max_diff: float = 2) -> list[MatchingField]:
    return [
        MatchingField(id="ref", label="Reference", rule=ExactRule()),
        MatchingField(
            id="amount",
            label="Amount",
            data_type="number",
            rule=NumericDiffRule(max_diff=max_diff),
        ),
    ]


class TestPairing:
    """Test the classification of pairs."""

    def test_identical_sets_all_match(self):
        records = [own(i, ref=f"INV-{i}", amount=float(i * 10)) for i in range(5)]
        counterparty = [make_record(i, **r.values) for i, r in enumerate(records)]

        results = Matcher(ref_amount_fields()).match(records, counterparty)

        assert [r.status for r in results] == [MatchStatus.MATCHED] * 5
        assert all(r.own.row_indices == r.counterparty.row_indices for r in results)

    def test_amount_outside_tolerance_is_partial(self):
        results = Matcher(ref_amount_fields()).match(
            [own(0, ref="INV-1", amount=100.0)],
            [make_record(0, ref="INV-1", amount=105.0)],
        )

        assert len(results) == 1
        record = results[0]
        assert record.status == MatchStatus.PARTIAL_MATCH
        assert record.score == pytest.approx(0.5)
        assert [c.passed for c in record.comparisons] == [True, False]
        assert record.amount_difference("amount") == -5.0
        assert record.details == ["Amount: |100 - 105| = 5.00 > 2"]

    def test_no_candidate_is_missing_on_both_sides(self):
        results = Matcher(ref_amount_fields()).match(
            [own(0, ref="INV-1", amount=100.0)],
            [make_record(0, ref="INV-9", amount=900.0)],
        )

        assert [r.status for r in results] == [
            MatchStatus.MISSING_IN_COUNTERPARTY,
            MatchStatus.MISSING_IN_OWN,
        ]
        assert results[0].counterparty is None
        assert results[1].own is None

    def test_partial_threshold_is_respected(self):
        own_records = [own(0, ref="INV-1", amount=100.0)]
        counterparty = [make_record(0, ref="INV-2", amount=100.0)]

        lenient = Matcher(ref_amount_fields(), partial_match_threshold=0.5)
        strict = Matcher(ref_amount_fields(), partial_match_threshold=0.6)

        assert lenient.match(own_records, counterparty)[0].status == MatchStatus.PARTIAL_MATCH
        assert (
            strict.match(own_records, counterparty)[0].status
            == MatchStatus.MISSING_IN_COUNTERPARTY
        )

    def test_partial_needs_at_least_one_passing_field(self):
        fields = [MatchingField(id="name", rule=FuzzyRule(tolerance=95))]

        results = Matcher(fields).match(
            [own(0, name="Ahmed Ali")], [make_record(0, name="Ahmed Alli")]
        )

        # similarity is ~95% but below tolerance: high score, nothing passed
        assert results[0].status == MatchStatus.MISSING_IN_COUNTERPARTY

    def test_best_candidate_without_passing_fields_blocks_partial(self):
        fields = [
            MatchingField(id="ref", rule=ExactRule()),
            MatchingField(id="name", rule=FuzzyRule(tolerance=99)),
            MatchingField(id="desc", rule=FuzzyRule(tolerance=99)),
        ]
        # 75% similar on both text fields, nothing passed: score 0.5
        near = make_record(0, ref="R2", name="abce", desc="abce")
        # only the reference passes: score 1/3
        weak = make_record(1, ref="R1", name="wxyz", desc="wxyz")
        own_record = own(0, ref="R1", name="abcd", desc="abcd")
        matcher = Matcher(fields, partial_match_threshold=0.3)

        blocked = matcher.match([own_record], [near, weak])
        alone = matcher.match([own_record], [weak])

        assert blocked[0].status == MatchStatus.MISSING_IN_COUNTERPARTY
        assert alone[0].status == MatchStatus.PARTIAL_MATCH


class TestSelection:
    """Test candidate choice, tie-breaking and consumption."""

    def test_highest_score_wins(self):
        fields = [MatchingField(id="name", rule=FuzzyRule(tolerance=80))]
        counterparty = [make_record(0, name="Ahmed Alli"), make_record(1, name="Ahmed Ali")]

        results = Matcher(fields).match([own(0, name="Ahmed Ali")], counterparty)

        assert results[0].status == MatchStatus.MATCHED
        assert results[0].counterparty.record_id == "counterparty-1"

    def test_ties_go_to_earliest_counterparty_record(self):
        counterparty = [
            make_record(0, ref="INV-1", amount=100.0),
            make_record(1, ref="INV-1", amount=100.0),
        ]

        results = Matcher(ref_amount_fields()).match(
            [own(0, ref="INV-1", amount=100.0)], counterparty
        )

        assert results[0].counterparty.record_id == "counterparty-0"
        assert results[1].status == MatchStatus.MISSING_IN_OWN
        assert results[1].counterparty.record_id == "counterparty-1"

    def test_ties_go_to_lowest_row_index_not_list_position(self):
        counterparty = [
            make_record(5, ref="INV-1", amount=100.0),
            make_record(2, ref="INV-1", amount=100.0),
        ]

        results = Matcher(ref_amount_fields()).match(
            [own(0, ref="INV-1", amount=100.0)], counterparty
        )

        assert results[0].counterparty.record_id == "counterparty-2"

    def test_consumed_records_are_not_reused(self):
        own_records = [own(0, ref="INV-1", amount=100.0), own(1, ref="INV-1", amount=100.0)]
        counterparty = [make_record(0, ref="INV-1", amount=100.0)]

        results = Matcher(ref_amount_fields()).match(own_records, counterparty)

        assert [r.status for r in results] == [
            MatchStatus.MATCHED,
            MatchStatus.MISSING_IN_COUNTERPARTY,
        ]

    def test_own_order_decides_greedy_consumption(self):
        # The first own record is within tolerance and takes the counterparty
        # record, although the second own record matches it exactly.
        own_records = [own(0, ref="INV-1", amount=100.0), own(1, ref="INV-1", amount=101.0)]
        counterparty = [make_record(0, ref="INV-1", amount=101.0)]

        results = Matcher(ref_amount_fields()).match(own_records, counterparty)

        assert results[0].status == MatchStatus.MATCHED
        assert results[1].status == MatchStatus.MISSING_IN_COUNTERPARTY

    def test_full_match_beats_higher_scoring_partial(self):
        fields = ref_amount_fields(max_diff=10) + [
            MatchingField(id="name", rule=FuzzyRule(tolerance=90))
        ]
        counterparty = [
            make_record(0, ref="INV-2", amount=100.0, name="Ahmed Ali"),
            make_record(1, ref="INV-1", amount=109.9, name="Ahmed Alli"),
        ]

        results = Matcher(fields).match(
            [own(0, ref="INV-1", amount=100.0, name="Ahmed Ali")], counterparty
        )

        assert results[0].status == MatchStatus.MATCHED
        assert results[0].counterparty.record_id == "counterparty-1"


class TestProperties:
    """Test completeness, determinism and anchor bucketing."""

    def make_mixed(self):
        fields = ref_amount_fields() + [
            MatchingField(id="name", label="Name", rule=FuzzyRule(tolerance=80))
        ]
        own_records = [
            own(0, ref="R1", amount=100.0, name="Ahmed Ali"),
            own(1, ref="R2", amount=50.0, name="Sara Omar"),
            own(2, ref="R9", amount=75.0, name="Ali Hassan"),
            own(3, ref="R5", amount=10.0, name="Nobody"),
        ]
        counterparty = [
            make_record(0, ref="R2", amount=50.0, name="Sara Omar"),
            make_record(1, ref="R1", amount=100.5, name="Ahmed Alli"),
            make_record(2, ref="R7", amount=75.0, name="Ali Hassan"),
            make_record(3, ref="R1", amount=300.0, name="Other"),
        ]
        return fields, own_records, counterparty

    def test_every_record_appears_exactly_once(self):
        fields, own_records, counterparty = self.make_mixed()

        results = Matcher(fields).match(own_records, counterparty)

        own_ids = [r.own.record_id for r in results if r.own]
        counterparty_ids = [r.counterparty.record_id for r in results if r.counterparty]
        assert sorted(own_ids) == sorted(r.record_id for r in own_records)
        assert sorted(counterparty_ids) == sorted(r.record_id for r in counterparty)

    def test_expected_classification(self):
        fields, own_records, counterparty = self.make_mixed()

        results = Matcher(fields).match(own_records, counterparty)

        outcome = {
            (r.own.record_id if r.own else None): (
                r.status,
                r.counterparty.record_id if r.counterparty else None,
            )
            for r in results
        }
        assert outcome["own-0"] == (MatchStatus.MATCHED, "counterparty-1")
        assert outcome["own-1"] == (MatchStatus.MATCHED, "counterparty-0")
        assert outcome["own-2"] == (MatchStatus.PARTIAL_MATCH, "counterparty-2")
        assert outcome["own-3"] == (MatchStatus.MISSING_IN_COUNTERPARTY, None)
        assert outcome[None] == (MatchStatus.MISSING_IN_OWN, "counterparty-3")

    def test_repeated_runs_are_identical(self):
        fields, own_records, counterparty = self.make_mixed()
        matcher = Matcher(fields)

        assert matcher.match(own_records, counterparty) == matcher.match(
            own_records, counterparty
        )

    def test_anchor_bucketing_gives_same_results(self):
        fields, own_records, counterparty = self.make_mixed()

        plain = Matcher(fields).match(own_records, counterparty)
        bucketed = Matcher(fields, anchor_field="ref").match(own_records, counterparty)

        assert bucketed == plain


class TestConfiguration:
    """Test rejection of unusable field lists."""

    def test_no_enabled_fields(self):
        with pytest.raises(ConfigurationError):
            Matcher([MatchingField(id="ref", enabled=False)])

    def test_rule_incompatible_with_data_type(self):
        fields = [MatchingField(id="amount", data_type="number", rule=FuzzyRule(tolerance=80))]

        with pytest.raises(ConfigurationError) as exc_info:
            Matcher(fields)

        assert exc_info.value.field_id == "amount"

    def test_anchor_must_be_exact_rule(self):
        with pytest.raises(ConfigurationError):
            Matcher(ref_amount_fields(), anchor_field="amount")
