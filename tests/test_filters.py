"""Tests for pre-match record filters."""

from statement_recon.config import FilterRule
from statement_recon.matching.filters import apply_filters
from statement_recon.models.records import NormalizedRecord, RecordSource


def make_record(index: int, **values) -> NormalizedRecord:
    return NormalizedRecord(
        record_id=f"own-{index}",
        source=RecordSource.OWN,
        row_indices=(index,),
        values=values,
    )


RECORDS = [
    make_record(0, carrier="Saudia", price=120.0),
    make_record(1, carrier="Flynas", price=80.0),
    make_record(2, carrier="SAUDIA ", price=40.0),
    make_record(3, carrier="", price=200.0),
]


def ids(records):
    return [r.record_id for r in records]


class TestApplyFilters:
    """Test filter conditions."""

    def test_no_filters_returns_input(self):
        assert apply_filters(RECORDS, []) is RECORDS

    def test_equals_is_case_insensitive_and_trimmed(self):
        rule = FilterRule(id="f", field="carrier", condition="equals", value="saudia")

        assert ids(apply_filters(RECORDS, [rule])) == ["own-0", "own-2"]

    def test_contains(self):
        rule = FilterRule(id="f", field="carrier", condition="contains", value="NAS")

        assert ids(apply_filters(RECORDS, [rule])) == ["own-1"]

    def test_numeric_comparisons(self):
        above = FilterRule(id="a", field="price", condition="greater_than", value=50)
        below = FilterRule(id="b", field="price", condition="less_than", value="150")

        assert ids(apply_filters(RECORDS, [above, below])) == ["own-0", "own-1"]

    def test_non_numeric_comparison_fails(self):
        rule = FilterRule(id="f", field="carrier", condition="greater_than", value=10)

        assert apply_filters(RECORDS, [rule]) == []

    def test_missing_field_fails(self):
        rule = FilterRule(id="f", field="route", condition="equals", value="RUH-JED")

        assert apply_filters(RECORDS, [rule]) == []
