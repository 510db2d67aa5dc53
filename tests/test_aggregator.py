"""Tests for collapsing split counterparty entries."""

from statement_recon.config import AggregationSettings
from statement_recon.matching.aggregator import aggregate
from statement_recon.models.records import NormalizedRecord, RecordSource


def make_record(index: int, **values) -> NormalizedRecord:
    """Helper to create counterparty records."""
    return NormalizedRecord(
        record_id=f"counterparty-{index}",
        source=RecordSource.COUNTERPARTY,
        row_indices=(index,),
        values=values,
    )


ENABLED = AggregationSettings(
    enabled=True, aggregation_key="pnr", aggregation_value_field="price"
)


class TestAggregation:
    """Test grouping and summing behaviour."""

    def test_disabled_is_identity(self):
        records = [make_record(0, pnr="A", price=40.0), make_record(1, pnr="A", price=35.0)]
        settings = ENABLED.model_copy(update={"enabled": False})

        assert aggregate(records, settings) is records

    def test_split_rows_are_summed(self):
        records = [
            make_record(0, pnr="A", price=40.0, name="Ahmed Ali"),
            make_record(1, pnr="A", price=35.0, name="A. Ali"),
        ]

        result = aggregate(records, ENABLED)

        assert len(result) == 1
        assert result[0].values == {"pnr": "A", "price": 75.0, "name": "Ahmed Ali"}
        assert result[0].row_indices == (0, 1)
        assert result[0].is_aggregated
        assert result[0].record_id == "counterparty-0+1"

    def test_single_member_groups_pass_through(self):
        records = [make_record(0, pnr="A", price=40.0), make_record(1, pnr="B", price=10.0)]

        result = aggregate(records, ENABLED)

        assert result[0] is records[0]
        assert result[1] is records[1]

    def test_group_keeps_first_member_position(self):
        records = [
            make_record(0, pnr="A", price=1.0),
            make_record(1, pnr="B", price=2.0),
            make_record(2, pnr="a ", price=3.0),
        ]

        result = aggregate(records, ENABLED)

        assert [r.values["pnr"] for r in result] == ["A", "B"]
        assert result[0].values["price"] == 4.0
        assert result[0].row_indices == (0, 2)

    def test_empty_keys_are_never_merged(self):
        records = [make_record(0, pnr="", price=1.0), make_record(1, pnr="", price=2.0)]

        result = aggregate(records, ENABLED)

        assert result == records

    def test_sum_has_no_float_noise(self):
        records = [make_record(0, pnr="A", price=0.1), make_record(1, pnr="A", price=0.2)]

        assert aggregate(records, ENABLED)[0].values["price"] == 0.3
