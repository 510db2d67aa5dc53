"""Categorization tallies and totals for reconciliation output."""

from typing import Iterable, Optional
import math

from ..config import MatchingField
from ..models.records import MatchStatus, ReconciliationRecord, ReconciliationSummary


def summarize(
    records: list[ReconciliationRecord],
    amount_field: Optional[str] = None,
    fields: Iterable[MatchingField] = (),
) -> ReconciliationSummary:
    """
    Tally statuses and compute the total amount difference.

    Aggregated counterparty records count once each toward the counterparty
    total; the rows behind them are reported as counterparty_source_rows.

    Args:
        records: Output of the matcher
        amount_field: Id of the field whose differences are totalled
        fields: Matching fields of the run; the amount field is only totalled
            when it is among them, enabled and numeric

    Returns:
        Reconciliation summary
    """
    summary = ReconciliationSummary(total_records=len(records))
    differences: list[float] = []
    amount_field_id = amount_field if _is_amount_field(amount_field, fields) else None

    for record in records:
        if record.status == MatchStatus.MATCHED:
            summary.matched += 1
        elif record.status == MatchStatus.PARTIAL_MATCH:
            summary.partial_match += 1
        elif record.status == MatchStatus.MISSING_IN_COUNTERPARTY:
            summary.missing_in_counterparty += 1
        elif record.status == MatchStatus.MISSING_IN_OWN:
            summary.missing_in_own += 1

        if record.own is not None:
            summary.total_own_records += 1
        if record.counterparty is not None:
            summary.total_counterparty_records += 1
            summary.counterparty_source_rows += len(record.counterparty.row_indices)

        if record.is_paired and amount_field_id:
            difference = record.amount_difference(amount_field_id)
            if difference is not None:
                differences.append(abs(difference))

    summary.total_amount_difference = round(math.fsum(differences), 9)
    return summary


def _is_amount_field(field_id: Optional[str], fields: Iterable[MatchingField]) -> bool:
    field = next((f for f in fields if f.id == field_id), None)
    return field is not None and field.enabled and field.data_type == "number"
