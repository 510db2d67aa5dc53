"""
Aggregation of split counterparty entries.
Rows sharing the aggregation key are collapsed into one synthetic record
whose value field is the group total.
"""

from typing import Any
import logging
import math

from ..config import AggregationSettings
from ..mapping.column_mapper import format_string, is_blank, parse_number
from ..models.records import NormalizedRecord

logger = logging.getLogger(__name__)


def aggregate(
    records: list[NormalizedRecord], settings: AggregationSettings
) -> list[NormalizedRecord]:
    """
    Collapse records sharing the aggregation key.

    Groups keep the position of their first member. Non-summed fields take
    the first member's values. Records with an empty key are never merged.

    Args:
        records: Normalized counterparty records
        settings: Aggregation policy

    Returns:
        Records with each multi-member group replaced by one synthetic record
    """
    if not settings.enabled:
        return records

    groups: dict[str, list[NormalizedRecord]] = {}
    ordered: list[list[NormalizedRecord]] = []

    for record in records:
        key = _group_key(record.get(settings.aggregation_key))
        if not key:
            ordered.append([record])
            continue
        if key not in groups:
            groups[key] = []
            ordered.append(groups[key])
        groups[key].append(record)

    aggregated = [_collapse(group, settings.aggregation_value_field) for group in ordered]

    logger.debug(
        f"Aggregated {len(records)} records into {len(aggregated)} "
        f"on key '{settings.aggregation_key}'"
    )
    return aggregated


def _group_key(value: Any) -> str:
    """Case-insensitive, trimmed grouping key."""
    if is_blank(value):
        return ""
    return format_string(value).casefold()


def _collapse(group: list[NormalizedRecord], value_field: str) -> NormalizedRecord:
    """Build the synthetic record for one group."""
    first = group[0]
    if len(group) == 1:
        return first

    total = math.fsum(parse_number(r.get(value_field)) or 0.0 for r in group)
    values = dict(first.values)
    values[value_field] = round(total, 9)

    row_indices = tuple(sorted({i for r in group for i in r.row_indices}))

    return NormalizedRecord(
        record_id=f"{first.source.value}-" + "+".join(str(i) for i in row_indices),
        source=first.source,
        row_indices=row_indices,
        values=values,
    )
