"""Pre-match record filters."""

from typing import Any
import logging

from ..config import FilterRule
from ..mapping.column_mapper import format_string, is_blank, parse_number
from ..models.records import NormalizedRecord

logger = logging.getLogger(__name__)


def apply_filters(
    records: list[NormalizedRecord], filters: list[FilterRule]
) -> list[NormalizedRecord]:
    """
    Keep only records that satisfy every filter.

    Args:
        records: Normalized records of one source
        filters: Configured filter rules

    Returns:
        Records passing all filters, in their original order
    """
    if not filters:
        return records

    kept = [r for r in records if all(_passes(r, f) for f in filters)]
    logger.debug(f"Filters kept {len(kept)} of {len(records)} records")
    return kept


def _passes(record: NormalizedRecord, rule: FilterRule) -> bool:
    """Evaluate a single filter rule against a record."""
    if rule.field not in record.values:
        return False
    value: Any = record.values[rule.field]

    if rule.condition == "equals":
        return _as_text(value) == _as_text(rule.value)
    if rule.condition == "contains":
        return _as_text(rule.value) in _as_text(value)

    record_number = parse_number(value) if not is_blank(value) else None
    filter_number = parse_number(rule.value)
    if record_number is None or filter_number is None:
        return False
    if rule.condition == "greater_than":
        return record_number > filter_number
    return record_number < filter_number


def _as_text(value: Any) -> str:
    return "" if is_blank(value) else format_string(value).casefold()
