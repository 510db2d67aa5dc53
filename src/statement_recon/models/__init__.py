"""Data models for reconciliation."""

from .records import (
    RecordSource,
    MatchStatus,
    RawRow,
    NormalizedRecord,
    FieldComparison,
    ReconciliationRecord,
    ReconciliationSummary,
    Diagnostics,
    ReconciliationResult,
)
from .run_log import ReconciliationLog

__all__ = [
    "RecordSource",
    "MatchStatus",
    "RawRow",
    "NormalizedRecord",
    "FieldComparison",
    "ReconciliationRecord",
    "ReconciliationSummary",
    "Diagnostics",
    "ReconciliationResult",
    "ReconciliationLog",
]
