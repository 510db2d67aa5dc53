"""Data models for reconciliation records and results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..config import ReconciliationSettings
from ..utils.exceptions import CoercionError, MappingError


class RecordSource(Enum):
    """Which spreadsheet a record came from."""

    OWN = "own"  # Internal ledger export
    COUNTERPARTY = "counterparty"  # Supplier / external statement


class MatchStatus(Enum):
    """Classification of a reconciliation output row."""

    MATCHED = "matched"
    PARTIAL_MATCH = "partial_match"
    MISSING_IN_COUNTERPARTY = "missing_in_counterparty"
    MISSING_IN_OWN = "missing_in_own"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


@dataclass(frozen=True)
class RawRow:
    """One spreadsheet row: column header -> raw cell value."""

    source: RecordSource
    row_index: int
    cells: dict[str, Any]


@dataclass(frozen=True)
class NormalizedRecord:
    """
    A row translated into matching-field values.

    Aggregated counterparty records carry every source row index they were
    built from, so results can be traced back to the original spreadsheet.
    """

    record_id: str
    source: RecordSource
    row_indices: tuple[int, ...]
    values: dict[str, Any]

    def get(self, field_id: str, default: Any = None) -> Any:
        return self.values.get(field_id, default)

    @property
    def is_aggregated(self) -> bool:
        return len(self.row_indices) > 1

    @property
    def first_row_index(self) -> int:
        return self.row_indices[0] if self.row_indices else -1


@dataclass(frozen=True)
class FieldComparison:
    """Outcome of comparing one field between an own and counterparty record."""

    field_id: str
    label: str
    own_value: Any
    counterparty_value: Any
    passed: bool
    confidence: float
    note: str = ""

    @property
    def detail(self) -> str:
        return f"{self.label}: {self.note}" if self.note else ""


@dataclass(frozen=True)
class ReconciliationRecord:
    """One output row of a reconciliation run."""

    status: MatchStatus
    own: Optional[NormalizedRecord] = None
    counterparty: Optional[NormalizedRecord] = None
    comparisons: tuple[FieldComparison, ...] = ()
    score: float = 0.0

    @property
    def is_paired(self) -> bool:
        return self.own is not None and self.counterparty is not None

    @property
    def details(self) -> list[str]:
        """Human-readable notes explaining the classification."""
        if self.status == MatchStatus.MISSING_IN_COUNTERPARTY:
            return ["Missing in counterparty statement"]
        if self.status == MatchStatus.MISSING_IN_OWN:
            return ["Missing in own ledger"]
        return [c.detail for c in self.comparisons if c.detail]

    def amount_difference(self, field_id: Optional[str]) -> Optional[float]:
        """Signed difference (own - counterparty) on a numeric field."""
        if not field_id or not self.is_paired:
            return None
        own_value = self.own.get(field_id)
        counterparty_value = self.counterparty.get(field_id)
        if not isinstance(own_value, (int, float)) or not isinstance(
            counterparty_value, (int, float)
        ):
            return None
        return own_value - counterparty_value


@dataclass
class ReconciliationSummary:
    """Aggregate counts and totals for a reconciliation run."""

    matched: int = 0
    partial_match: int = 0
    missing_in_counterparty: int = 0
    missing_in_own: int = 0
    total_own_records: int = 0
    total_counterparty_records: int = 0
    counterparty_source_rows: int = 0
    total_records: int = 0
    total_amount_difference: float = 0.0

    @property
    def match_rate(self) -> float:
        """Percentage of own records that found a counterpart."""
        if self.total_own_records == 0:
            return 0.0
        return ((self.matched + self.partial_match) / self.total_own_records) * 100

    def count_for(self, status: MatchStatus) -> int:
        return getattr(self, status.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalOwnRecords": self.total_own_records,
            "totalCounterpartyRecords": self.total_counterparty_records,
            "counterpartySourceRows": self.counterparty_source_rows,
            "totalRecords": self.total_records,
            "matched": self.matched,
            "partialMatch": self.partial_match,
            "missingInCounterparty": self.missing_in_counterparty,
            "missingInOwn": self.missing_in_own,
            "totalAmountDifference": self.total_amount_difference,
        }


@dataclass
class Diagnostics:
    """Non-fatal problems found while preparing records for matching."""

    mapping_errors: list[MappingError] = field(default_factory=list)
    coercion_errors: list[CoercionError] = field(default_factory=list)
    filtered_own: int = 0
    filtered_counterparty: int = 0

    @property
    def mapping_error_count(self) -> int:
        return len(self.mapping_errors)

    @property
    def coercion_error_count(self) -> int:
        return len(self.coercion_errors)

    @property
    def has_issues(self) -> bool:
        return bool(self.mapping_errors or self.coercion_errors)

    def sample_mapping_errors(self, limit: int = 5) -> list[str]:
        """Row references of the first few excluded rows."""
        return [f"{e.source}:{e.row_index}" for e in self.mapping_errors[:limit]]

    def extend(self, other: "Diagnostics") -> None:
        self.mapping_errors.extend(other.mapping_errors)
        self.coercion_errors.extend(other.coercion_errors)
        self.filtered_own += other.filtered_own
        self.filtered_counterparty += other.filtered_counterparty


@dataclass
class ReconciliationResult:
    """Everything a completed run produces."""

    summary: ReconciliationSummary
    records: list[ReconciliationRecord]
    diagnostics: Diagnostics
    settings: ReconciliationSettings

    def by_status(self, status: MatchStatus) -> list[ReconciliationRecord]:
        return [r for r in self.records if r.status == status]
