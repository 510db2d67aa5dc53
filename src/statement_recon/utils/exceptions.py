"""Custom exceptions for the statement reconciliation engine."""

from typing import Any, Optional


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class ConfigurationError(ReconciliationError):
    """Invalid reconciliation settings; the run cannot start."""

    def __init__(self, message: str, field_id: Optional[str] = None):
        super().__init__(message)
        self.field_id = field_id


class MappingError(ReconciliationError):
    """A raw row has no column that maps to any enabled field."""

    def __init__(self, source: str, row_index: int):
        super().__init__(f"{source} row {row_index}: no mappable fields")
        self.source = source
        self.row_index = row_index


class CoercionError(ReconciliationError):
    """A mapped cell could not be parsed to its field's data type."""

    def __init__(self, source: str, row_index: int, field_id: str, value: Any):
        super().__init__(
            f"{source} row {row_index}: cannot coerce {value!r} for field '{field_id}'"
        )
        self.source = source
        self.row_index = row_index
        self.field_id = field_id
        self.value = value


class SpreadsheetReadError(ReconciliationError):
    """Error reading a ledger or statement spreadsheet."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating Excel report."""

    pass
