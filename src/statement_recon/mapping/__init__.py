"""Column mapping from raw spreadsheet rows to normalized records."""

from .column_mapper import ColumnMapper, normalize

__all__ = ["ColumnMapper", "normalize"]
