"""
Column mapper: translates raw spreadsheet rows into normalized records.
Header lookup is case-insensitive and falls back to field id, label and aliases.
"""

from typing import Any, Iterable, Optional
import logging
import math

import pandas as pd

from ..config import MatchingField
from ..models.records import Diagnostics, NormalizedRecord, RawRow, RecordSource
from ..utils.exceptions import CoercionError, MappingError

logger = logging.getLogger(__name__)


def is_blank(value: Any) -> bool:
    """True for None, NaN/NA cells and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return bool(pd.api.types.is_scalar(value) and pd.isna(value))


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a cell value as a float.

    Thousands separators and surrounding whitespace are stripped.

    Returns:
        The number, or None if the value is not numeric
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "").replace(" ", "")
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def format_string(value: Any) -> str:
    """Render a cell as a trimmed string (integral floats lose their .0)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


class ColumnMapper:
    """
    Maps raw rows from one source onto the configured matching fields.

    All fields are normalized (filters and aggregation may use disabled
    ones), but only enabled fields decide whether a row is mappable.
    """

    def __init__(
        self,
        fields: list[MatchingField],
        mapping: dict[str, str],
        source: RecordSource,
    ):
        """
        Initialize the mapper.

        Args:
            fields: Matching fields to produce
            mapping: Field id -> column header for this source
            source: Which side the rows belong to
        """
        self.fields = fields
        self.mapping = mapping
        self.source = source

    def normalize(
        self, raw_rows: Iterable[RawRow]
    ) -> tuple[list[NormalizedRecord], Diagnostics]:
        """
        Normalize raw rows into records.

        Args:
            raw_rows: Rows read from the spreadsheet

        Returns:
            Tuple of (normalized records, diagnostics)
        """
        records: list[NormalizedRecord] = []
        diagnostics = Diagnostics()

        for row in raw_rows:
            try:
                records.append(self._normalize_row(row, diagnostics))
            except MappingError as e:
                logger.warning(f"Excluding row: {e}")
                diagnostics.mapping_errors.append(e)

        logger.debug(
            f"Normalized {len(records)} {self.source.value} records, "
            f"{diagnostics.mapping_error_count} excluded"
        )
        return records, diagnostics

    def _normalize_row(self, row: RawRow, diagnostics: Diagnostics) -> NormalizedRecord:
        """Convert one raw row, recording coercion failures per field."""
        headers = {str(h).strip().casefold(): h for h in row.cells}
        values: dict[str, Any] = {}
        mapped_enabled = False

        for field in self.fields:
            header = self._resolve_header(field, headers)
            cell = row.cells[header] if header is not None else None

            if field.enabled and not is_blank(cell):
                mapped_enabled = True

            try:
                values[field.id] = self._coerce(field, cell, row)
            except CoercionError as e:
                logger.warning(str(e))
                diagnostics.coercion_errors.append(e)
                values[field.id] = 0.0 if field.data_type == "number" else ""

        if not mapped_enabled:
            raise MappingError(self.source.value, row.row_index)

        return NormalizedRecord(
            record_id=f"{self.source.value}-{row.row_index}",
            source=self.source,
            row_indices=(row.row_index,),
            values=values,
        )

    def _resolve_header(
        self, field: MatchingField, headers: dict[str, Any]
    ) -> Optional[Any]:
        """Find the row column holding this field's value."""
        candidates = []
        mapped = self.mapping.get(field.id)
        if mapped:
            candidates.append(mapped)
        candidates.extend([field.id, field.label, *field.aliases])

        for candidate in candidates:
            key = str(candidate).strip().casefold()
            if key and key in headers:
                return headers[key]
        return None

    def _coerce(self, field: MatchingField, cell: Any, row: RawRow) -> Any:
        """Coerce a cell to the field's data type; blank becomes empty/0."""
        if field.data_type == "number":
            if is_blank(cell):
                return 0.0
            number = parse_number(cell)
            if number is None:
                raise CoercionError(self.source.value, row.row_index, field.id, cell)
            return number

        if is_blank(cell):
            return ""
        return format_string(cell)


def normalize(
    raw_rows: Iterable[RawRow],
    mapping: dict[str, str],
    fields: list[MatchingField],
    source: RecordSource,
) -> tuple[list[NormalizedRecord], Diagnostics]:
    """Normalize rows of one source; see ColumnMapper."""
    return ColumnMapper(fields, mapping, source).normalize(raw_rows)
