"""
Spreadsheet reader.
Loads CSV or Excel exports into RawRow lists for the reconciliation engine.
"""

from pathlib import Path
from typing import Any
import logging

import pandas as pd

from ..config import InputConfig
from ..models.records import RawRow, RecordSource
from ..utils.exceptions import SpreadsheetReadError

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


class SpreadsheetReader:
    """
    Reader for ledger exports and counterparty statements.

    CSV cells are kept as text so reference numbers keep leading zeros;
    Excel cells keep their native types. Type coercion is left to the
    column mapper.
    """

    def __init__(self, input_config: InputConfig):
        """
        Initialize the reader with input configuration.

        Args:
            input_config: Encoding, delimiter and sheet settings
        """
        self.input_config = input_config

    def read(self, file_path: Path, source: RecordSource) -> list[RawRow]:
        """
        Read a spreadsheet into raw rows.

        Args:
            file_path: CSV or Excel file
            source: Side the file belongs to

        Returns:
            One RawRow per data row, indexed from 0

        Raises:
            SpreadsheetReadError: If the file cannot be read
        """
        logger.info(f"Reading {source.value} spreadsheet: {file_path}")
        df = self._load_dataframe(file_path)

        rows = [
            RawRow(
                source=source,
                row_index=idx,
                cells={str(column): value for column, value in record.items()},
            )
            for idx, record in enumerate(df.to_dict(orient="records"))
        ]
        logger.info(f"Read {len(rows)} rows from {file_path.name}")
        return rows

    def preview(self, file_path: Path, limit: int = 10) -> dict[str, Any]:
        """
        Get summary information about a spreadsheet.

        Args:
            file_path: CSV or Excel file
            limit: Number of sample rows to include

        Returns:
            Dictionary with columns, row count and sample rows
        """
        df = self._load_dataframe(file_path)
        return {
            "row_count": len(df),
            "columns": [str(c) for c in df.columns],
            "sample": df.head(limit).to_dict(orient="records"),
        }

    def _load_dataframe(self, file_path: Path) -> pd.DataFrame:
        """Load the file with pandas according to its extension."""
        try:
            if file_path.suffix.lower() in EXCEL_SUFFIXES:
                return pd.read_excel(
                    file_path,
                    sheet_name=self.input_config.sheet_name,
                    dtype=object,
                )
            return pd.read_csv(
                file_path,
                encoding=self.input_config.encoding,
                delimiter=self.input_config.delimiter,
                dtype=str,
                keep_default_na=False,
            )
        except Exception as e:
            logger.error(f"Failed to read spreadsheet {file_path}: {e}")
            raise SpreadsheetReadError(f"Failed to read {file_path}: {e}") from e
