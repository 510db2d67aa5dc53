"""
Excel report generator for reconciliation results.
Creates a summary sheet, one sheet per match status and a diagnostics sheet.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Optional
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..config import OutputConfig, SheetConfig
from ..models.records import (
    MatchStatus,
    NormalizedRecord,
    ReconciliationRecord,
    ReconciliationResult,
)
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
PARTIAL_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

STATUS_FILLS = {
    MatchStatus.MATCHED: MATCH_FILL,
    MatchStatus.PARTIAL_MATCH: PARTIAL_FILL,
    MatchStatus.MISSING_IN_COUNTERPARTY: UNMATCHED_FILL,
    MatchStatus.MISSING_IN_OWN: UNMATCHED_FILL,
}


class ExcelReportGenerator:
    """Generates Excel reconciliation reports with multiple sheets."""

    def __init__(self, output_config: OutputConfig):
        """
        Initialize the report generator.

        Args:
            output_config: Output section of the application configuration
        """
        self.output_config = output_config
        self.sheet_config = output_config.sheets

    def default_filename(self, when: Optional[datetime] = None) -> str:
        """Render the configured filename template."""
        when = when or datetime.now()
        return self.output_config.excel.filename_template.format(
            date=when.strftime("%Y-%m-%d"), time=when.strftime("%H%M%S")
        )

    def generate_report(
        self,
        result: ReconciliationResult,
        output_path: Path,
        own_filename: str = "",
        counterparty_filename: str = "",
    ) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            result: Reconciliation result
            output_path: Path for output file
            own_filename: Name of the own ledger file, for the summary
            counterparty_filename: Name of the counterparty file, for the summary

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be saved
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        sheets = self.sheet_config
        if sheets.summary.enabled:
            self._create_summary_sheet(wb, result, own_filename, counterparty_filename)

        status_sheets = [
            (MatchStatus.MATCHED, sheets.matched),
            (MatchStatus.PARTIAL_MATCH, sheets.partial_match),
            (MatchStatus.MISSING_IN_COUNTERPARTY, sheets.missing_in_counterparty),
            (MatchStatus.MISSING_IN_OWN, sheets.missing_in_own),
        ]
        for status, sheet in status_sheets:
            if sheet.enabled:
                self._create_status_sheet(wb, sheet, result, status)

        if sheets.diagnostics.enabled:
            self._create_diagnostics_sheet(wb, result)

        # openpyxl cannot save a workbook without sheets
        if not wb.sheetnames:
            wb.create_sheet(sheets.summary.name)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Failed to save report {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(
        self,
        wb: Workbook,
        result: ReconciliationResult,
        own_filename: str,
        counterparty_filename: str,
    ) -> None:
        """Create the summary sheet with key metrics."""
        ws = wb.create_sheet(self.sheet_config.summary.name)
        summary = result.summary
        diagnostics = result.diagnostics

        ws["A1"] = "Statement Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        sections: list[tuple[str, list[tuple[str, Any]]]] = [
            (
                "File Information",
                [
                    ("Own Ledger File:", own_filename or "-"),
                    ("Counterparty File:", counterparty_filename or "-"),
                    ("Generated At:", datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
                ],
            ),
            (
                "Record Counts",
                [
                    ("Own Records:", summary.total_own_records),
                    ("Counterparty Records:", summary.total_counterparty_records),
                    ("Counterparty Source Rows:", summary.counterparty_source_rows),
                    ("Matched:", summary.matched),
                    ("Partial Match:", summary.partial_match),
                    ("Missing in Counterparty:", summary.missing_in_counterparty),
                    ("Missing in Own:", summary.missing_in_own),
                    ("Match Rate:", f"{summary.match_rate:.1f}%"),
                ],
            ),
            (
                "Amounts",
                [
                    ("Amount Field:", result.settings.amount_field or "-"),
                    ("Total Amount Difference:", summary.total_amount_difference),
                ],
            ),
            (
                "Diagnostics",
                [
                    ("Rows Excluded (unmappable):", diagnostics.mapping_error_count),
                    ("Cells Not Coerced:", diagnostics.coercion_error_count),
                    ("Own Records Filtered:", diagnostics.filtered_own),
                    ("Counterparty Records Filtered:", diagnostics.filtered_counterparty),
                ],
            ),
        ]

        row = 3
        for title, items in sections:
            ws[f"A{row}"] = title
            ws[f"A{row}"].font = Font(bold=True)
            row += 1
            for label, value in items:
                ws[f"A{row}"] = label
                ws[f"B{row}"] = value
                row += 1
            row += 1

        ws.column_dimensions["A"].width = 32
        ws.column_dimensions["B"].width = 40

    def _create_status_sheet(
        self,
        wb: Workbook,
        sheet: SheetConfig,
        result: ReconciliationResult,
        status: MatchStatus,
    ) -> None:
        """Create the sheet listing records of one status."""
        ws = wb.create_sheet(sheet.name)
        fields = result.settings.enabled_fields
        amount_field = result.settings.amount_field

        headers = ["Own Row(s)", "Counterparty Row(s)"]
        for field in fields:
            headers.extend([f"Own {field.display_name}", f"Counterparty {field.display_name}"])
        headers.extend(["Score", "Amount Difference", "Details"])
        self._write_headers(ws, headers)

        fill = STATUS_FILLS[status]
        for row_num, record in enumerate(result.by_status(status), start=2):
            row_data = self._record_row(record, fields, amount_field)
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                cell.fill = fill

        self._auto_fit_columns(ws)

    def _record_row(
        self,
        record: ReconciliationRecord,
        fields: list,
        amount_field: Optional[str],
    ) -> list[Any]:
        """Flatten one reconciliation record into sheet cells."""
        row: list[Any] = [_row_refs(record.own), _row_refs(record.counterparty)]
        for field in fields:
            row.append(record.own.get(field.id, "") if record.own else "")
            row.append(record.counterparty.get(field.id, "") if record.counterparty else "")

        difference = record.amount_difference(amount_field)
        row.extend(
            [
                round(record.score, 4) if record.is_paired else "",
                difference if difference is not None else "",
                "; ".join(record.details),
            ]
        )
        return row

    def _create_diagnostics_sheet(self, wb: Workbook, result: ReconciliationResult) -> None:
        """Create the sheet listing excluded rows and coercion failures."""
        ws = wb.create_sheet(self.sheet_config.diagnostics.name)
        self._write_headers(ws, ["Type", "Source", "Row", "Field", "Value", "Message"])

        row = 2
        for error in result.diagnostics.mapping_errors:
            values = ["Excluded row", error.source, error.row_index, "", "", str(error)]
            for col, value in enumerate(values, start=1):
                ws.cell(row=row, column=col, value=value).border = THIN_BORDER
            row += 1

        for error in result.diagnostics.coercion_errors:
            values = [
                "Coercion",
                error.source,
                error.row_index,
                error.field_id,
                str(error.value),
                str(error),
            ]
            for col, value in enumerate(values, start=1):
                ws.cell(row=row, column=col, value=value).border = THIN_BORDER
            row += 1

        self._auto_fit_columns(ws)

    def _write_headers(self, ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = max(
                (len(str(cell.value)) for cell in column_cells if cell.value is not None),
                default=0,
            )
            column = column_cells[0].column_letter
            ws.column_dimensions[column].width = min(max_length + 2, 50)


def _row_refs(record: Optional[NormalizedRecord]) -> str:
    if record is None:
        return ""
    return ", ".join(str(i) for i in record.row_indices)
