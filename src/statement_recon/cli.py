"""
Command-line interface for the statement reconciliation tool.
"""

from pathlib import Path
from typing import Optional
import json
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import (
    ReconciliationSettings,
    generate_default_config,
    load_config,
    validate_settings,
)
from .matching.engine import ReconciliationEngine
from .models.records import Diagnostics, RecordSource, ReconciliationSummary
from .models.run_log import ReconciliationLog
from .parsers.spreadsheet_reader import SpreadsheetReader
from .reports.excel_generator import ExcelReportGenerator
from .utils.exceptions import ConfigurationError, ReconciliationError
from .utils.logging_config import get_logger, setup_logging

console = Console()
logger = get_logger("cli")


@click.group()
@click.version_option(version=__version__)
def main():
    """Own ledger vs. counterparty statement reconciliation tool."""
    pass


@main.command()
@click.argument("own_file", type=click.Path(exists=True, path_type=Path))
@click.argument("counterparty_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option(
    "--aggregate/--no-aggregate",
    default=None,
    help="Override whether split counterparty rows are aggregated",
)
@click.option(
    "--partial-threshold",
    type=click.FloatRange(0, 1),
    default=None,
    help="Override the minimum score for a partial match",
)
@click.option(
    "--run-log",
    type=click.Path(path_type=Path),
    default=None,
    help="Write a JSON run log (settings snapshot and summary) to this path",
)
@click.option("--operator", default="cli", help="Operator name recorded in the run log")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "--dry-run", is_flag=True, help="Run the reconciliation without generating a report"
)
def reconcile(
    own_file: Path,
    counterparty_file: Path,
    config: Optional[Path],
    output: Optional[Path],
    aggregate: Optional[bool],
    partial_threshold: Optional[float],
    run_log: Optional[Path],
    operator: str,
    verbose: bool,
    dry_run: bool,
):
    """
    Reconcile an own ledger export with a counterparty statement.

    OWN_FILE: Path to the organization's ledger export (CSV or Excel)
    COUNTERPARTY_FILE: Path to the counterparty statement (CSV or Excel)
    """
    try:
        recon_config = load_config(config)
        setup_logging(recon_config.logging, verbose=verbose)

        settings = _apply_overrides(
            recon_config.reconciliation, aggregate, partial_threshold
        )

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            reader = SpreadsheetReader(recon_config.input)

            task = progress.add_task("Reading own ledger...", total=None)
            own_rows = reader.read(own_file, RecordSource.OWN)
            progress.update(task, completed=True)

            task = progress.add_task("Reading counterparty statement...", total=None)
            counterparty_rows = reader.read(counterparty_file, RecordSource.COUNTERPARTY)
            progress.update(task, completed=True)

            task = progress.add_task("Running reconciliation...", total=None)
            engine = ReconciliationEngine(settings)
            result = engine.reconcile(own_rows, counterparty_rows)
            progress.update(task, completed=True)

        _display_summary(result.summary)
        _display_diagnostics(result.diagnostics)

        if run_log is not None:
            entry = ReconciliationLog.from_result(result, user_id=operator, user_name=operator)
            run_log.parent.mkdir(parents=True, exist_ok=True)
            with open(run_log, "w", encoding="utf-8") as f:
                json.dump(entry.to_dict(), f, ensure_ascii=False, indent=2)
            console.print(f"[green]Run log written: {run_log}[/green]")

        if dry_run:
            console.print("\n[yellow]Dry run - no report generated[/yellow]")
            return

        report_generator = ExcelReportGenerator(recon_config.output)
        if output is None:
            output = Path(report_generator.default_filename())

        report_path = report_generator.generate_report(
            result,
            output,
            own_filename=own_file.name,
            counterparty_filename=counterparty_file.name,
        )
        console.print(f"\n[green]Report generated: {report_path}[/green]")

    except ConfigurationError as e:
        field_hint = f" (field: {e.field_id})" if e.field_id else ""
        console.print(
            f"[red]Reconciliation could not run: {escape(str(e))}{field_hint}[/red]"
        )
        sys.exit(1)
    except ReconciliationError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command()
@click.argument("spreadsheet", type=click.Path(exists=True, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("-n", "--rows", type=int, default=10, help="Number of rows to show")
def preview(spreadsheet: Path, config: Optional[Path], rows: int):
    """
    Show the columns and first rows of a spreadsheet.

    SPREADSHEET: Path to a CSV or Excel file
    """
    try:
        recon_config = load_config(config)
        info = SpreadsheetReader(recon_config.input).preview(spreadsheet, limit=rows)
    except ReconciliationError as e:
        console.print(f"[red]Error reading file: {escape(str(e))}[/red]")
        sys.exit(1)

    table = Table(title=f"{spreadsheet.name}")
    for column in info["columns"]:
        table.add_column(column)
    for record in info["sample"]:
        table.add_row(*(str(record.get(column, "")) for column in info["columns"]))

    console.print(table)
    console.print(f"\nTotal rows: {info['row_count']}")


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


@main.command("validate-config")
@click.argument("config", type=click.Path(exists=True, path_type=Path))
def validate_config(config: Path):
    """
    Validate a configuration file and list its matching fields.

    CONFIG: Path to configuration file (YAML)
    """
    try:
        settings = load_config(config).reconciliation
        validate_settings(settings)
    except ConfigurationError as e:
        field_hint = f" (field: {e.field_id})" if e.field_id else ""
        console.print(f"[red]Invalid configuration: {escape(str(e))}{field_hint}[/red]")
        sys.exit(1)

    table = Table(title="Matching Fields")
    table.add_column("Id", style="cyan")
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Rule")
    table.add_column("Enabled")
    for field in settings.matching_fields:
        table.add_row(
            field.id,
            field.label,
            field.data_type,
            _describe_rule(field.rule),
            "yes" if field.enabled else "no",
        )
    console.print(table)
    console.print("[green]Configuration is valid[/green]")


def _apply_overrides(
    settings: ReconciliationSettings,
    aggregate: Optional[bool],
    partial_threshold: Optional[float],
) -> ReconciliationSettings:
    """Return settings with command-line overrides applied."""
    if aggregate is not None:
        aggregation = settings.aggregation.model_copy(update={"enabled": aggregate})
        settings = settings.model_copy(update={"aggregation": aggregation})
    if partial_threshold is not None:
        settings = settings.model_copy(update={"partial_match_threshold": partial_threshold})
    logger.debug(f"Effective settings: aggregation={settings.aggregation.enabled}")
    return settings


def _describe_rule(rule) -> str:
    if rule.type == "fuzzy":
        return f"fuzzy (>= {rule.tolerance:g}%)"
    if rule.type == "numeric_diff":
        return f"numeric_diff (<= {rule.max_diff:g})"
    return rule.type


def _display_summary(summary: ReconciliationSummary) -> None:
    """Display reconciliation summary in console."""
    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Own Records", str(summary.total_own_records))
    table.add_row("Counterparty Records", str(summary.total_counterparty_records))
    table.add_row("Counterparty Source Rows", str(summary.counterparty_source_rows))
    table.add_row("Matched", str(summary.matched))
    table.add_row("Partial Match", str(summary.partial_match))
    table.add_row("Missing in Counterparty", str(summary.missing_in_counterparty))
    table.add_row("Missing in Own", str(summary.missing_in_own))
    table.add_row("Match Rate", f"{summary.match_rate:.1f}%")
    table.add_row("Total Amount Difference", f"{summary.total_amount_difference:,.2f}")

    console.print(table)


def _display_diagnostics(diagnostics: Diagnostics) -> None:
    if not diagnostics.has_issues:
        return
    if diagnostics.mapping_errors:
        samples = ", ".join(diagnostics.sample_mapping_errors())
        console.print(
            f"[yellow]{diagnostics.mapping_error_count} row(s) excluded "
            f"with no mappable fields (e.g. {samples})[/yellow]"
        )
    if diagnostics.coercion_errors:
        console.print(
            f"[yellow]{diagnostics.coercion_error_count} cell(s) could not be "
            f"coerced and were treated as empty[/yellow]"
        )


if __name__ == "__main__":
    main()
