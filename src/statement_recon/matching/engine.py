"""
Reconciliation engine.
Runs the full pipeline: map -> filter -> aggregate -> match -> summarize.
"""

from datetime import datetime
from typing import Iterable
import logging

from ..config import ReconciliationSettings, validate_settings
from ..mapping.column_mapper import ColumnMapper
from ..models.records import (
    Diagnostics,
    NormalizedRecord,
    RawRow,
    RecordSource,
    ReconciliationResult,
)
from .aggregator import aggregate
from .filters import apply_filters
from .matcher import Matcher
from .summarizer import summarize

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    Main reconciliation engine that orchestrates one statement-matching run.

    Settings are validated on construction, so a ConfigurationError means
    the run could not start; a returned result always classifies every row.
    """

    def __init__(self, settings: ReconciliationSettings):
        """
        Initialize the reconciliation engine.

        Args:
            settings: Reconciliation settings for this run

        Raises:
            ConfigurationError: If the settings are inconsistent
        """
        validate_settings(settings)
        self.settings = settings

    def reconcile(
        self,
        own_rows: Iterable[RawRow],
        counterparty_rows: Iterable[RawRow],
    ) -> ReconciliationResult:
        """
        Reconcile the own ledger against the counterparty statement.

        Args:
            own_rows: Rows from the organization's ledger export
            counterparty_rows: Rows from the counterparty's statement

        Returns:
            Summary, classified records and diagnostics
        """
        start_time = datetime.now()
        settings = self.settings
        diagnostics = Diagnostics()

        own_records = self._normalize(own_rows, RecordSource.OWN, diagnostics)
        counterparty_records = self._normalize(
            counterparty_rows, RecordSource.COUNTERPARTY, diagnostics
        )
        logger.info(
            f"Starting reconciliation: {len(own_records)} own records, "
            f"{len(counterparty_records)} counterparty records"
        )

        own_pool = apply_filters(own_records, settings.filters)
        counterparty_pool = apply_filters(counterparty_records, settings.filters)
        diagnostics.filtered_own = len(own_records) - len(own_pool)
        diagnostics.filtered_counterparty = len(counterparty_records) - len(
            counterparty_pool
        )

        counterparty_pool = aggregate(counterparty_pool, settings.aggregation)

        matcher = Matcher(
            settings.matching_fields,
            partial_match_threshold=settings.partial_match_threshold,
            empty_confidence=settings.empty_match_confidence,
            anchor_field=settings.anchor_field,
        )
        records = matcher.match(own_pool, counterparty_pool)
        summary = summarize(records, settings.amount_field, settings.matching_fields)

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Reconciliation complete in {elapsed:.2f}s: {summary.matched} matched, "
            f"{summary.partial_match} partial, "
            f"{summary.missing_in_counterparty} missing in counterparty, "
            f"{summary.missing_in_own} missing in own"
        )
        if diagnostics.has_issues:
            logger.warning(
                f"{diagnostics.mapping_error_count} rows excluded, "
                f"{diagnostics.coercion_error_count} cells could not be coerced"
            )

        return ReconciliationResult(
            summary=summary,
            records=records,
            diagnostics=diagnostics,
            settings=settings,
        )

    def _normalize(
        self,
        rows: Iterable[RawRow],
        source: RecordSource,
        diagnostics: Diagnostics,
    ) -> list[NormalizedRecord]:
        """Map one side's rows, collecting diagnostics."""
        mapper = ColumnMapper(
            self.settings.matching_fields,
            self.settings.column_mapping.for_source(source.value),
            source,
        )
        records, source_diagnostics = mapper.normalize(rows)
        diagnostics.extend(source_diagnostics)
        return records
