"""Shared fixtures for the reconciliation tests."""

import logging

import pytest

from statement_recon.config import (
    AggregationSettings,
    ColumnMapping,
    ExactRule,
    FuzzyRule,
    MatchingField,
    NumericDiffRule,
    ReconciliationSettings,
)


@pytest.fixture
def settings() -> ReconciliationSettings:
    """Reference / name / amount settings with distinct headers per side."""
    return ReconciliationSettings(
        matching_fields=[
            MatchingField(id="ref", label="Reference", rule=ExactRule()),
            MatchingField(id="name", label="Name", rule=FuzzyRule(tolerance=85)),
            MatchingField(
                id="amount",
                label="Amount",
                data_type="number",
                rule=NumericDiffRule(max_diff=1),
            ),
        ],
        column_mapping=ColumnMapping(
            own={"ref": "Invoice", "name": "Customer", "amount": "Total"},
            counterparty={"ref": "Reference", "name": "Client", "amount": "Value"},
        ),
        aggregation=AggregationSettings(
            enabled=False, aggregation_key="ref", aggregation_value_field="amount"
        ),
        amount_field="amount",
    )


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers installed by setup_logging between tests."""
    yield
    logger = logging.getLogger("statement_recon")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
