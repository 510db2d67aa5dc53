"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    ConfigurationError,
    MappingError,
    CoercionError,
    SpreadsheetReadError,
    ReportGenerationError,
)
from .logging_config import setup_logging, get_logger

__all__ = [
    "ReconciliationError",
    "ConfigurationError",
    "MappingError",
    "CoercionError",
    "SpreadsheetReadError",
    "ReportGenerationError",
    "setup_logging",
    "get_logger",
]
