"""Readers for ledger and statement spreadsheets."""

from .spreadsheet_reader import SpreadsheetReader

__all__ = ["SpreadsheetReader"]
