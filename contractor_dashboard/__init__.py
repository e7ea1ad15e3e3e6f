"""Contractor dashboard: spreadsheet-backed contractor records over HTTP."""

__version__ = "0.1.0"
