"""Command-line entry point (``contractor-dashboard``)."""

from .__main__ import main

__all__ = ["main"]
