from __future__ import annotations

"""Error taxonomy for workbook access and record handling.

NotFound   -> WorkbookNotFoundError / SheetNotFoundError
InvalidInput -> InvalidInputError / InvalidKeyError
IOFailure  -> WorkbookReadError / WorkbookWriteError

The HTTP layer maps each family to one status code (404 / 400 / 500).
"""

__all__ = [
    "WorkbookError",
    "NotFoundError",
    "WorkbookNotFoundError",
    "SheetNotFoundError",
    "InvalidInputError",
    "InvalidKeyError",
    "IOFailureError",
    "WorkbookReadError",
    "WorkbookWriteError",
]


class WorkbookError(Exception):
    """Base exception for workbook and record errors."""


class NotFoundError(WorkbookError):
    pass


class WorkbookNotFoundError(NotFoundError):
    """Raised when the workbook file does not exist."""


class SheetNotFoundError(NotFoundError):
    """Raised when a sheet name is absent from the workbook."""

    def __init__(self, sheet_name: str, available: list[str] | None = None) -> None:
        self.sheet_name = sheet_name
        self.available = list(available or [])
        msg = f"Sheet '{sheet_name}' not found"
        if self.available:
            msg += f". Available sheets: {', '.join(self.available)}"
        super().__init__(msg)


class InvalidInputError(WorkbookError):
    """Missing required field or non-numeric value where a number is required."""


class InvalidKeyError(InvalidInputError):
    """Raised when no row carries the requested business key."""


class IOFailureError(WorkbookError):
    pass


class WorkbookReadError(IOFailureError):
    """Raised when the workbook exists but cannot be parsed."""


class WorkbookWriteError(IOFailureError):
    """Raised when persisting the workbook fails (after restoring the backup)."""
