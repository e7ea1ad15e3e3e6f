from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Per-request buffer of ErrorRecords, flushed to ``<dir>/errors-YYYYMMDD-HHMMSS.log``.

The file name is fixed (UTC) on first use and the file only appears once
something is flushed.
"""

__all__ = [
    "ErrorLogBuffer",
]


class ErrorLogBuffer:
    def __init__(self, directory: Path | None = None) -> None:
        self._directory = Path(directory) if directory is not None else Path("logs")
        self._pending: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
            self._file_path = self._directory / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._pending.append(record)

    def __len__(self) -> int:
        return len(self._pending)

    def flush(self) -> Path | None:
        """Append pending records as JSON Lines; None when there was nothing to write."""
        if not self._pending:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            f.writelines(r.to_json_line() + "\n" for r in self._pending)
        self._pending.clear()
        return fp
