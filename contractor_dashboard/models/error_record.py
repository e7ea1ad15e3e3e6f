from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""One line of the JSON Lines error log.

Written for sheets that fail to read and for workbook writes that fail;
``row=-1`` means the failure is not tied to a single row.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    timestamp: str  # ISO8601 UTC, "Z" 付き
    file: str  # ブックのファイル名
    sheet: str
    row: int  # 1 始まり、不明なら -1
    error_type: str  # SHEET_READ_FAILED / WORKBOOK_WRITE_FAILED
    message: str

    @classmethod
    def create(cls, file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return cls(ts, file, sheet, row, error_type, message)

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
