from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .record import Record

"""Result models for a multi-sheet load.

A load never aborts because one sheet failed; the per-sheet outcome is kept in
``SheetStat`` so the caller can log it and render the SUMMARY line.
"""


@dataclass(frozen=True)
class SheetStat:
    """Per-sheet outcome of a load."""
    sheet_name: str
    sheet_index: int
    status: str  # success/failed
    records: int  # 取得レコード数 (失敗時 0)
    error: str | None = None


@dataclass(frozen=True)
class LoadResult:
    """Records from one or more sheets plus aggregated load metrics."""
    records: list[Record]
    sheet_stats: list[SheetStat]
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    requested_sheet: str | None = None  # None -> 全シート
    sheet_names: list[str] = field(default_factory=list)  # ワークブック内の全シート名

    @property
    def success_sheets(self) -> int:
        return sum(1 for s in self.sheet_stats if s.status == "success")

    @property
    def failed_sheets(self) -> int:
        return sum(1 for s in self.sheet_stats if s.status == "failed")

    @property
    def total_records(self) -> int:
        return len(self.records)
