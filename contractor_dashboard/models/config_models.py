from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .record import CONTRACTOR_COLUMNS, PER_DAY_RATE_LKR, RATE_LKR

"""Config dataclasses for the contractor dashboard.

These are the typed domain models the loader in ``config/loader.py`` produces from
YAML. Each sheet resolves to exactly one ``SheetLayout`` (its header strategy plus
parameters), so nothing downstream branches on sheet name strings.
"""

DEFAULT_HEADER_ROW = 3  # 4行目がヘッダ
DEFAULT_MAX_SCAN_ROWS = 10
DEFAULT_BUCKET_SIZE = 5000.0


class HeaderStrategy(Enum):
    """How the header row of a sheet is located.

    - FIXED_OFFSET: header at a configured row index, data right after it
    - HEURISTIC_SCAN: first row (within the scan window) carrying "no" and "first name"
    - POSITIONAL: no header in the sheet; column names come from configuration
    """
    FIXED_OFFSET = "fixed_offset"
    HEURISTIC_SCAN = "heuristic_scan"
    POSITIONAL = "positional"


@dataclass(frozen=True)
class SheetLayout:
    """Header strategy and its parameters for one sheet."""
    strategy: HeaderStrategy = HeaderStrategy.FIXED_OFFSET
    header_row: int = DEFAULT_HEADER_ROW  # fixed offset / heuristic fallback (0-based)
    max_scan_rows: int = DEFAULT_MAX_SCAN_ROWS  # heuristic scan window
    columns: tuple[str, ...] = CONTRACTOR_COLUMNS  # positional header names

    @classmethod
    def fixed_offset(cls, header_row: int = DEFAULT_HEADER_ROW) -> SheetLayout:
        return cls(strategy=HeaderStrategy.FIXED_OFFSET, header_row=header_row)

    @classmethod
    def heuristic_scan(
        cls, max_scan_rows: int = DEFAULT_MAX_SCAN_ROWS, fallback_header_row: int = DEFAULT_HEADER_ROW
    ) -> SheetLayout:
        return cls(
            strategy=HeaderStrategy.HEURISTIC_SCAN,
            header_row=fallback_header_row,
            max_scan_rows=max_scan_rows,
        )

    @classmethod
    def positional(cls, columns: tuple[str, ...] | list[str] = CONTRACTOR_COLUMNS) -> SheetLayout:
        return cls(strategy=HeaderStrategy.POSITIONAL, header_row=0, columns=tuple(columns))

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> SheetLayout:
        """Build a layout from its YAML mapping form (already schema validated)."""
        if not data:
            return cls()
        strategy = HeaderStrategy(data.get("strategy", HeaderStrategy.FIXED_OFFSET.value))
        header_row = int(data.get("header_row", DEFAULT_HEADER_ROW))
        if strategy is HeaderStrategy.POSITIONAL:
            return cls.positional(data.get("columns") or CONTRACTOR_COLUMNS)
        if strategy is HeaderStrategy.HEURISTIC_SCAN:
            return cls.heuristic_scan(
                max_scan_rows=int(data.get("max_scan_rows", DEFAULT_MAX_SCAN_ROWS)),
                fallback_header_row=header_row,
            )
        return cls.fixed_offset(header_row)


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 5000
    debug: bool = False


@dataclass(frozen=True)
class DashboardConfig:
    """Root configuration object passed explicitly to the accessor, services and app."""
    workbook_path: Path  # 主ワークブック (system of record)
    cumulative_workbook_path: Path | None = None  # 累積集計用の別ワークブック
    backup_directory: Path | None = None  # None -> workbook と同じディレクトリ
    error_log_directory: Path = Path("logs")
    default_layout: SheetLayout = SheetLayout()
    sheet_layouts: dict[str, SheetLayout] = field(default_factory=dict)
    cumulative_layout: SheetLayout | None = None
    rate_field: str = PER_DAY_RATE_LKR
    rate_bucket_size: float = DEFAULT_BUCKET_SIZE
    cost_field: str = RATE_LKR
    server: ServerConfig = ServerConfig()

    def layout_for(self, sheet_name: str) -> SheetLayout:
        return self.sheet_layouts.get(sheet_name, self.default_layout)

    def layout_for_cumulative(self, sheet_name: str) -> SheetLayout:
        if self.cumulative_layout is not None:
            return self.cumulative_layout
        return self.layout_for(sheet_name)
