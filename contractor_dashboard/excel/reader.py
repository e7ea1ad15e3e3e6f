from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from ..models.config_models import DEFAULT_HEADER_ROW, DEFAULT_MAX_SCAN_ROWS, HeaderStrategy, SheetLayout
from ..models.record import ROW_INDEX_KEY, SHEET_INDEX_KEY, SHEET_NAME_KEY, Record

"""Sheet normalizer: raw cell grid -> field-keyed records.

Steps:
1. Resolve the header row from the sheet's layout (fixed offset / heuristic scan /
   positional column list)
2. Rows after the header become data rows; entirely blank rows are skipped
3. Header names are zipped to cell values positionally; columns with an empty
   header cell are dropped, missing cells become ""
4. Every record is tagged with _sheetName / _sheetIndex / _rowIndex
"""

__all__ = [
    "SheetGrid",
    "SheetData",
    "HEADER_TOKENS",
    "is_blank",
    "is_blank_row",
    "cell_value",
    "detect_header_row",
    "resolve_header",
    "normalize_sheet",
]

SheetGrid = list[list[Any]]

# ヒューリスティック判定: 両方を含む行をヘッダとみなす
HEADER_TOKENS = ("no", "first name")


@dataclass
class SheetData:
    sheet_name: str
    sheet_index: int
    columns: list[str]  # 空ヘッダを除いた列名
    rows: list[Record]  # 正規化済 (列名→値)
    header_row_index: int | None  # positional の場合 None
    data_start_row_index: int


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def is_blank_row(row: Sequence[Any]) -> bool:
    return all(is_blank(v) for v in row)


def _header_name(value: Any) -> str:
    if is_blank(value):
        return ""
    return str(value).strip()


def cell_value(value: Any) -> Any:
    """JSON-ready cell value; dates become ISO text, elapsed times ([h]:mm:ss) days."""
    if value is None:
        return ""
    if isinstance(value, timedelta):
        return value.total_seconds() / 86400
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def detect_header_row(
    grid: SheetGrid,
    max_scan_rows: int = DEFAULT_MAX_SCAN_ROWS,
    default: int = DEFAULT_HEADER_ROW,
) -> int:
    """Return the index of the first row holding both header tokens.

    A row qualifies when one of its cells contains "no" and one contains
    "first name" (case-insensitive substring match). Falls back to ``default``
    when no row within the scan window qualifies.
    """
    no_token, name_token = HEADER_TOKENS
    for idx, row in enumerate(grid[:max_scan_rows]):
        cells = [str(c).strip().lower() for c in row if not is_blank(c)]
        if any(no_token in c for c in cells) and any(name_token in c for c in cells):
            return idx
    return default


def resolve_header(grid: SheetGrid, layout: SheetLayout) -> tuple[list[str], int | None, int]:
    """Resolve (header names, header row index, data start row index) for a sheet."""
    if layout.strategy is HeaderStrategy.POSITIONAL:
        return list(layout.columns), None, 0
    if layout.strategy is HeaderStrategy.HEURISTIC_SCAN:
        header_idx = detect_header_row(grid, layout.max_scan_rows, layout.header_row)
    else:
        header_idx = layout.header_row
    if header_idx >= len(grid):
        # ヘッダ行まで届かないシート -> データなし
        return [], header_idx, header_idx + 1
    return [_header_name(c) for c in grid[header_idx]], header_idx, header_idx + 1


def normalize_sheet(
    grid: SheetGrid,
    sheet_name: str,
    sheet_index: int,
    layout: SheetLayout | None = None,
) -> SheetData:
    """Normalize one sheet's raw grid into records.

    ``_rowIndex`` is the data start row plus the 1-based ordinal of the non-blank
    data row, so with no blank rows in between it equals the sheet row number.
    """
    layout = layout or SheetLayout()
    header, header_idx, data_start = resolve_header(grid, layout)
    named = [(pos, name) for pos, name in enumerate(header) if name]

    rows: list[Record] = []
    ordinal = 0
    for raw in grid[data_start:]:
        if is_blank_row(raw):
            continue
        ordinal += 1
        record: Record = {}
        for pos, name in named:
            record[name] = cell_value(raw[pos]) if pos < len(raw) else ""
        record[SHEET_NAME_KEY] = sheet_name
        record[SHEET_INDEX_KEY] = sheet_index
        record[ROW_INDEX_KEY] = data_start + ordinal
        rows.append(record)

    return SheetData(
        sheet_name=sheet_name,
        sheet_index=sheet_index,
        columns=[name for _, name in named],
        rows=rows,
        header_row_index=header_idx,
        data_start_row_index=data_start,
    )
