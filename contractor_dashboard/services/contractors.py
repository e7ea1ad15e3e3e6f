from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..excel.coercion import parse_route_key
from ..excel.errors import (
    InvalidInputError,
    InvalidKeyError,
    SheetNotFoundError,
    WorkbookNotFoundError,
    WorkbookWriteError,
)
from ..excel.reader import is_blank, normalize_sheet, resolve_header
from ..excel.workbook import WorkbookAccessor
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary
from ..models.aggregates import PersonTotal
from ..models.config_models import DashboardConfig, SheetLayout
from ..models.error_record import ErrorRecord
from ..models.load_result import LoadResult, SheetStat
from ..models.record import CONTRACTOR_COLUMNS, DURATION_FIELDS, NO, Record
from .aggregation import cumulative_by_person, total_duration_by_person
from .summary import SUMMARY_PREFIX, render_summary_line

"""Contractor use cases on top of the workbook accessor.

Reads: load every requested sheet, normalize it with the sheet's layout and
concatenate the records. A sheet that fails is logged (console + JSON Lines error
log) and contributes zero records; the other sheets are still returned.

Writes: map a payload onto the sheet's column order and append it, or delete the
row carrying a business key. Records are rebuilt from the file on every call.
"""

logger = logging.getLogger(__name__)

LayoutResolver = Callable[[str], SheetLayout]

# セルに書ける値のみ (JSON の object / array は不可)
SCALAR_TYPES = (str, int, float, bool)


def accessor_for(config: DashboardConfig) -> WorkbookAccessor:
    return WorkbookAccessor(config.workbook_path, config.backup_directory)


def load_records(
    accessor: WorkbookAccessor,
    layout_for: LayoutResolver,
    sheet_name: str | None = None,
    error_log_dir: Path | None = None,
) -> LoadResult:
    """Load and normalize one sheet (or all sheets when ``sheet_name`` is None).

    Raises:
        WorkbookNotFoundError: the workbook file does not exist
        SheetNotFoundError: ``sheet_name`` is not in the workbook
    """
    start_time = datetime.now(UTC)
    error_log = ErrorLogBuffer(error_log_dir)
    records: list[Record] = []
    stats: list[SheetStat] = []

    with accessor.opened() as wb:
        sheet_names = list(wb.sheetnames)
        if sheet_name is not None and sheet_name not in sheet_names:
            raise SheetNotFoundError(sheet_name, sheet_names)
        targets = [sheet_name] if sheet_name is not None else sheet_names

        for name in targets:
            index = sheet_names.index(name)
            try:
                grid = accessor.sheet_grid(wb, name)
                data = normalize_sheet(grid, name, index, layout_for(name))
            except Exception as e:
                # 1シートの失敗で全体を止めない
                logger.error(f'Error processing sheet "{name}": {e}')
                error_log.append(
                    ErrorRecord.create(
                        file=accessor.path.name,
                        sheet=name,
                        row=-1,
                        error_type="SHEET_READ_FAILED",
                        message=str(e),
                    )
                )
                stats.append(SheetStat(sheet_name=name, sheet_index=index, status="failed", records=0, error=str(e)))
                continue
            logger.debug(f'Headers found for "{name}": {data.columns}')
            logger.info(
                f'Processed sheet "{name}" with {len(data.rows)} data rows '
                f"starting from row {data.data_start_row_index + 1}"
            )
            records.extend(data.rows)
            stats.append(SheetStat(sheet_name=name, sheet_index=index, status="success", records=len(data.rows)))

    if len(error_log):
        error_log.flush()

    end_time = datetime.now(UTC)
    result = LoadResult(
        records=records,
        sheet_stats=stats,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        requested_sheet=sheet_name,
        sheet_names=sheet_names,
    )
    log_summary(render_summary_line(result)[len(SUMMARY_PREFIX):])
    return result


def load_contractors(config: DashboardConfig, sheet_name: str | None = None) -> LoadResult:
    return load_records(accessor_for(config), config.layout_for, sheet_name, config.error_log_directory)


def load_cumulative(config: DashboardConfig) -> LoadResult:
    if config.cumulative_workbook_path is None:
        raise WorkbookNotFoundError("Cumulative workbook is not configured")
    accessor = WorkbookAccessor(config.cumulative_workbook_path, config.backup_directory)
    return load_records(accessor, config.layout_for_cumulative, None, config.error_log_directory)


def cumulative_totals(config: DashboardConfig) -> list[PersonTotal]:
    result = load_cumulative(config)
    return cumulative_by_person(result.records, config.cost_field, config.rate_field)


def total_durations(config: DashboardConfig) -> list[dict[str, object]]:
    return total_duration_by_person(load_contractors(config).records)


def build_row_values(payload: Mapping[str, Any], columns: list[str]) -> list[Any]:
    """Order payload values by the sheet's columns.

    Duration field names are interchangeable; missing fields become "". Sheets
    without a detectable header use the default contractor column order. Every
    value must be text, a number, a boolean or null.
    """
    for name, value in payload.items():
        if value is not None and not isinstance(value, SCALAR_TYPES):
            raise InvalidInputError(f"Field '{name}' must be text or a number, got {type(value).__name__}")
    if not any(columns):
        columns = list(CONTRACTOR_COLUMNS)
    duration_value = next(
        (payload[name] for name in DURATION_FIELDS if not is_blank(payload.get(name))), None
    )
    values: list[Any] = []
    for col in columns:
        value = payload.get(col) if col else None
        if is_blank(value) and col in DURATION_FIELDS:
            value = duration_value
        values.append("" if value is None else value)
    return values


def _record_write_failure(config: DashboardConfig, sheet_name: str, error: Exception) -> None:
    buffer = ErrorLogBuffer(config.error_log_directory)
    buffer.append(
        ErrorRecord.create(
            file=config.workbook_path.name,
            sheet=sheet_name,
            row=-1,
            error_type="WORKBOOK_WRITE_FAILED",
            message=str(error.__cause__ or error),
        )
    )
    buffer.flush()


def add_contractor(config: DashboardConfig, sheet_name: str | None, payload: Mapping[str, Any]) -> int:
    """Append a contractor row to ``sheet_name``; returns the 1-based row number."""
    if not sheet_name:
        raise InvalidInputError("Sheet name is required")
    if not isinstance(payload, Mapping):
        raise InvalidInputError("Request body must be a JSON object")

    accessor = accessor_for(config)
    grid = accessor.read_sheet_grid(sheet_name)
    columns, header_idx, _ = resolve_header(grid, config.layout_for(sheet_name))
    values = build_row_values(payload, columns)
    if all(is_blank(v) for v in values):
        raise InvalidInputError("No contractor fields supplied")

    try:
        return accessor.append_row(sheet_name, values, header_idx if header_idx is not None else 0)
    except WorkbookWriteError as e:
        _record_write_failure(config, sheet_name, e)
        raise


def delete_contractor(config: DashboardConfig, sheet_name: str, row_key: Any) -> int:
    """Delete the row of ``sheet_name`` whose ``No.`` equals ``row_key``."""
    key = parse_route_key(row_key)
    if key is None:
        raise InvalidKeyError(f"Invalid {NO} value: {row_key!r}")

    accessor = accessor_for(config)
    grid = accessor.read_sheet_grid(sheet_name)
    _, _, data_start = resolve_header(grid, config.layout_for(sheet_name))
    try:
        accessor.delete_row(sheet_name, key, data_start)
    except WorkbookWriteError as e:
        _record_write_failure(config, sheet_name, e)
        raise
    return key
