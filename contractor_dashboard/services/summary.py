from __future__ import annotations

from ..models.load_result import LoadResult

"""SUMMARY line rendering for a multi-sheet load."""

SUMMARY_PREFIX = "SUMMARY "


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # Format very small numbers to avoid scientific notation
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: LoadResult) -> str:
    """Render the SUMMARY line for a load.

    Format:
    SUMMARY sheets={ok}/{total} failed_sheets={failed} records={records} elapsed_sec={elapsed}

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> r = LoadResult(records=[], sheet_stats=[], start_time=t, end_time=t, elapsed_seconds=0.0)
        >>> render_summary_line(r)
        'SUMMARY sheets=0/0 failed_sheets=0 records=0 elapsed_sec=0'
    """
    total = len(result.sheet_stats)
    return (
        f"{SUMMARY_PREFIX}sheets={result.success_sheets}/{total} "
        f"failed_sheets={result.failed_sheets} "
        f"records={result.total_records} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
