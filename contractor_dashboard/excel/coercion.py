from __future__ import annotations

import math
import re
from typing import Any

from ..models.record import DURATION_FIELDS, FIRST_NAME, LAST_NAME

"""Field coercion utilities.

Pure functions turning free-text spreadsheet cells into numbers:

- rates: "LKR 12,500.50" -> 12500.5
- durations: "6 months" -> 180 (days, 30-day month), "45 days" -> 45, "90" -> 90

A purely numeric duration without a unit word is read as days. Every view that
needs a duration goes through ``duration_of`` so the unit rule lives in one place.
None of these raise; an unparseable value is 0 (or None for ``coerce_number``).
"""

__all__ = [
    "DAYS_PER_MONTH",
    "DAYS_PER_YEAR",
    "coerce_number",
    "parse_number",
    "parse_int_key",
    "parse_route_key",
    "parse_duration",
    "format_duration",
    "duration_of",
    "duration_field",
    "full_name",
]

DAYS_PER_MONTH = 30  # 暦非依存の固定近似
DAYS_PER_YEAR = 365

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_DANGLING_DOT = re.compile(r"\.(?!\d)")  # "Rs. 5000" の "." など
_LEADING_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_STRICT_INT = re.compile(r"[+-]?\d+", re.ASCII)
_MONTH_TOKEN = "month"
_DAY_TOKEN = "day"


def coerce_number(raw: Any) -> float | None:
    """Parse a numeric cell, returning None when nothing numeric remains.

    Thousands separators, whitespace and every character other than digits,
    '.' and '-' are stripped before parsing.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None
    text = _DANGLING_DOT.sub("", str(raw).replace(",", "").strip())
    text = _NON_NUMERIC.sub("", text)
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_number(raw: Any) -> float:
    """Like ``coerce_number`` but 0 stands for "unknown"."""
    value = coerce_number(raw)
    return 0.0 if value is None else value


def parse_int_key(raw: Any) -> int | None:
    """Parse a business key (``No.``) cell; None unless it is a whole number."""
    value = coerce_number(raw)
    if value is None or not value.is_integer():
        return None
    return int(value)


def parse_route_key(raw: Any) -> int | None:
    """Parse a key supplied by a caller (URL segment); digits only, no cleanup.

    Unlike ``parse_int_key`` nothing is stripped, so "abc2" or "1e1" is rejected
    instead of resolving to some other row's key.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    text = str(raw).strip()
    if not _STRICT_INT.fullmatch(text):
        return None
    return int(text)


def parse_duration(raw: Any) -> float:
    """Convert a duration cell to days.

    "month"/"months" multiplies the leading number by 30; "day"/"days" or no unit
    token at all takes the leading number as days.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw) if math.isfinite(raw) else 0.0
    text = str(raw).strip().lower()
    if not text:
        return 0.0
    match = _LEADING_NUMBER.search(text.replace(",", ""))
    if match is None:
        return 0.0
    value = float(match.group())
    if _MONTH_TOKEN in text:
        return value * DAYS_PER_MONTH
    # _DAY_TOKEN あり / 単位なし -> 日数
    return value


def format_duration(days: Any) -> str:
    """Render a day count as days (<30), months (<365) or years, one decimal."""
    value = coerce_number(days)
    if value is None or value < 0:
        return "0 days"
    if value < DAYS_PER_MONTH:
        return f"{value:g} days"
    if value < DAYS_PER_YEAR:
        return f"{value / DAYS_PER_MONTH:.1f} months"
    return f"{value / DAYS_PER_YEAR:.1f} years"


def duration_field(record: dict[str, Any]) -> str | None:
    """Return the first duration field name present with a non-empty value."""
    for name in DURATION_FIELDS:
        value = record.get(name)
        if value is not None and str(value).strip() != "":
            return name
    return None


def duration_of(record: dict[str, Any]) -> float:
    name = duration_field(record)
    return 0.0 if name is None else parse_duration(record[name])


def full_name(record: dict[str, Any]) -> str:
    first = str(record.get(FIRST_NAME) or "").strip()
    last = str(record.get(LAST_NAME) or "").strip()
    return " ".join(part for part in (first, last) if part)
