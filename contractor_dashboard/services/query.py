from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from ..excel.coercion import coerce_number, full_name, parse_duration
from ..excel.errors import InvalidInputError
from ..models.record import (
    DESIGNATION,
    DURATION_FIELDS,
    FIRST_NAME,
    LAST_NAME,
    META_KEYS,
    NO,
    PER_DAY_RATE_LKR,
    PER_DAY_RATE_USD,
    RATE_LKR,
    RATE_USD,
    ROW_INDEX_KEY,
    SHEET_INDEX_KEY,
    YEARS_OF_EXPERIENCE,
    Record,
)

"""Search / sector filter / sort over normalized records.

These back the ``q``, ``searchType``, ``designation``, ``sortBy`` and ``order``
query parameters of ``GET /api/contractors``.
"""

__all__ = [
    "SEARCH_TYPES",
    "search_records",
    "filter_by_sector",
    "sort_records",
    "unique_designations",
]

SEARCH_TYPES = ("all", "name", "designation")

NUMERIC_FIELDS = frozenset(
    {
        NO,
        YEARS_OF_EXPERIENCE,
        PER_DAY_RATE_LKR,
        PER_DAY_RATE_USD,
        RATE_LKR,
        RATE_USD,
        ROW_INDEX_KEY,
        SHEET_INDEX_KEY,
    }
)


def _text(value: Any) -> str:
    return "" if value is None else str(value).lower()


def search_records(records: Iterable[Record], term: str | None, search_type: str = "all") -> list[Record]:
    """Case-insensitive substring search.

    - all: any field value (provenance keys excluded)
    - name: first name, last name or "first last"
    - designation: the Designation field
    """
    if search_type not in SEARCH_TYPES:
        raise InvalidInputError(f"searchType must be one of {', '.join(SEARCH_TYPES)}")
    needle = (term or "").strip().lower()
    if not needle:
        return list(records)

    def matches(record: Record) -> bool:
        if search_type == "name":
            candidates = (record.get(FIRST_NAME), record.get(LAST_NAME), full_name(record))
            return any(needle in _text(c) for c in candidates)
        if search_type == "designation":
            return needle in _text(record.get(DESIGNATION))
        return any(needle in _text(v) for k, v in record.items() if k not in META_KEYS)

    return [r for r in records if matches(r)]


def filter_by_sector(records: Iterable[Record], designation: str | None) -> list[Record]:
    if not designation:
        return list(records)
    return [r for r in records if r.get(DESIGNATION) == designation]


def _sort_value(record: Record, field: str) -> Any:
    raw = record.get(field)
    if field in DURATION_FIELDS:
        return parse_duration(raw) if raw not in (None, "") else None
    if field in NUMERIC_FIELDS:
        return coerce_number(raw)
    text = _text(raw).strip()
    return text or None


def sort_records(records: Iterable[Record], field: str, descending: bool = False) -> list[Record]:
    """Stable sort by ``field``; numeric fields compare as numbers.

    Records with no value for the field always go last.
    """
    present: list[tuple[Any, Record]] = []
    missing: list[Record] = []
    for record in records:
        value = _sort_value(record, field)
        if value is None:
            missing.append(record)
        else:
            present.append((value, record))
    present.sort(key=lambda pair: pair[0], reverse=descending)
    return [r for _, r in present] + missing


def unique_designations(records: Iterable[Record]) -> list[str]:
    return sorted({str(r[DESIGNATION]) for r in records if r.get(DESIGNATION) not in (None, "")})
