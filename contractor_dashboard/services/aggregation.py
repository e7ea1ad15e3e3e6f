from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

import numpy as np
import pandas as pd

from ..excel.coercion import coerce_number, duration_of, full_name, parse_number
from ..excel.errors import InvalidInputError
from ..models.aggregates import PersonTotal, RateBucket, SectorStat
from ..models.config_models import DEFAULT_BUCKET_SIZE
from ..models.record import DESIGNATION, PER_DAY_RATE_LKR, RATE_LKR, Record

"""Aggregation views over normalized records.

- rate histogram: fixed-width buckets of a coerced rate field
- sector statistics: group by Designation (count / mean rate / total duration)
- cumulative totals: group by full name across sheets (duration / cost / avg rate)

Durations are always taken through ``duration_of`` (days).
"""

__all__ = [
    "MAX_HISTOGRAM_BUCKETS",
    "bucket_label",
    "rate_histogram",
    "lowest_rate_bucket",
    "sector_statistics",
    "cumulative_by_person",
    "total_duration_by_person",
]

# 空きバケットも埋めるため、範囲が広すぎる場合は拒否
MAX_HISTOGRAM_BUCKETS = 10_000


def _fmt_amount(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def bucket_label(start: float, bucket_size: float) -> str:
    """Inclusive range label, e.g. ``"5,000 - 9,999"``."""
    return f"{_fmt_amount(start)} - {_fmt_amount(start + bucket_size - 1)}"


def rate_histogram(
    records: Sequence[Record],
    rate_field: str = PER_DAY_RATE_LKR,
    bucket_size: float = DEFAULT_BUCKET_SIZE,
) -> list[RateBucket]:
    """Histogram of ``rate_field`` in buckets of ``bucket_size``.

    Bucket start is ``floor(rate / size) * size``. Buckets run contiguously from
    the lowest to the highest occupied bucket (empty gaps included, count 0) in
    ascending order. Records without a parseable rate are left out.
    A rate range spanning more than MAX_HISTOGRAM_BUCKETS buckets is rejected
    with InvalidInputError.
    """
    if not isinstance(bucket_size, (int, float)) or not math.isfinite(bucket_size) or bucket_size <= 0:
        raise InvalidInputError(f"bucket size must be a positive number, got {bucket_size!r}")

    rated = [(record, coerce_number(record.get(rate_field))) for record in records]
    rated = [(record, rate) for record, rate in rated if rate is not None]
    if not rated:
        return []

    frame = pd.DataFrame({"rate": [rate for _, rate in rated]})
    numbers = np.floor(frame["rate"] / bucket_size)
    span = numbers.max() - numbers.min() + 1
    if not math.isfinite(span) or span > MAX_HISTOGRAM_BUCKETS:
        raise InvalidInputError(
            f"rate range spans {span:.0f} buckets (max {MAX_HISTOGRAM_BUCKETS}); use a larger bucket size"
        )
    frame["bucket"] = numbers.astype("int64")
    members = frame.groupby("bucket").indices  # bucket 番号 -> 位置インデックス

    lo, hi = int(frame["bucket"].min()), int(frame["bucket"].max())
    buckets: list[RateBucket] = []
    for number in range(lo, hi + 1):
        start = number * bucket_size
        positions = members.get(number, [])
        buckets.append(
            RateBucket(
                start=start,
                end=start + bucket_size - 1,
                label=bucket_label(start, bucket_size),
                records=[rated[int(p)][0] for p in positions],
            )
        )
    return buckets


def lowest_rate_bucket(buckets: Iterable[RateBucket]) -> RateBucket | None:
    return next((b for b in buckets if b.count > 0), None)


def sector_statistics(records: Iterable[Record], rate_field: str = PER_DAY_RATE_LKR) -> list[SectorStat]:
    """Per-designation count, mean coerced rate and summed duration (days)."""
    rows = [
        {
            "designation": str(record[DESIGNATION]),
            "rate": parse_number(record.get(rate_field)),
            "duration": duration_of(record),
        }
        for record in records
        if record.get(DESIGNATION) not in (None, "")
    ]
    if not rows:
        return []
    frame = pd.DataFrame(rows)
    grouped = frame.groupby("designation", sort=True).agg(
        n=("rate", "size"),
        avg_rate=("rate", "mean"),
        total_duration=("duration", "sum"),
    )
    return [
        SectorStat(
            designation=str(name),
            count=int(row["n"]),
            avg_rate=float(row["avg_rate"]),
            total_duration=float(row["total_duration"]),
        )
        for name, row in grouped.iterrows()
    ]


def cumulative_by_person(
    records: Iterable[Record],
    cost_field: str = RATE_LKR,
    rate_field: str = PER_DAY_RATE_LKR,
) -> list[PersonTotal]:
    """Sum duration and cost per full name, across every sheet given.

    The cost of a record is its ``cost_field`` value; when that is empty or zero
    it is the per-day rate times the duration. ``avg_rate`` is cost / duration,
    0 for a zero duration. Ordered by total duration, longest first.
    """
    rows = []
    for record in records:
        name = full_name(record)
        if not name:
            continue
        duration = duration_of(record)
        cost = parse_number(record.get(cost_field))
        if cost == 0:
            cost = parse_number(record.get(rate_field)) * duration
        rows.append({"name": name, "duration": duration, "cost": cost})
    if not rows:
        return []

    frame = pd.DataFrame(rows)
    grouped = frame.groupby("name", sort=False).agg(duration=("duration", "sum"), cost=("cost", "sum"))
    grouped = grouped.sort_values("duration", ascending=False, kind="stable")

    totals: list[PersonTotal] = []
    for name, row in grouped.iterrows():
        duration = float(row["duration"])
        cost = float(row["cost"])
        totals.append(
            PersonTotal(
                name=str(name),
                total_duration=duration,
                cumulative_cost=cost,
                avg_rate=cost / duration if duration else 0.0,
            )
        )
    return totals


def total_duration_by_person(records: Iterable[Record]) -> list[dict[str, object]]:
    return [
        {"name": t.name, "totalDays": t.total_duration}
        for t in cumulative_by_person(records)
    ]
