from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .record import Record

"""Aggregate view models returned by ``services.aggregation``.

Each model knows its own JSON shape (``to_dict``) because the API keys are
camelCase while the attributes are not.
"""


@dataclass(frozen=True)
class RateBucket:
    """One fixed-width rate range of the histogram, with its member records."""
    start: float
    end: float  # inclusive (start + size - 1)
    label: str
    records: list[Record] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.records)

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "bucketStart": self.start,
            "bucketEnd": self.end,
            "count": self.count,
            "details": self.records,
        }


@dataclass(frozen=True)
class SectorStat:
    designation: str
    count: int
    avg_rate: float
    total_duration: float  # days

    def to_dict(self) -> dict[str, Any]:
        return {
            "designation": self.designation,
            "count": self.count,
            "avgRate": self.avg_rate,
            "totalDuration": self.total_duration,
        }


@dataclass(frozen=True)
class PersonTotal:
    """Cumulative duration and cost for one person, possibly across sheets."""
    name: str
    total_duration: float  # days
    cumulative_cost: float
    avg_rate: float  # cost / duration, 0 when duration is 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "totalDuration": self.total_duration,
            "cumulativeCost": self.cumulative_cost,
            "avgRate": self.avg_rate,
        }
