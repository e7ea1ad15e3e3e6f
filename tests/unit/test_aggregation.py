from __future__ import annotations

import pytest

from contractor_dashboard.excel.errors import InvalidInputError
from contractor_dashboard.services.aggregation import (
    MAX_HISTOGRAM_BUCKETS,
    bucket_label,
    cumulative_by_person,
    lowest_rate_bucket,
    rate_histogram,
    sector_statistics,
    total_duration_by_person,
)

"""Unit tests for rate histogram / sector statistics / cumulative totals."""

RATE = "Per day Rate in LKR"


def _rec(first: str, last: str, designation: str, rate: object, duration: object = "", cost: object = "") -> dict:
    return {
        "First Name": first,
        "Last Name": last,
        "Designation": designation,
        RATE: rate,
        "Duration (Months/Days)": duration,
        "Rate in LKR": cost,
    }


RECORDS = [
    _rec("Nimal", "Perera", "Engineer", "10,000", "6 months", "1,800,000"),
    _rec("Dilani", "Silva", "Consultant", "LKR 25,000", "45 days"),
    _rec("Kamal", "Fernando", "Engineer", 7500, "2 months", 450000),
    _rec("Nimal", "Perera", "Engineer", "12,000", "3 months", "1,080,000"),
    _rec("Ruwan", "Bandara", "Analyst", "unknown", ""),
]


def test_bucket_label_is_inclusive_range():
    assert bucket_label(5000.0, 5000.0) == "5,000 - 9,999"
    assert bucket_label(0, 1000) == "0 - 999"


def test_rate_histogram_contiguous_buckets_with_gaps():
    buckets = rate_histogram(RECORDS, RATE, 5000)

    assert [b.label for b in buckets] == [
        "5,000 - 9,999",
        "10,000 - 14,999",
        "15,000 - 19,999",
        "20,000 - 24,999",
        "25,000 - 29,999",
    ]
    assert [b.count for b in buckets] == [1, 2, 0, 0, 1]
    assert [r["First Name"] for r in buckets[1].records] == ["Nimal", "Nimal"]
    assert buckets[0].start == 5000 and buckets[0].end == 9999


def test_rate_histogram_excludes_unparseable_rates():
    buckets = rate_histogram(RECORDS, RATE, 5000)
    assert sum(b.count for b in buckets) == 4


def test_rate_histogram_boundary_value_goes_to_upper_bucket():
    buckets = rate_histogram([_rec("A", "B", "X", 10000)], RATE, 5000)
    assert len(buckets) == 1
    assert buckets[0].label == "10,000 - 14,999"


def test_rate_histogram_empty_input():
    assert rate_histogram([], RATE, 5000) == []
    assert rate_histogram([_rec("A", "B", "X", "n/a")], RATE, 5000) == []


@pytest.mark.parametrize("size", [0, -5, float("nan")])
def test_rate_histogram_rejects_bad_bucket_size(size):
    with pytest.raises(InvalidInputError):
        rate_histogram(RECORDS, RATE, size)


def test_rate_histogram_rejects_too_many_buckets():
    records = [_rec("A", "B", "X", 0), _rec("C", "D", "X", "LKR 50,000,000,000")]
    with pytest.raises(InvalidInputError, match="buckets"):
        rate_histogram(records, RATE, 5000)


def test_rate_histogram_allows_span_at_limit():
    records = [_rec("A", "B", "X", 0), _rec("C", "D", "X", (MAX_HISTOGRAM_BUCKETS - 1) * 10)]
    buckets = rate_histogram(records, RATE, 10)
    assert len(buckets) == MAX_HISTOGRAM_BUCKETS
    assert buckets[0].count == 1 and buckets[-1].count == 1


def test_bucket_to_dict_shape():
    bucket = rate_histogram(RECORDS, RATE, 5000)[0]
    data = bucket.to_dict()
    assert set(data) == {"label", "bucketStart", "bucketEnd", "count", "details"}
    assert data["count"] == 1
    assert data["details"][0]["First Name"] == "Kamal"


def test_lowest_rate_bucket_skips_empty():
    buckets = rate_histogram(RECORDS, RATE, 5000)
    assert lowest_rate_bucket(buckets).label == "5,000 - 9,999"
    assert lowest_rate_bucket([]) is None


def test_sector_statistics_groups_by_designation():
    stats = {s.designation: s for s in sector_statistics(RECORDS, RATE)}

    assert list(stats) == ["Analyst", "Consultant", "Engineer"]
    engineer = stats["Engineer"]
    assert engineer.count == 3
    assert engineer.avg_rate == pytest.approx((10000 + 7500 + 12000) / 3)
    assert engineer.total_duration == pytest.approx(180 + 60 + 90)
    # 不明レートは 0 として平均に含める
    assert stats["Analyst"].avg_rate == 0.0
    assert stats["Consultant"].to_dict() == {
        "designation": "Consultant",
        "count": 1,
        "avgRate": 25000.0,
        "totalDuration": 45.0,
    }


def test_sector_statistics_skips_records_without_designation():
    assert sector_statistics([_rec("A", "B", "", 100)], RATE) == []


def test_cumulative_by_person_sums_across_sheets():
    totals = cumulative_by_person(RECORDS)

    assert [t.name for t in totals] == ["Nimal Perera", "Kamal Fernando", "Dilani Silva", "Ruwan Bandara"]
    nimal = totals[0]
    assert nimal.total_duration == 270.0
    assert nimal.cumulative_cost == pytest.approx(2_880_000)
    assert nimal.avg_rate == pytest.approx(2_880_000 / 270)


def test_cumulative_cost_falls_back_to_rate_times_duration():
    dilani = next(t for t in cumulative_by_person(RECORDS) if t.name == "Dilani Silva")
    assert dilani.cumulative_cost == pytest.approx(25000 * 45)
    assert dilani.avg_rate == pytest.approx(25000)


def test_cumulative_zero_duration_has_zero_avg_rate():
    ruwan = next(t for t in cumulative_by_person(RECORDS) if t.name == "Ruwan Bandara")
    assert ruwan.total_duration == 0.0
    assert ruwan.avg_rate == 0.0


def test_cumulative_ties_keep_first_seen_order():
    records = [_rec("B", "Two", "X", 1, "10"), _rec("A", "One", "X", 1, "10")]
    assert [t.name for t in cumulative_by_person(records)] == ["B Two", "A One"]


def test_total_duration_by_person_shape():
    assert total_duration_by_person(RECORDS)[0] == {"name": "Nimal Perera", "totalDays": 270.0}
