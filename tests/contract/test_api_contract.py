from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from datetime import timedelta
from unittest.mock import patch

import pytest
from openpyxl import load_workbook
from openpyxl.workbook.workbook import Workbook

from contractor_dashboard.api import create_app

"""HTTP API contract: response shapes and status codes under /api."""


@pytest.fixture()
def client(dashboard_config):
    app = create_app(dashboard_config)
    app.config.update(TESTING=True)
    return app.test_client()


def test_health(client):
    resp = client.get("/api/health")
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["success"] is True
    assert body["timestamp"].endswith("Z")


def test_sheets(client):
    body = client.get("/api/sheets").get_json()
    assert body == {"success": True, "sheets": ["2015_IC", "2016_IC"], "count": 2}


def test_contractors_all_sheets(client):
    body = client.get("/api/contractors").get_json()
    assert body["success"] is True
    assert body["sheet"] == "ALL"
    assert body["count"] == 5
    first = body["data"][0]
    assert first["First Name"] == "Nimal"
    assert first["_sheetName"] == "2015_IC"
    assert first["_rowIndex"] == 5


def test_contractors_records_keep_header_order(client):
    first = client.get("/api/contractors?sheet=2015_IC").get_json()["data"][0]
    assert list(first)[:3] == ["No.", "First Name", "Last Name"]


def test_contractors_single_sheet_and_filters(client):
    body = client.get("/api/contractors?sheet=2016_IC").get_json()
    assert body["sheet"] == "2016_IC" and body["count"] == 2

    body = client.get("/api/contractors?designation=Engineer").get_json()
    assert body["count"] == 3

    body = client.get("/api/contractors?q=silva&searchType=name").get_json()
    assert [r["First Name"] for r in body["data"]] == ["Dilani"]

    body = client.get(
        "/api/contractors",
        query_string={"sheet": "2015_IC", "sortBy": "Per day Rate in LKR", "order": "desc"},
    ).get_json()
    assert [r["First Name"] for r in body["data"]] == ["Dilani", "Nimal", "Kamal"]


def test_contractors_unknown_sheet_is_404(client):
    resp = client.get("/api/contractors?sheet=2099_IC")
    body = resp.get_json()
    assert resp.status_code == 404
    assert body["success"] is False
    assert "Sheet '2099_IC' not found" in body["message"]


def test_contractors_bad_search_type_is_400(client):
    resp = client.get("/api/contractors?q=x&searchType=email")
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_add_contractor(client):
    resp = client.post("/api/contractors", json={"sheet": "2016_IC", "No.": 3, "First Name": "Ishara"})
    body = resp.get_json()
    assert resp.status_code == 200
    assert body == {"success": True, "message": "Data added successfully", "sheet": "2016_IC", "row": 7}

    data = client.get("/api/contractors?sheet=2016_IC").get_json()["data"]
    assert data[-1]["First Name"] == "Ishara"


@pytest.mark.parametrize(
    "payload, status",
    [
        ({"First Name": "A"}, 400),
        ({"sheet": "2015_IC"}, 400),
        ({"sheet": "Nope", "First Name": "A"}, 404),
    ],
)
def test_add_contractor_errors(client, payload, status):
    resp = client.post("/api/contractors", json=payload)
    assert resp.status_code == status
    assert resp.get_json()["success"] is False


def test_add_contractor_nested_value_is_400(client, dashboard_config):
    before = dashboard_config.workbook_path.read_bytes()
    resp = client.post("/api/contractors", json={"sheet": "2015_IC", "First Name": {"a": 1}})
    assert resp.status_code == 400
    assert "First Name" in resp.get_json()["message"]
    assert dashboard_config.workbook_path.read_bytes() == before


def test_add_contractor_formula_like_text_round_trips(client):
    resp = client.post("/api/contractors", json={"sheet": "2016_IC", "No.": 3, "First Name": "=Nimal"})
    assert resp.status_code == 200
    data = client.get("/api/contractors?sheet=2016_IC").get_json()["data"]
    assert data[-1]["First Name"] == "=Nimal"


def test_add_contractor_non_json_body_is_400(client):
    resp = client.post("/api/contractors", data="not json", content_type="text/plain")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Request body must be a JSON object"


def test_add_contractor_write_failure_is_500(client, dashboard_config):
    before = dashboard_config.workbook_path.read_bytes()
    with patch.object(Workbook, "save", side_effect=OSError("locked")):
        resp = client.post("/api/contractors", json={"sheet": "2015_IC", "First Name": "A"})
    body = resp.get_json()
    assert resp.status_code == 500
    assert body["success"] is False
    assert "Failed to write to Excel file" in body["message"]
    assert body["error"] == "locked"
    assert dashboard_config.workbook_path.read_bytes() == before


def test_delete_contractor(client):
    resp = client.delete("/api/contractors/2015_IC/2")
    body = resp.get_json()
    assert resp.status_code == 200
    assert body == {"success": True, "message": "Entry with No. 2 deleted from sheet '2015_IC'"}

    again = client.delete("/api/contractors/2015_IC/2")
    assert again.status_code == 400


def test_delete_contractor_bad_key_and_sheet(client):
    assert client.delete("/api/contractors/2015_IC/abc").status_code == 400
    assert client.delete("/api/contractors/Nope/1").status_code == 404


def test_delete_contractor_key_with_stray_digits_is_400(client, dashboard_config):
    before = dashboard_config.workbook_path.read_bytes()
    for key in ("abc2", "1e1"):
        assert client.delete(f"/api/contractors/2015_IC/{key}").status_code == 400
    assert dashboard_config.workbook_path.read_bytes() == before


def test_cumulative_total_duration(client):
    body = client.get("/api/cumulative-total-duration").get_json()
    assert body["success"] is True
    assert body["data"][0] == {
        "name": "Nimal Perera",
        "totalDuration": 270.0,
        "cumulativeCost": 2880000.0,
        "avgRate": pytest.approx(2880000.0 / 270),
    }


def test_cumulative_without_workbook_is_404(dashboard_config):
    app = create_app(replace(dashboard_config, cumulative_workbook_path=None))
    resp = app.test_client().get("/api/cumulative-total-duration")
    assert resp.status_code == 404


def test_total_duration(client):
    body = client.get("/api/total-duration").get_json()
    assert body["totalDurations"][0] == {"name": "Nimal Perera", "totalDays": 270.0}


def test_rate_distribution(client):
    body = client.get("/api/rate-distribution").get_json()
    assert body["field"] == "Per day Rate in LKR"
    assert body["bucketSize"] == 5000.0
    assert body["lowestBucket"] == "5,000 - 9,999"
    assert [b["count"] for b in body["buckets"]] == [1, 2, 0, 0, 1]
    assert set(body["buckets"][0]) == {"label", "bucketStart", "bucketEnd", "count", "details"}


def test_rate_distribution_custom_bucket_and_sheet(client):
    body = client.get("/api/rate-distribution?bucketSize=10000&sheet=2016_IC").get_json()
    assert [(b["label"], b["count"]) for b in body["buckets"]] == [("10,000 - 19,999", 1)]


@pytest.mark.parametrize("size", ["abc", "0", "-100"])
def test_rate_distribution_bad_bucket_size_is_400(client, size):
    resp = client.get(f"/api/rate-distribution?bucketSize={size}")
    assert resp.status_code == 400


def test_rate_distribution_too_many_buckets_is_400(client):
    resp = client.get("/api/rate-distribution?bucketSize=0.001")
    body = resp.get_json()
    assert resp.status_code == 400
    assert body["success"] is False
    assert "buckets" in body["message"]


def test_elapsed_time_cell_is_served_as_days(client, dashboard_config):
    path = dashboard_config.workbook_path
    wb = load_workbook(path)
    ws = wb["2015_IC"]
    ws["H5"] = timedelta(hours=30)
    ws["H5"].number_format = "[h]:mm:ss"
    wb.save(path)
    wb.close()

    resp = client.get("/api/contractors?sheet=2015_IC")
    assert resp.status_code == 200
    assert resp.get_json()["data"][0]["Duration (Months/Days)"] == 1.25


def test_sector_stats(client):
    body = client.get("/api/sector-stats").get_json()
    assert body["designations"] == ["Analyst", "Consultant", "Engineer"]
    engineer = next(s for s in body["sectors"] if s["designation"] == "Engineer")
    assert engineer["count"] == 3
    assert engineer["totalDuration"] == 330.0


def test_test_excel(client, dashboard_config):
    body = client.get("/api/test-excel").get_json()
    assert body["success"] is True
    assert body["sheets"] == ["2015_IC", "2016_IC"]
    assert body["fileSize"] == dashboard_config.workbook_path.stat().st_size


def test_test_excel_missing_file_is_404(dashboard_config, temp_workdir: Path):
    app = create_app(replace(dashboard_config, workbook_path=temp_workdir / "missing.xlsx"))
    resp = app.test_client().get("/api/test-excel")
    assert resp.status_code == 404
    assert "Excel file not found" in resp.get_json()["message"]


def test_debug_sheet(client):
    body = client.get("/api/debug-sheet/2015_IC").get_json()
    assert body["sheetName"] == "2015_IC"
    # 空行を除いた行: タイトル + ヘッダ + 3件
    assert body["totalRows"] == 5
    assert body["first15Rows"][1][0] == "No."
    assert body["columnCount"] == 12


def test_unknown_route_is_json_404(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_cors_header_present(client):
    resp = client.get("/api/health", headers={"Origin": "http://localhost:3000"})
    assert resp.headers.get("Access-Control-Allow-Origin") in ("*", "http://localhost:3000")
