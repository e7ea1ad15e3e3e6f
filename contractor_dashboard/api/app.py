from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from ..excel.coercion import coerce_number
from ..excel.errors import InvalidInputError, IOFailureError, NotFoundError
from ..excel.reader import cell_value, is_blank_row
from ..models.config_models import DashboardConfig
from ..services.aggregation import lowest_rate_bucket, rate_histogram, sector_statistics
from ..services.contractors import (
    accessor_for,
    add_contractor,
    cumulative_totals,
    delete_contractor,
    load_contractors,
    total_durations,
)
from ..services.query import filter_by_sector, search_records, sort_records, unique_designations

"""HTTP API (Flask).

All routes live under ``/api``. Every response carries ``success``; failures
carry ``message`` and map the error family to a status code:

    NotFound -> 404, InvalidInput -> 400, IOFailure -> 500
"""

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__, url_prefix="/api")

ALL_SHEETS = "ALL"
DEBUG_PREVIEW_ROWS = 15


def _config() -> DashboardConfig:
    return current_app.config["DASHBOARD_CONFIG"]


def _fail(message: str, status: int, error: str | None = None):
    body: dict[str, Any] = {"success": False, "message": message}
    if error:
        body["error"] = error
    return jsonify(body), status


def _sheet_arg() -> str | None:
    sheet = (request.args.get("sheet") or "").strip()
    if not sheet or sheet == ALL_SHEETS:
        return None
    return sheet


@api.get("/health")
def health():
    return jsonify(
        {
            "success": True,
            "message": "Contractor Dashboard API is running",
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
    )


@api.get("/sheets")
def list_sheets():
    sheets = accessor_for(_config()).list_sheets()
    return jsonify({"success": True, "sheets": sheets, "count": len(sheets)})


@api.get("/contractors")
def get_contractors():
    sheet = _sheet_arg()
    result = load_contractors(_config(), sheet)
    records = filter_by_sector(result.records, request.args.get("designation"))
    records = search_records(records, request.args.get("q"), request.args.get("searchType", "all"))
    sort_by = request.args.get("sortBy")
    if sort_by:
        records = sort_records(records, sort_by, descending=request.args.get("order", "asc") == "desc")
    return jsonify(
        {
            "success": True,
            "count": len(records),
            "data": records,
            "sheet": sheet or ALL_SHEETS,
        }
    )


@api.post("/contractors")
def create_contractor():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidInputError("Request body must be a JSON object")
    sheet = body.get("sheet")
    payload = {k: v for k, v in body.items() if k != "sheet"}
    logger.info(f"Received data for sheet: {sheet}")
    row = add_contractor(_config(), sheet, payload)
    return jsonify({"success": True, "message": "Data added successfully", "sheet": sheet, "row": row})


@api.delete("/contractors/<sheet>/<row_key>")
def remove_contractor(sheet: str, row_key: str):
    key = delete_contractor(_config(), sheet, row_key)
    return jsonify({"success": True, "message": f"Entry with No. {key} deleted from sheet '{sheet}'"})


@api.get("/cumulative-total-duration")
def cumulative_total_duration():
    totals = cumulative_totals(_config())
    return jsonify({"success": True, "data": [t.to_dict() for t in totals]})


@api.get("/total-duration")
def total_duration():
    return jsonify({"success": True, "totalDurations": total_durations(_config())})


@api.get("/rate-distribution")
def rate_distribution():
    cfg = _config()
    field = request.args.get("field") or cfg.rate_field
    raw_size = request.args.get("bucketSize")
    bucket_size = cfg.rate_bucket_size if raw_size is None else coerce_number(raw_size)
    if bucket_size is None:
        raise InvalidInputError(f"bucketSize must be a number, got {raw_size!r}")
    result = load_contractors(cfg, _sheet_arg())
    buckets = rate_histogram(result.records, field, bucket_size)
    lowest = lowest_rate_bucket(buckets)
    return jsonify(
        {
            "success": True,
            "field": field,
            "bucketSize": bucket_size,
            "lowestBucket": lowest.label if lowest else None,
            "buckets": [b.to_dict() for b in buckets],
        }
    )


@api.get("/sector-stats")
def sector_stats():
    cfg = _config()
    result = load_contractors(cfg, _sheet_arg())
    stats = sector_statistics(result.records, cfg.rate_field)
    return jsonify(
        {
            "success": True,
            "designations": unique_designations(result.records),
            "sectors": [s.to_dict() for s in stats],
        }
    )


@api.get("/test-excel")
def test_excel():
    access = accessor_for(_config()).check_access()
    if not (access["readable"] and access["writable"]):
        return _fail(
            "Cannot access Excel file. Please ensure it is not open in another application.",
            500,
        )
    return jsonify({"success": True, "message": "Excel file is accessible and writable", **access})


@api.get("/debug-sheet/<sheet>")
def debug_sheet(sheet: str):
    grid = accessor_for(_config()).read_sheet_grid(sheet)
    rows = [[cell_value(v) for v in row] for row in grid if not is_blank_row(row)]
    preview = rows[:DEBUG_PREVIEW_ROWS]
    return jsonify(
        {
            "success": True,
            "sheetName": sheet,
            "totalRows": len(rows),
            "first15Rows": preview,
            "columnCount": len(preview[0]) if preview else 0,
        }
    )


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(NotFoundError)
    def handle_not_found(exc: NotFoundError):
        logger.warning(f"API not found: {exc}")
        return _fail(str(exc), 404)

    @app.errorhandler(InvalidInputError)
    def handle_invalid_input(exc: InvalidInputError):
        logger.warning(f"API invalid input: {exc}")
        return _fail(str(exc), 400)

    @app.errorhandler(IOFailureError)
    def handle_io_failure(exc: IOFailureError):
        logger.error(f"API Error: {exc}")
        return _fail(str(exc), 500, str(exc.__cause__) if exc.__cause__ else None)

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return _fail(exc.description or exc.name, exc.code or 500)
        logger.exception(f"API Error: {exc}")
        return _fail("Unexpected server error", 500, str(exc))


def create_app(config: DashboardConfig) -> Flask:
    app = Flask(__name__)
    app.config.update(DASHBOARD_CONFIG=config)
    # 列順 (ヘッダ順) を保持
    app.json.sort_keys = False

    CORS(app)
    app.register_blueprint(api)
    register_error_handlers(app)
    return app
