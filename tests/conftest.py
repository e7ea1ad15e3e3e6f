# Shared pytest fixtures
from __future__ import annotations
import logging
import tempfile
from pathlib import Path
from typing import Any, Callable

import pandas as pd
import pytest

from contractor_dashboard.logging.init import LOGGER_NAME, reset_logging
from contractor_dashboard.models.config_models import DashboardConfig, SheetLayout
from contractor_dashboard.models.record import CONTRACTOR_COLUMNS

SheetRows = list[list[Any]]

TITLE_ROWS: SheetRows = [["Contractor Register"], [], []]

SHEET_2015: SheetRows = [
    [1, "Nimal", "Perera", "Engineer", "BSc", "0711111111", 5, "6 months", "10,000", 33.3, "1,800,000", 6000],
    [2, "Dilani", "Silva", "Consultant", "MSc", "0722222222", 12, "45 days", "LKR 25,000", 83.3, "", ""],
    [3, "Kamal", "Fernando", "Engineer", "HND", "0733333333", 3, "2 months", "7,500", 25, "450,000", 1500],
]

SHEET_2016: SheetRows = [
    [1, "Nimal", "Perera", "Engineer", "BSc", "0711111111", 6, "3 months", "12,000", 40, "1,080,000", 3600],
    [2, "Ruwan", "Bandara", "Analyst", "BSc", "0744444444", 2, "", "unknown", "", "", ""],
]


def contractor_sheet(rows: SheetRows, header: list[str] | None = None, title_rows: SheetRows | None = None) -> SheetRows:
    """Title rows + header row (row 4) + contractor rows."""
    title = TITLE_ROWS if title_rows is None else title_rows
    return [*title, list(header or CONTRACTOR_COLUMNS), *rows]


def write_workbook(path: Path, sheets: dict[str, SheetRows]) -> Path:
    """Create a real Excel file with one sheet per entry (no pandas header / index)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


@pytest.fixture(autouse=True)
def clean_logging_and_env(monkeypatch):
    # 前テストの capsys ストリームを掴んだハンドラを残さない
    for name in ("CONTRACTOR_WORKBOOK", "CONTRACTOR_CUMULATIVE_WORKBOOK", "HOST", "PORT", "CONTRACTOR_DASHBOARD_CONFIG"):
        monkeypatch.delenv(name, raising=False)
    reset_logging()
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    yield
    reset_logging()
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def make_workbook(temp_workdir: Path) -> Callable[..., Path]:
    def _make(name: str, sheets: dict[str, SheetRows]) -> Path:
        return write_workbook(temp_workdir / "data" / name, sheets)
    return _make


@pytest.fixture()
def contractor_workbook(make_workbook) -> Path:
    return make_workbook(
        "contractors.xlsx",
        {
            "2015_IC": contractor_sheet(SHEET_2015),
            "2016_IC": contractor_sheet(SHEET_2016),
        },
    )


@pytest.fixture()
def cumulative_workbook(make_workbook) -> Path:
    return make_workbook(
        "cumulative.xlsx",
        {
            "2015": contractor_sheet(SHEET_2015),
            "2016": contractor_sheet(SHEET_2016),
        },
    )


@pytest.fixture()
def dashboard_config(temp_workdir: Path, contractor_workbook: Path, cumulative_workbook: Path) -> DashboardConfig:
    return DashboardConfig(
        workbook_path=contractor_workbook,
        cumulative_workbook_path=cumulative_workbook,
        backup_directory=temp_workdir / "data" / "backups",
        error_log_directory=temp_workdir / "logs",
        default_layout=SheetLayout.fixed_offset(3),
    )


@pytest.fixture()
def sample_config_yaml() -> str:
    return """workbook_path: ../data/contractors.xlsx
cumulative_workbook_path: ../data/cumulative.xlsx
backup_directory: ../data/backups
error_log_directory: ../logs
default_layout:
  strategy: fixed_offset
  header_row: 3
sheet_layouts:
  2015_IC:
    strategy: heuristic_scan
    max_scan_rows: 10
rate_field: Per day Rate in LKR
rate_bucket_size: 5000
cost_field: Rate in LKR
server:
  host: 127.0.0.1
  port: 5055
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "dashboard.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg
