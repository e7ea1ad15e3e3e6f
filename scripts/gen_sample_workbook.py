#!/usr/bin/env python3
"""Sample contractor workbook generator.

Generates Excel files in the layout the dashboard reads by default:
- Rows 1-3: title / notes (ignored by the reader)
- Row 4: header row (No., First Name, Last Name, ...)
- Row 5+: contractor rows

Durations are written as free text ("6 months", "45 days") and rates with
thousands separators, the way the source sheets are maintained by hand.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from contractor_dashboard.models.record import CONTRACTOR_COLUMNS

FIRST_NAMES = ["Nimal", "Kamal", "Sunil", "Anura", "Dilani", "Chathuri", "Ruwan", "Ishara"]
LAST_NAMES = ["Perera", "Silva", "Fernando", "Jayasinghe", "Bandara", "Wickrama"]
DESIGNATIONS = ["Consultant", "Engineer", "Analyst", "Designer", "Project Manager"]
QUALIFICATIONS = ["BSc", "MSc", "PhD", "HND", "Diploma"]
LKR_PER_USD = 300.0
TITLE_ROWS = 3


def generate_contractors(rows: int, seed: int = 42) -> pd.DataFrame:
    """Generate contractor rows with the standard column order.

    Args:
        rows: Number of contractors to generate
        seed: Random seed for reproducible data
    """
    rng = np.random.default_rng(seed)

    per_day_lkr = np.round(rng.uniform(3_000, 60_000, rows), -2)
    months = rng.integers(1, 13, rows)
    as_days = rng.random(rows) < 0.3
    days = np.where(as_days, months * 7, months * 30)
    duration_text = [
        f"{int(d)} days" if flag else f"{int(m)} months"
        for d, m, flag in zip(days, months, as_days)
    ]
    total_lkr = per_day_lkr * days

    data: dict[str, list[Any]] = {
        CONTRACTOR_COLUMNS[0]: list(range(1, rows + 1)),
        CONTRACTOR_COLUMNS[1]: rng.choice(FIRST_NAMES, rows).tolist(),
        CONTRACTOR_COLUMNS[2]: rng.choice(LAST_NAMES, rows).tolist(),
        CONTRACTOR_COLUMNS[3]: rng.choice(DESIGNATIONS, rows).tolist(),
        CONTRACTOR_COLUMNS[4]: rng.choice(QUALIFICATIONS, rows).tolist(),
        CONTRACTOR_COLUMNS[5]: [f"07{rng.integers(10_000_000, 99_999_999)}" for _ in range(rows)],
        CONTRACTOR_COLUMNS[6]: rng.integers(1, 25, rows).tolist(),
        CONTRACTOR_COLUMNS[7]: duration_text,
        CONTRACTOR_COLUMNS[8]: [f"{v:,.0f}" for v in per_day_lkr],
        CONTRACTOR_COLUMNS[9]: np.round(per_day_lkr / LKR_PER_USD, 2).tolist(),
        CONTRACTOR_COLUMNS[10]: [f"{v:,.0f}" for v in total_lkr],
        CONTRACTOR_COLUMNS[11]: np.round(total_lkr / LKR_PER_USD, 2).tolist(),
    }
    return pd.DataFrame(data)


def create_workbook(
    output_path: Path,
    rows: int,
    sheets: list[str],
    title: str = "Contractor Register",
    seed: int = 42,
) -> None:
    """Write ``sheets`` to ``output_path``, each with title rows and a header on row 4."""
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        for offset, sheet_name in enumerate(sheets):
            df = generate_contractors(rows, seed + offset)
            width = len(df.columns)

            sheet_data: list[list[Any]] = [[f"{title} - {sheet_name}"] + [""] * (width - 1)]
            sheet_data += [[""] * width for _ in range(TITLE_ROWS - 1)]
            sheet_data.append(df.columns.tolist())
            sheet_data += df.values.tolist()

            pd.DataFrame(sheet_data).to_excel(writer, sheet_name=sheet_name, header=False, index=False)

    print(f"Created workbook: {output_path}")
    print(f"  Sheets: {len(sheets)} ({', '.join(sheets)})")
    print(f"  Contractors per sheet: {rows} (header on row {TITLE_ROWS + 1})")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate a sample contractor workbook for the dashboard",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data/contractors.xlsx
  %(prog)s data/contractors.xlsx --rows 200 --sheets 2015_IC 2016_IC 2017_IC
        """,
    )
    parser.add_argument("output", type=Path, help="Output workbook path (.xlsx)")
    parser.add_argument("--rows", type=int, default=25, help="Contractors per sheet (default: 25)")
    parser.add_argument("--sheets", nargs="+", default=["2015_IC", "2016_IC"], help="Sheet names")
    parser.add_argument("--title", default="Contractor Register", help="Title for the first row")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1

    try:
        create_workbook(args.output, args.rows, args.sheets, args.title, args.seed)
    except OSError as e:
        print(f"Error generating workbook: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
