from __future__ import annotations

from typing import Any

"""Record field names shared by the normalizer, the services and the API.

A record is a plain ``dict[str, Any]`` keyed by the sheet's header names plus the
three provenance keys below. Plain dicts serialize straight to JSON, which is the
only thing the HTTP layer does with them.
"""

__all__ = [
    "Record",
    "NO",
    "FIRST_NAME",
    "LAST_NAME",
    "DESIGNATION",
    "QUALIFICATIONS",
    "CONTACT_DETAILS",
    "YEARS_OF_EXPERIENCE",
    "DURATION_FIELDS",
    "PER_DAY_RATE_LKR",
    "PER_DAY_RATE_USD",
    "RATE_LKR",
    "RATE_USD",
    "CONTRACTOR_COLUMNS",
    "SHEET_NAME_KEY",
    "SHEET_INDEX_KEY",
    "ROW_INDEX_KEY",
    "META_KEYS",
]

Record = dict[str, Any]

NO = "No."
FIRST_NAME = "First Name"
LAST_NAME = "Last Name"
DESIGNATION = "Designation"
QUALIFICATIONS = "Qualifications"
CONTACT_DETAILS = "Contact Details"
YEARS_OF_EXPERIENCE = "Years of Experience"
# 表記ゆれ: シートによって列名が異なる (先頭が優先)
DURATION_FIELDS = ("Duration (Months/Days)", "Duration", "Duration (Days)")
PER_DAY_RATE_LKR = "Per day Rate in LKR"
PER_DAY_RATE_USD = "Per day Rate in USD"
RATE_LKR = "Rate in LKR"
RATE_USD = "Rate in USD"

# Column order of the contractor sheets (also the positional layout default)
CONTRACTOR_COLUMNS: tuple[str, ...] = (
    NO,
    FIRST_NAME,
    LAST_NAME,
    DESIGNATION,
    QUALIFICATIONS,
    CONTACT_DETAILS,
    YEARS_OF_EXPERIENCE,
    DURATION_FIELDS[0],
    PER_DAY_RATE_LKR,
    PER_DAY_RATE_USD,
    RATE_LKR,
    RATE_USD,
)

SHEET_NAME_KEY = "_sheetName"
SHEET_INDEX_KEY = "_sheetIndex"
ROW_INDEX_KEY = "_rowIndex"
META_KEYS = (SHEET_NAME_KEY, SHEET_INDEX_KEY, ROW_INDEX_KEY)
