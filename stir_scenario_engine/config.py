from __future__ import annotations

import os

import pandas as pd


# ---------------------------------------------------------------------------
# Daily curve generation window
# ---------------------------------------------------------------------------

WINDOW_START = pd.Timestamp("2026-01-01")
WINDOW_END = pd.Timestamp("2028-06-30")

# years scanned for last-business-day turn dates
TURN_YEARS = (2026, 2027, 2028)


# ---------------------------------------------------------------------------
# Instrument ranges
# ---------------------------------------------------------------------------

MONTHLY_FIRST = pd.Timestamp("2026-01-01")
MONTHLY_CONTRACT_COUNT = 24

IMM_MONTHS = (3, 6, 9, 12)
QUARTER_CODES = {3: "H", 6: "M", 9: "U", 12: "Z"}
QUARTERLY_FIRST = (2026, 3)
QUARTERLY_LAST = (2028, 3)
QUARTERLY_PREFIX = "SR3"

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


# ---------------------------------------------------------------------------
# Turn calendar: December -> year end, Mar/Jun/Sep -> quarter end
# ---------------------------------------------------------------------------

YEAR_END_MONTH = 12
QUARTER_END_MONTHS = (3, 6, 9)


# ---------------------------------------------------------------------------
# FOMC decision dates (rate effective the following day)
# ---------------------------------------------------------------------------

FED_MEETINGS_2026 = [
    "2026-01-28",
    "2026-03-18",
    "2026-04-29",
    "2026-06-17",
    "2026-07-29",
    "2026-09-16",
    "2026-10-28",
    "2026-12-09",
]

FED_MEETINGS_2027 = [
    "2027-01-27",
    "2027-03-17",
    "2027-04-28",
    "2027-06-09",
    "2027-07-28",
    "2027-09-15",
    "2027-10-27",
    "2027-12-08",
]

ALL_FED_MEETINGS = FED_MEETINGS_2026 + FED_MEETINGS_2027


# ---------------------------------------------------------------------------
# Base case scenario
# ---------------------------------------------------------------------------

DEFAULT_SCENARIO_ID = "default"
DEFAULT_SCENARIO_NAME = "Base Case 2026-2027"
DEFAULT_BASE_RATE = 4.30
DEFAULT_TURNS_BPS = {"month_end": 5.0, "quarter_end": 10.0, "year_end": 25.0}


# ---------------------------------------------------------------------------
# Holiday source (public holiday API, Nager.Date layout)
# ---------------------------------------------------------------------------

HOLIDAY_API_URL = os.getenv("STIR_HOLIDAY_API_URL", "https://date.nager.at/api/v3/publicholidays")
HOLIDAY_TIMEOUT = float(os.getenv("STIR_HOLIDAY_TIMEOUT", "10"))
HOLIDAY_COUNTRY = "US"
HOLIDAY_YEARS = (2026, 2027)
