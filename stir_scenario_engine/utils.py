from __future__ import annotations

import datetime as dt
from functools import lru_cache
from typing import Iterable, Optional, Union

import pandas as pd

from . import config

DateLike = Union[str, dt.date, dt.datetime, pd.Timestamp]

BUSINESS = "Business"
WEEKEND = "Weekend"
HOLIDAY = "Holiday"


def to_timestamp(d: DateLike) -> pd.Timestamp:
    """Coerce a date-like (ISO string, date, datetime, Timestamp) to a midnight Timestamp."""
    return pd.Timestamp(d).normalize()


def iso(d: DateLike) -> str:
    """'YYYY-MM-DD' for any date-like."""
    return to_timestamp(d).strftime("%Y-%m-%d")


def is_weekend(d: pd.Timestamp) -> bool:
    return d.weekday() >= 5


def classify_day(d: pd.Timestamp, holiday_set: Iterable[str]) -> str:
    """
    Business / Weekend / Holiday.

    Weekend wins over holiday: a holiday that falls on a Saturday is reported as Weekend.
    """
    if is_weekend(d):
        return WEEKEND
    if iso(d) in holiday_set:
        return HOLIDAY
    return BUSINESS


def is_business_day(d: pd.Timestamp, holiday_set: Iterable[str]) -> bool:
    return classify_day(d, holiday_set) == BUSINESS


def month_start(year: int, month: int) -> pd.Timestamp:
    return pd.Timestamp(year=year, month=month, day=1)


def month_end(year: int, month: int) -> pd.Timestamp:
    return month_start(year, month) + pd.offsets.MonthEnd(0)


def add_months(year: int, month: int, n: int):
    """(year, month) shifted by n calendar months."""
    idx = year * 12 + (month - 1) + n
    return idx // 12, idx % 12 + 1


def last_business_day(year: int, month: int, holiday_set: Iterable[str]) -> Optional[pd.Timestamp]:
    """
    Walk back from the calendar month end to the last business day of the month.

    Returns None when the month has no business day at all.
    """
    first = month_start(year, month)
    d = month_end(year, month)
    while d >= first:
        if is_business_day(d, holiday_set):
            return d
        d = d - pd.Timedelta(days=1)
    return None


@lru_cache(maxsize=256)
def imm_date(year: int, month: int) -> pd.Timestamp:
    """Third Wednesday of the month: scan forward from the 1st counting Wednesdays."""
    d = month_start(year, month)
    wednesdays = 0
    while True:
        if d.weekday() == 2:
            wednesdays += 1
            if wednesdays == 3:
                return d
        d = d + pd.Timedelta(days=1)


def monthly_code(year: int, month: int) -> str:
    """JAN26-style code for a calendar month."""
    return f"{config.MONTH_NAMES[month - 1].upper()}{year - 2000:02d}"


def quarterly_code(year: int, month: int) -> str:
    """SR3H26-style code for an IMM quarter month."""
    if month not in config.QUARTER_CODES:
        raise ValueError(f"Not an IMM month: {month}")
    return f"{config.QUARTERLY_PREFIX}{config.QUARTER_CODES[month]}{year % 100:02d}"


def turn_amount_bps(month: int, month_end_bps: float, quarter_end_bps: float, year_end_bps: float) -> float:
    """Premium applied on a month's last business day: year end > quarter end > month end."""
    if month == config.YEAR_END_MONTH:
        return year_end_bps
    if month in config.QUARTER_END_MONTHS:
        return quarter_end_bps
    return month_end_bps
