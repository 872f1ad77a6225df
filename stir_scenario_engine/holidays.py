from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence

import requests

from . import config
from .utils import iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Holiday:
    date: str  # YYYY-MM-DD
    name: str = ""
    local_name: str = ""


FALLBACK_HOLIDAYS: List[Holiday] = [
    # 2026
    Holiday("2026-01-01", "New Year's Day", "New Year's Day"),
    Holiday("2026-01-19", "Martin Luther King, Jr. Day", "MLK Day"),
    Holiday("2026-02-16", "Washington's Birthday", "Presidents' Day"),
    Holiday("2026-04-03", "Good Friday", "Good Friday"),
    Holiday("2026-05-25", "Memorial Day", "Memorial Day"),
    Holiday("2026-06-19", "Juneteenth National Independence Day", "Juneteenth"),
    Holiday("2026-07-03", "Independence Day", "Independence Day"),
    Holiday("2026-09-07", "Labor Day", "Labor Day"),
    Holiday("2026-10-12", "Columbus Day", "Columbus Day"),
    Holiday("2026-11-11", "Veterans Day", "Veterans Day"),
    Holiday("2026-11-26", "Thanksgiving Day", "Thanksgiving Day"),
    Holiday("2026-12-25", "Christmas Day", "Christmas Day"),
    # 2027
    Holiday("2027-01-01", "New Year's Day", "New Year's Day"),
    Holiday("2027-01-18", "Martin Luther King, Jr. Day", "MLK Day"),
    Holiday("2027-02-15", "Washington's Birthday", "Presidents' Day"),
    Holiday("2027-03-26", "Good Friday", "Good Friday"),
    Holiday("2027-05-31", "Memorial Day", "Memorial Day"),
    Holiday("2027-06-18", "Juneteenth National Independence Day", "Juneteenth (Observed)"),  # 19th is a Saturday
    Holiday("2027-07-05", "Independence Day", "Independence Day (Observed)"),  # 4th is a Sunday
    Holiday("2027-09-06", "Labor Day", "Labor Day"),
    Holiday("2027-10-11", "Columbus Day", "Columbus Day"),
    Holiday("2027-11-11", "Veterans Day", "Veterans Day"),
    Holiday("2027-11-25", "Thanksgiving Day", "Thanksgiving Day"),
    Holiday("2027-12-24", "Christmas Day", "Christmas Day (Observed)"),  # 25th is a Saturday
]


def holiday_dates(holidays: Iterable) -> FrozenSet[str]:
    """
    ISO date set from a holiday collection.

    Accepts Holiday records, ISO strings, dates/Timestamps, or mappings with a 'date' key.
    """
    out = set()
    for h in holidays:
        if isinstance(h, Holiday):
            out.add(h.date)
        elif isinstance(h, dict):
            out.add(iso(h["date"]))
        else:
            out.add(iso(h))
    return frozenset(out)


def _parse_holiday(record: dict) -> Holiday:
    if "date" not in record:
        raise ValueError(f"Holiday record without date: {record!r}")
    return Holiday(
        date=iso(record["date"]),
        name=str(record.get("name", "")),
        local_name=str(record.get("localName", "")),
    )


def fetch_holidays(
    years: Sequence[int] = config.HOLIDAY_YEARS,
    country: str = config.HOLIDAY_COUNTRY,
    session: Optional[requests.Session] = None,
    timeout: float = config.HOLIDAY_TIMEOUT,
) -> List[Holiday]:
    """
    Pull public holidays for each year from the holiday API.

    Raises requests.RequestException on transport/HTTP failure and ValueError on a malformed payload.
    """
    http = session if session is not None else requests.Session()
    out: List[Holiday] = []
    for year in years:
        url = f"{config.HOLIDAY_API_URL}/{int(year)}/{country}"
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, list):
            raise ValueError(f"Unexpected holiday payload for {year}: {type(payload).__name__}")
        out.extend(_parse_holiday(r) for r in payload)

    logger.debug("Fetched %d holidays for %s/%s", len(out), country, list(years))
    return sorted(out, key=lambda h: h.date)


def load_holidays(
    years: Sequence[int] = config.HOLIDAY_YEARS,
    fetcher: Callable[..., List[Holiday]] = fetch_holidays,
) -> List[Holiday]:
    """Live calendar when reachable, static fallback calendar otherwise."""
    try:
        holidays = fetcher(years)
    except (requests.RequestException, ValueError) as e:
        logger.warning("Holiday source unavailable, using fallback calendar: %s", e)
        return list(FALLBACK_HOLIDAYS)

    if not holidays:
        logger.warning("Holiday source returned no dates, using fallback calendar")
        return list(FALLBACK_HOLIDAYS)
    return holidays
