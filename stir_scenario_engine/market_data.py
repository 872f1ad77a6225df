from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, FrozenSet, Iterable, List, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from . import config
from .curves import DailyRate, generate_daily_rates
from .holidays import holiday_dates
from .instruments import (
    DerivedInstrument,
    condors_from,
    deflies_from,
    flies_from,
    make_outright,
    spreads_from,
)
from .risk import window_sensitivity
from .utils import add_months, imm_date, month_end, month_start, monthly_code, quarterly_code, to_timestamp

if TYPE_CHECKING:
    from .scenarios import Scenario

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonthlyInstruments:
    outrights: Tuple[DerivedInstrument, ...]
    spreads: Tuple[DerivedInstrument, ...]
    flies: Tuple[DerivedInstrument, ...]


@dataclass(frozen=True)
class QuarterlyInstruments:
    outrights: Tuple[DerivedInstrument, ...]
    spreads: Tuple[DerivedInstrument, ...]
    flies: Tuple[DerivedInstrument, ...]
    deflies: Tuple[DerivedInstrument, ...]
    condors: Tuple[DerivedInstrument, ...]


@dataclass(frozen=True)
class MarketData:
    monthly: MonthlyInstruments
    quarterly: QuarterlyInstruments

    def all_instruments(self) -> List[DerivedInstrument]:
        m, q = self.monthly, self.quarterly
        return [
            *m.outrights, *m.spreads, *m.flies,
            *q.outrights, *q.spreads, *q.flies, *q.deflies, *q.condors,
        ]

    def find(self, instrument_id: str) -> DerivedInstrument:
        for inst in self.all_instruments():
            if inst.id == instrument_id:
                return inst
        raise KeyError(instrument_id)


def _meeting_dates(meetings: Iterable) -> List[pd.Timestamp]:
    """Meeting records, {"date": ...} mappings, dates or ISO strings -> Timestamps."""
    out = []
    for m in meetings:
        if isinstance(m, (str, dt.date)):
            out.append(to_timestamp(m))
        elif isinstance(m, Mapping):
            out.append(to_timestamp(m["date"]))
        else:
            out.append(to_timestamp(m.date))
    return out


def average_rate(daily_rates: Sequence[DailyRate], start: pd.Timestamp, end: pd.Timestamp) -> float:
    """Arithmetic mean of final_rate over [start, end]; an empty window averages to 0."""
    window = np.array([r.final_rate for r in daily_rates if start <= r.date <= end], dtype=float)
    if len(window) == 0:
        return 0.0
    # shifted mean: a flat window returns its level exactly
    return float(window[0] + (window - window[0]).sum() / len(window))


def _outright(code: str, start: pd.Timestamp, end: pd.Timestamp, daily_rates: Sequence[DailyRate], meeting_dates: Sequence[pd.Timestamp]) -> DerivedInstrument:
    avg = average_rate(daily_rates, start, end)
    sens = {m: window_sensitivity(m, start, end, daily_rates) for m in meeting_dates}
    return make_outright(code, start, end, avg, sens)


def monthly_outrights(daily_rates: Sequence[DailyRate], meeting_dates: Sequence[pd.Timestamp]) -> List[DerivedInstrument]:
    """One outright per calendar month, averaging over the whole month."""
    y0, m0 = config.MONTHLY_FIRST.year, config.MONTHLY_FIRST.month
    out = []
    for i in range(config.MONTHLY_CONTRACT_COUNT):
        y, m = add_months(y0, m0, i)
        out.append(_outright(monthly_code(y, m), month_start(y, m), month_end(y, m), daily_rates, meeting_dates))
    return out


def imm_quarters() -> List[Tuple[int, int]]:
    """(year, month) for every IMM quarter month from QUARTERLY_FIRST to QUARTERLY_LAST inclusive."""
    out = []
    y, m = config.QUARTERLY_FIRST
    while (y, m) <= config.QUARTERLY_LAST:
        if m in config.IMM_MONTHS:
            out.append((y, m))
        y, m = add_months(y, m, 1)
    return out


def quarterly_outrights(daily_rates: Sequence[DailyRate], meeting_dates: Sequence[pd.Timestamp]) -> List[DerivedInstrument]:
    """
    One outright per IMM quarter: third Wednesday to the third Wednesday three months on,
    start inclusive, end exclusive.
    """
    out = []
    for y, m in imm_quarters():
        start = imm_date(y, m)
        # [IMM, nextIMM) for the sensitivity window too, not the dashboard's inclusive end:
        # SR3H26 sees the 2026-03-18 meeting as 90/91, not 91/92.
        end = imm_date(*add_months(y, m, 3)) - pd.Timedelta(days=1)
        out.append(_outright(quarterly_code(y, m), start, end, daily_rates, meeting_dates))
    return out


def calculate_market_data(daily_rates: Sequence[DailyRate], meetings: Iterable) -> MarketData:
    """Outrights -> spreads -> flies (-> deflies, condors for quarterlies) for both tenors."""
    meeting_dates = _meeting_dates(meetings)

    m_out = monthly_outrights(daily_rates, meeting_dates)
    m_spreads = spreads_from(m_out)
    m_flies = flies_from(m_spreads)

    q_out = quarterly_outrights(daily_rates, meeting_dates)
    q_spreads = spreads_from(q_out)
    q_flies = flies_from(q_spreads)
    q_deflies = deflies_from(q_flies)
    q_condors = condors_from(q_spreads)

    logger.debug(
        "Built market data: monthly %d/%d/%d, quarterly %d/%d/%d/%d/%d",
        len(m_out), len(m_spreads), len(m_flies),
        len(q_out), len(q_spreads), len(q_flies), len(q_deflies), len(q_condors),
    )

    return MarketData(
        monthly=MonthlyInstruments(tuple(m_out), tuple(m_spreads), tuple(m_flies)),
        quarterly=QuarterlyInstruments(tuple(q_out), tuple(q_spreads), tuple(q_flies), tuple(q_deflies), tuple(q_condors)),
    )


@lru_cache(maxsize=64)
def _cached_run(scenario: "Scenario", holiday_set: FrozenSet[str]) -> MarketData:
    logger.debug("Market data cache miss for scenario %r", scenario.id)
    rates = generate_daily_rates(scenario, holiday_set)
    return calculate_market_data(rates, scenario.meetings)


def run_scenario(scenario: "Scenario", holidays: Iterable) -> MarketData:
    """Full scenario -> curve -> instruments pass, memoized on (scenario, holiday dates)."""
    return _cached_run(scenario, holiday_dates(holidays))


def market_data_frame(market_data: MarketData) -> pd.DataFrame:
    """Long-form table: one row per instrument with tenor and kind."""
    rows = []
    buckets = [
        ("monthly", "outright", market_data.monthly.outrights),
        ("monthly", "spread", market_data.monthly.spreads),
        ("monthly", "fly", market_data.monthly.flies),
        ("quarterly", "outright", market_data.quarterly.outrights),
        ("quarterly", "spread", market_data.quarterly.spreads),
        ("quarterly", "fly", market_data.quarterly.flies),
        ("quarterly", "defly", market_data.quarterly.deflies),
        ("quarterly", "condor", market_data.quarterly.condors),
    ]
    for tenor, kind, instruments in buckets:
        for inst in instruments:
            rows.append({"tenor": tenor, "kind": kind, "id": inst.id, "name": inst.name, "price": inst.price, "rate": inst.rate})

    return pd.DataFrame(rows, columns=["tenor", "kind", "id", "name", "price", "rate"])
