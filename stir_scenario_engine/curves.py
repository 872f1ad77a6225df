from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from functools import reduce
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd

from . import config
from .holidays import holiday_dates
from .utils import BUSINESS, classify_day, iso, last_business_day, turn_amount_bps

if TYPE_CHECKING:
    from .scenarios import Scenario

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyRate:
    """
    One calendar day of the projected overnight rate.

    Rates are in percent; turn_premium is in bp.
    """
    date: pd.Timestamp
    day_type: str
    base_rate: float
    turn_premium: float
    final_rate: float
    is_meeting_date: bool
    is_turn: bool


def turn_dates(holiday_set: FrozenSet[str], years: Sequence[int] = config.TURN_YEARS) -> Dict[Tuple[int, int], pd.Timestamp]:
    """(year, month) -> last business day of that month. Months without a business day are left out."""
    out: Dict[Tuple[int, int], pd.Timestamp] = {}
    for y in years:
        for m in range(1, 13):
            lbd = last_business_day(y, m, holiday_set)
            if lbd is not None:
                out[(y, m)] = lbd
    return out


def generate_daily_rates(
    scenario: "Scenario",
    holidays: Iterable,
    start: pd.Timestamp = config.WINDOW_START,
    end: pd.Timestamp = config.WINDOW_END,
) -> List[DailyRate]:
    """
    Expand a scenario into one DailyRate per calendar date in [start, end].

    - Hikes are effective the day after the meeting date.
    - The turn premium lands on each month's last business day (year end > quarter end > month end).
    - Weekends and holidays carry the previous business day's final rate; the first carry is
      the scenario's effective base rate.

    The carry is threaded through an explicit left fold so each day depends only on
    (previous carry, date).
    """
    base = scenario.effective_base_rate
    holiday_set = holiday_dates(holidays)
    lbd_map = turn_dates(holiday_set)

    meeting_dates = np.array([m.date.to_datetime64() for m in scenario.meetings], dtype="datetime64[ns]")
    hikes = np.array([m.hike_bps for m in scenario.meetings], dtype=float)
    meeting_set = {iso(m.date) for m in scenario.meetings}
    turns = scenario.turns

    def day(d: pd.Timestamp, carry: float) -> Tuple[DailyRate, float]:
        day_type = classify_day(d, holiday_set)

        cumulative_bps = float(hikes[meeting_dates < d.to_datetime64()].sum()) if len(hikes) else 0.0
        base_rate = base + cumulative_bps / 100.0

        is_turn = lbd_map.get((d.year, d.month)) == d
        turn_bps = turn_amount_bps(d.month, turns.month_end, turns.quarter_end, turns.year_end) if is_turn else 0.0

        if day_type == BUSINESS:
            final_rate = base_rate + turn_bps / 100.0
            carry = final_rate
        else:
            final_rate = carry

        rate = DailyRate(
            date=d,
            day_type=day_type,
            base_rate=base_rate,
            turn_premium=turn_bps,
            final_rate=final_rate,
            is_meeting_date=iso(d) in meeting_set,
            is_turn=is_turn,
        )
        return rate, carry

    def step(state: Tuple[List[DailyRate], float], d: pd.Timestamp) -> Tuple[List[DailyRate], float]:
        rows, carry = state
        rate, carry = day(d, carry)
        rows.append(rate)
        return rows, carry

    rows, _ = reduce(step, pd.date_range(start, end, freq="D"), ([], base))

    logger.debug(
        "Generated %d daily rates for scenario %r (base=%.4f, meetings=%d, holidays=%d)",
        len(rows), scenario.id, base, len(scenario.meetings), len(holiday_set),
    )
    return rows


def daily_rates_frame(rates: Sequence[DailyRate]) -> pd.DataFrame:
    """Tabular view of a daily series, indexed by date."""
    if not rates:
        return pd.DataFrame(columns=[f for f in DailyRate.__dataclass_fields__]).set_index("date")
    return pd.DataFrame([asdict(r) for r in rates]).set_index("date")


def curve_qc_report(rates: Sequence[DailyRate]) -> pd.DataFrame:
    """
    Per-date QC flags for a generated series:
    - gapless: exactly one calendar day after the previous entry
    - carry_forward_ok: non-business days repeat the previous day's final rate
    - turn_on_business_day: turn flags only on business days
    """
    df = daily_rates_frame(rates).reset_index()
    if df.empty:
        return df

    step_days = df["date"].diff().dt.days
    prev_final = df["final_rate"].shift(1)
    business = df["day_type"] == BUSINESS

    # first entry: nothing to compare against
    df["gapless"] = step_days.isna() | (step_days == 1)
    df["carry_forward_ok"] = business | prev_final.isna() | np.isclose(df["final_rate"], prev_final, rtol=0.0, atol=1e-12)
    df["turn_on_business_day"] = ~df["is_turn"] | business

    return df[["date", "day_type", "final_rate", "gapless", "carry_forward_ok", "turn_on_business_day"]]
