from __future__ import annotations

import datetime as dt
import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, ValidationError, field_validator
from scipy.optimize import brentq

from . import config
from .curves import generate_daily_rates
from .instruments import Outright
from .market_data import average_rate, run_scenario
from .utils import DateLike, iso, to_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Meeting:
    """Policy decision; hike_bps applies from the day after `date`."""
    date: pd.Timestamp
    hike_bps: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "date", to_timestamp(self.date))


@dataclass(frozen=True)
class TurnPremiums:
    """Turn premiums in bp."""
    month_end: float = 0.0
    quarter_end: float = 0.0
    year_end: float = 0.0


@dataclass(frozen=True)
class Scenario:
    id: str
    name: str
    base_sofr: float
    base_effr: Optional[float] = None
    meetings: Tuple[Meeting, ...] = ()
    turns: TurnPremiums = field(default_factory=TurnPremiums)

    def __post_init__(self):
        object.__setattr__(self, "meetings", tuple(self.meetings))

    @property
    def effective_base_rate(self) -> float:
        return self.base_effr if self.base_effr is not None else self.base_sofr

    @property
    def total_hike_bps(self) -> float:
        return sum(m.hike_bps for m in self.meetings)

    @property
    def meeting_dates(self) -> Tuple[pd.Timestamp, ...]:
        return tuple(m.date for m in self.meetings)


def default_scenario() -> Scenario:
    """Base case: flat policy path over the 2026-2027 FOMC calendar with standard turns."""
    return Scenario(
        id=config.DEFAULT_SCENARIO_ID,
        name=config.DEFAULT_SCENARIO_NAME,
        base_sofr=config.DEFAULT_BASE_RATE,
        base_effr=config.DEFAULT_BASE_RATE,
        meetings=tuple(Meeting(d, 0) for d in config.ALL_FED_MEETINGS),
        turns=TurnPremiums(**config.DEFAULT_TURNS_BPS),
    )


# ---------- Config / UI payloads ----------

class MeetingPayload(BaseModel):
    """One meeting as written by the scenario editor: {"date": "YYYY-MM-DD", "hikeBps": 25}."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    hike_bps: StrictFloat = Field(alias="hikeBps")


class TurnsPayload(BaseModel):
    """Turn premiums in bp; a missing key means no premium for that turn."""

    model_config = ConfigDict(frozen=True)

    month_end: StrictFloat = Field(0.0, alias="monthEnd")
    quarter_end: StrictFloat = Field(0.0, alias="quarterEnd")
    year_end: StrictFloat = Field(0.0, alias="yearEnd")


class ScenarioPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: Optional[str] = None
    base_sofr: StrictFloat = Field(alias="baseSofr")
    base_effr: Optional[StrictFloat] = Field(None, alias="baseEffr")
    meetings: List[MeetingPayload] = Field(default_factory=list)
    turns: TurnsPayload = Field(default_factory=TurnsPayload)

    @field_validator("meetings")
    @classmethod
    def _sorted_unique(cls, meetings: List[MeetingPayload]) -> List[MeetingPayload]:
        meetings = sorted(meetings, key=lambda m: m.date)
        dupes = sorted({m.date.isoformat() for a, m in zip(meetings, meetings[1:]) if a.date == m.date})
        if dupes:
            raise ValueError(f"duplicate meeting dates {', '.join(dupes)}")
        return meetings

    def to_scenario(self) -> Scenario:
        return Scenario(
            id=self.id,
            name=self.name if self.name is not None else self.id,
            base_sofr=float(self.base_sofr),
            base_effr=None if self.base_effr is None else float(self.base_effr),
            meetings=tuple(Meeting(m.date, float(m.hike_bps)) for m in self.meetings),
            turns=TurnPremiums(
                month_end=float(self.turns.month_end),
                quarter_end=float(self.turns.quarter_end),
                year_end=float(self.turns.year_end),
            ),
        )


def _describe(err: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(p) for p in e['loc']) or '<payload>'}: {e['msg']}" for e in err.errors())


def scenario_from_dict(payload: Mapping[str, Any]) -> Scenario:
    """
    Build a Scenario from the camelCase payload used by the scenario editor:

        {"id", "name", "baseSofr", "baseEffr" (optional/null),
         "meetings": [{"date": "YYYY-MM-DD", "hikeBps": int}],
         "turns": {"monthEnd", "quarterEnd", "yearEnd"}}

    Numbers must be real numbers (no strings, booleans or nulls). Meetings are sorted by date.
    Raises ValueError naming each bad field, or on duplicate meeting dates.
    """
    try:
        parsed = ScenarioPayload.model_validate(payload)
    except ValidationError as e:
        sid = payload.get("id") if isinstance(payload, Mapping) else None
        raise ValueError(f"scenario {sid or '<no id>'}: {_describe(e)}") from None
    return parsed.to_scenario()


def scenario_to_dict(scenario: Scenario) -> Dict[str, Any]:
    return {
        "id": scenario.id,
        "name": scenario.name,
        "baseSofr": scenario.base_sofr,
        "baseEffr": scenario.base_effr,
        "meetings": [{"date": iso(m.date), "hikeBps": m.hike_bps} for m in scenario.meetings],
        "turns": {
            "monthEnd": scenario.turns.month_end,
            "quarterEnd": scenario.turns.quarter_end,
            "yearEnd": scenario.turns.year_end,
        },
    }


def load_scenario(path: Union[str, Path]) -> Scenario:
    with open(path, "r", encoding="utf-8") as f:
        return scenario_from_dict(json.load(f))


def with_meeting_hike(scenario: Scenario, meeting_date: DateLike, hike_bps: float) -> Scenario:
    """Copy of the scenario with one meeting's hike replaced."""
    d = to_timestamp(meeting_date)
    if d not in scenario.meeting_dates:
        raise ValueError(f"{scenario.id}: no meeting on {iso(d)}")
    meetings = tuple(replace(m, hike_bps=hike_bps) if m.date == d else m for m in scenario.meetings)
    return replace(scenario, meetings=meetings)


# ---------- Scenario runners ----------

def compare_scenarios(scenario_a: Scenario, scenario_b: Scenario, holidays: Iterable) -> pd.DataFrame:
    """Monthly outrights side by side; delta = price_a - price_b."""
    out_a = run_scenario(scenario_a, holidays).monthly.outrights
    out_b = run_scenario(scenario_b, holidays).monthly.outrights

    rows = []
    for a, b in zip(out_a, out_b):
        rows.append(
            {
                "id": a.id,
                "price_a": a.price,
                "price_b": b.price,
                "delta": a.price - b.price,
                "rate_a": a.rate,
                "rate_b": b.rate,
            }
        )
    return pd.DataFrame(rows, columns=["id", "price_a", "price_b", "delta", "rate_a", "rate_b"])


def scenario_summary(scenario: Scenario) -> Dict[str, Any]:
    total = scenario.total_hike_bps
    return {
        "id": scenario.id,
        "name": scenario.name,
        "base_sofr": scenario.base_sofr,
        "effective_base_rate": scenario.effective_base_rate,
        "total_hike_bps": total,
        "meeting_count": len(scenario.meetings),
        "terminal_rate": scenario.effective_base_rate + total / 100.0,
    }


def calibrate_meeting_hike(
    scenario: Scenario,
    holidays: Iterable,
    instrument_id: str,
    target_price: float,
    meeting_date: DateLike,
    bracket_bps: Tuple[float, float] = (-500.0, 500.0),
) -> float:
    """
    Hike (bp) at `meeting_date` that reprices outright `instrument_id` to `target_price`,
    all other meetings held fixed. Root found with brentq on the outright's price residual.
    """
    holidays = list(holidays)
    try:
        inst = run_scenario(scenario, holidays).find(instrument_id)
    except KeyError:
        raise ValueError(f"Unknown instrument: {instrument_id}") from None
    if not isinstance(inst.structure, Outright):
        raise ValueError(f"Calibration needs an outright, got {inst.name} ({instrument_id})")

    window = inst.structure

    def price_residual(hike_bps: float) -> float:
        trial = with_meeting_hike(scenario, meeting_date, hike_bps)
        rates = generate_daily_rates(trial, holidays)
        return (100.0 - average_rate(rates, window.start, window.end)) - target_price

    a, b = bracket_bps
    fa, fb = price_residual(a), price_residual(b)
    if fa * fb > 0:
        raise ValueError(f"Root not bracketed for {instrument_id} at {iso(meeting_date)}: target {target_price} unreachable.")

    hike = brentq(price_residual, a, b, maxiter=200, xtol=1e-10)
    logger.debug("Calibrated %s hike at %s to %.4f bp for %s=%.4f", scenario.id, iso(meeting_date), hike, instrument_id, target_price)
    return float(hike)
