from __future__ import annotations

from dataclasses import dataclass, field
from functools import singledispatch
from typing import Dict, List, Sequence, Union

import pandas as pd

from .risk import Sensitivities, sensitivity_difference
from .utils import DateLike, to_timestamp


# ---------- Structures (what an instrument is made of) ----------

@dataclass(frozen=True)
class Outright:
    code: str
    start: pd.Timestamp
    end: pd.Timestamp  # last day of the averaging window (inclusive)


@dataclass(frozen=True)
class Spread:
    near: Outright
    far: Outright


@dataclass(frozen=True)
class Fly:
    """Adjacent spreads A-B and B-C."""
    first: Spread
    second: Spread


@dataclass(frozen=True)
class Condor:
    """Spreads two positions apart in the spread strip."""
    first: Spread
    second: Spread


@dataclass(frozen=True)
class Defly:
    first: Fly
    second: Fly


Structure = Union[Outright, Spread, Fly, Condor, Defly]


# ---------- Presentation ----------

@singledispatch
def instrument_id(structure) -> str:
    raise TypeError(f"Unknown instrument structure: {type(structure).__name__}")


@instrument_id.register
def _(structure: Outright) -> str:
    return structure.code


@instrument_id.register
def _(structure: Spread) -> str:
    return f"{structure.near.code}-{structure.far.code}"


@instrument_id.register
def _(structure: Fly) -> str:
    return f"{structure.first.near.code}{structure.first.far.code}{structure.second.far.code}"


@instrument_id.register
def _(structure: Condor) -> str:
    return f"{instrument_id(structure.first)}/{instrument_id(structure.second)}"


@instrument_id.register
def _(structure: Defly) -> str:
    return f"DF {instrument_id(structure.first)}"


@singledispatch
def instrument_name(structure) -> str:
    return instrument_id(structure)


@instrument_name.register
def _(structure: Spread) -> str:
    return f"{structure.near.code}/{structure.far.code}"


@instrument_name.register
def _(structure: Condor) -> str:
    return "Condor"


@instrument_name.register
def _(structure: Defly) -> str:
    return "Defly"


# ---------- Priced instrument ----------

@dataclass(frozen=True)
class DerivedInstrument:
    """
    A priced outright or combination.

    price: 100 - average rate for outrights, linear combination of leg prices otherwise.
    meeting_sensitivities: meeting date -> share of the reference window exposed to a hike
    at that meeting (signed differences for combinations). Absent meeting = no sensitivity.
    """
    structure: Structure
    price: float
    rate: float
    meeting_sensitivities: Dict[pd.Timestamp, float] = field(default_factory=dict, hash=False)

    @property
    def id(self) -> str:
        return instrument_id(self.structure)

    @property
    def name(self) -> str:
        return instrument_name(self.structure)

    def sensitivity(self, meeting_date: DateLike) -> float:
        return self.meeting_sensitivities.get(to_timestamp(meeting_date), 0.0)


def make_outright(code: str, start: pd.Timestamp, end: pd.Timestamp, avg_rate: float, sens: Sensitivities) -> DerivedInstrument:
    return DerivedInstrument(Outright(code, start, end), 100.0 - avg_rate, avg_rate, dict(sens))


# ---------- Combinations ----------

def build_spread(near: DerivedInstrument, far: DerivedInstrument) -> DerivedInstrument:
    """
    near - far in price, far - near in rate.

    Sensitivity is |far| - |near|: a hike felt only by the far leg lowers the far price,
    so the spread price rises.
    """
    if not (isinstance(near.structure, Outright) and isinstance(far.structure, Outright)):
        raise TypeError("Spread legs must be outrights")
    return DerivedInstrument(
        Spread(near.structure, far.structure),
        near.price - far.price,
        far.rate - near.rate,
        sensitivity_difference(far.meeting_sensitivities, near.meeting_sensitivities, absolute=True),
    )


def build_fly(spread1: DerivedInstrument, spread2: DerivedInstrument) -> DerivedInstrument:
    if not (isinstance(spread1.structure, Spread) and isinstance(spread2.structure, Spread)):
        raise TypeError("Fly legs must be spreads")
    return DerivedInstrument(
        Fly(spread1.structure, spread2.structure),
        spread1.price - spread2.price,
        0.0,
        sensitivity_difference(spread1.meeting_sensitivities, spread2.meeting_sensitivities),
    )


def build_condor(spread1: DerivedInstrument, spread3: DerivedInstrument) -> DerivedInstrument:
    if not (isinstance(spread1.structure, Spread) and isinstance(spread3.structure, Spread)):
        raise TypeError("Condor legs must be spreads")
    return DerivedInstrument(
        Condor(spread1.structure, spread3.structure),
        spread1.price - spread3.price,
        0.0,
        sensitivity_difference(spread1.meeting_sensitivities, spread3.meeting_sensitivities),
    )


def build_defly(fly1: DerivedInstrument, fly2: DerivedInstrument) -> DerivedInstrument:
    if not (isinstance(fly1.structure, Fly) and isinstance(fly2.structure, Fly)):
        raise TypeError("Defly legs must be flies")
    return DerivedInstrument(
        Defly(fly1.structure, fly2.structure),
        fly1.price - fly2.price,
        0.0,
        sensitivity_difference(fly1.meeting_sensitivities, fly2.meeting_sensitivities),
    )


def spreads_from(outrights: Sequence[DerivedInstrument]) -> List[DerivedInstrument]:
    return [build_spread(outrights[i], outrights[i + 1]) for i in range(len(outrights) - 1)]


def flies_from(spreads: Sequence[DerivedInstrument]) -> List[DerivedInstrument]:
    return [build_fly(spreads[i], spreads[i + 1]) for i in range(len(spreads) - 1)]


def condors_from(spreads: Sequence[DerivedInstrument]) -> List[DerivedInstrument]:
    return [build_condor(spreads[i], spreads[i + 2]) for i in range(len(spreads) - 2)]


def deflies_from(flies: Sequence[DerivedInstrument]) -> List[DerivedInstrument]:
    return [build_defly(flies[i], flies[i + 1]) for i in range(len(flies) - 1)]
