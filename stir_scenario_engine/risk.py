from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from .curves import DailyRate
from .utils import DateLike, to_timestamp

if TYPE_CHECKING:
    from .instruments import DerivedInstrument

Sensitivities = Dict[pd.Timestamp, float]


def effective_date(meeting_date: DateLike) -> pd.Timestamp:
    """A decision on day D moves the overnight rate from D+1."""
    return to_timestamp(meeting_date) + pd.Timedelta(days=1)


def window_sensitivity(
    meeting_date: DateLike,
    window_start: DateLike,
    window_end: DateLike,
    daily_rates: Sequence[DailyRate],
) -> float:
    """
    Fraction of the days in [window_start, window_end] that fall on or after the hike's effective date.

    1.0: whole window under the new rate. 0.0: window entirely before it, or window empty.
    """
    start = to_timestamp(window_start)
    end = to_timestamp(window_end)
    dates = np.array([r.date.to_datetime64() for r in daily_rates], dtype="datetime64[ns]")

    in_window = dates[(dates >= start.to_datetime64()) & (dates <= end.to_datetime64())]
    if len(in_window) == 0:
        return 0.0

    affected = int((in_window >= effective_date(meeting_date).to_datetime64()).sum())
    return affected / len(in_window)


def sensitivity_difference(a: Mapping[pd.Timestamp, float], b: Mapping[pd.Timestamp, float], absolute: bool = False) -> Sensitivities:
    """
    Per-meeting a - b over the union of meetings; a missing meeting counts as 0.

    With absolute=True the magnitudes are differenced (|a| - |b|).
    """
    out: Sensitivities = {}
    for k in list(a.keys()) + [k for k in b.keys() if k not in a]:
        sa = a.get(k, 0.0)
        sb = b.get(k, 0.0)
        if absolute:
            sa, sb = abs(sa), abs(sb)
        out[k] = sa - sb
    return out


def sensitivity_frame(instruments: Iterable["DerivedInstrument"], meeting_dates: Iterable[DateLike]) -> pd.DataFrame:
    """Instrument x meeting matrix of sensitivities (absent meeting -> 0)."""
    meetings = [to_timestamp(d) for d in meeting_dates]
    rows = []
    ids = []
    for inst in instruments:
        ids.append(inst.id)
        rows.append([inst.sensitivity(m) for m in meetings])

    return pd.DataFrame(rows, index=pd.Index(ids, name="instrument"), columns=pd.DatetimeIndex(meetings, name="meeting"), dtype=float)


def hike_impact_bp(instrument: "DerivedInstrument", meeting_date: DateLike, hike_bps: float) -> float:
    """bp move in the instrument's rate from a hike of hike_bps at meeting_date."""
    return instrument.sensitivity(meeting_date) * hike_bps
