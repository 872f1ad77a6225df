import numpy as np
import pandas as pd
import pytest

from stir_scenario_engine.curves import generate_daily_rates
from stir_scenario_engine.holidays import FALLBACK_HOLIDAYS
from stir_scenario_engine.market_data import (
    average_rate,
    calculate_market_data,
    imm_quarters,
    market_data_frame,
    run_scenario,
)
from stir_scenario_engine.scenarios import Meeting, Scenario, TurnPremiums, default_scenario, with_meeting_hike

JAN28 = pd.Timestamp("2026-01-28")


@pytest.fixture(scope="module")
def holidays():
    return FALLBACK_HOLIDAYS


@pytest.fixture(scope="module")
def single_hike():
    return Scenario(
        id="single_hike",
        name="+25 in January",
        base_sofr=4.30,
        base_effr=None,
        meetings=(Meeting("2026-01-28", 25),),
        turns=TurnPremiums(0, 0, 0),
    )


@pytest.fixture(scope="module")
def single_hike_md(single_hike, holidays):
    rates = generate_daily_rates(single_hike, holidays)
    return calculate_market_data(rates, single_hike.meetings)


@pytest.fixture(scope="module")
def flat():
    return Scenario(
        id="flat",
        name="Flat",
        base_sofr=4.30,
        base_effr=None,
        meetings=default_scenario().meetings,
        turns=TurnPremiums(0, 0, 0),
    )


@pytest.fixture(scope="module")
def flat_md(flat, holidays):
    return run_scenario(flat, holidays)


@pytest.fixture(scope="module")
def full_md(holidays):
    s = default_scenario()
    s = with_meeting_hike(s, "2026-03-18", 25)
    s = with_meeting_hike(s, "2026-09-16", -50)
    s = with_meeting_hike(s, "2027-06-09", 25)
    return run_scenario(s, holidays)


def test_outright_counts_and_ids(full_md):
    m_ids = [i.id for i in full_md.monthly.outrights]
    q_ids = [i.id for i in full_md.quarterly.outrights]

    assert len(m_ids) == 24
    assert m_ids[0] == "JAN26" and m_ids[-1] == "DEC27"
    assert q_ids == [
        "SR3H26", "SR3M26", "SR3U26", "SR3Z26",
        "SR3H27", "SR3M27", "SR3U27", "SR3Z27",
        "SR3H28",
    ]
    assert imm_quarters()[0] == (2026, 3) and imm_quarters()[-1] == (2028, 3)


def test_chain_lengths(full_md):
    m, q = full_md.monthly, full_md.quarterly
    assert len(m.spreads) == len(m.outrights) - 1
    assert len(m.flies) == len(m.spreads) - 1
    assert len(q.spreads) == len(q.outrights) - 1
    assert len(q.flies) == len(q.spreads) - 1
    assert len(q.deflies) == len(q.flies) - 1
    assert len(q.condors) == len(q.spreads) - 2


def test_combination_ids(full_md):
    q = full_md.quarterly
    assert full_md.monthly.spreads[0].id == "JAN26-FEB26"
    assert full_md.monthly.spreads[0].name == "JAN26/FEB26"
    assert full_md.monthly.flies[0].id == "JAN26FEB26MAR26"
    assert q.condors[0].id == "SR3H26-SR3M26/SR3U26-SR3Z26"
    assert q.condors[0].name == "Condor"
    assert q.deflies[0].id == "DF SR3H26SR3M26SR3U26"
    assert q.deflies[0].name == "Defly"


def test_january_hike_monthly_outrights(single_hike_md):
    jan, feb = single_hike_md.monthly.outrights[:2]

    # Jan 29, 30 (business) and 31 (Saturday, carried) are at 4.55
    assert jan.rate == pytest.approx(4.30 + 0.25 * 3 / 31, abs=1e-12)
    assert 4.30 < jan.rate < 4.55
    assert jan.price == pytest.approx(100.0 - jan.rate, abs=1e-12)
    assert feb.rate == pytest.approx(4.55, abs=1e-12)

    assert jan.sensitivity(JAN28) == pytest.approx(3 / 31)
    assert feb.sensitivity(JAN28) == 1.0


def test_spread_sensitivity_sign(single_hike_md):
    spread = single_hike_md.monthly.spreads[0]
    jan, feb = single_hike_md.monthly.outrights[:2]

    assert spread.sensitivity(JAN28) == pytest.approx(1.0 - 3 / 31), "far - near"
    assert spread.price == pytest.approx(jan.price - feb.price)
    assert spread.rate == pytest.approx(feb.rate - jan.rate)
    assert spread.price > 0, "A hike felt by the far leg lifts the spread price"


def test_fly_condor_defly_are_differences(single_hike_md):
    m, q = single_hike_md.monthly, single_hike_md.quarterly

    fly = m.flies[0]
    assert fly.price == pytest.approx(m.spreads[0].price - m.spreads[1].price)
    assert fly.sensitivity(JAN28) == pytest.approx(m.spreads[0].sensitivity(JAN28) - m.spreads[1].sensitivity(JAN28))

    condor = q.condors[1]
    assert condor.price == pytest.approx(q.spreads[1].price - q.spreads[3].price)

    defly = q.deflies[0]
    assert defly.price == pytest.approx(q.flies[0].price - q.flies[1].price)
    assert defly.sensitivity(JAN28) == pytest.approx(q.flies[0].sensitivity(JAN28) - q.flies[1].sensitivity(JAN28))


def test_quarterly_window_is_imm_to_imm(full_md):
    h26 = full_md.quarterly.outrights[0]
    assert h26.structure.start == pd.Timestamp("2026-03-18"), "Third Wednesday of March 2026"
    assert h26.structure.end == pd.Timestamp("2026-06-16"), "Day before the June IMM date"

    # window is 91 days; the meeting on the IMM date itself affects all but the first
    assert h26.sensitivity("2026-03-18") == pytest.approx(90 / 91)
    assert h26.sensitivity("2026-06-17") == 0.0


def test_flat_scenario_prices(flat_md):
    for inst in flat_md.monthly.outrights + flat_md.quarterly.outrights:
        assert inst.rate == 4.30, f"{inst.id} should average to the base rate"
        assert inst.price == 100.0 - 4.30

    combos = (
        flat_md.monthly.spreads + flat_md.monthly.flies
        + flat_md.quarterly.spreads + flat_md.quarterly.flies
        + flat_md.quarterly.deflies + flat_md.quarterly.condors
    )
    assert all(c.price == 0.0 for c in combos), "Flat path: every combination prices to exactly 0"


def test_sensitivities_depend_only_on_dates(flat_md, full_md):
    for a, b in zip(flat_md.all_instruments(), full_md.all_instruments()):
        assert a.id == b.id
        assert a.meeting_sensitivities == b.meeting_sensitivities


def test_sensitivity_bounds(full_md):
    for inst in full_md.monthly.outrights + full_md.quarterly.outrights:
        vals = np.array(list(inst.meeting_sensitivities.values()))
        assert ((vals >= 0.0) & (vals <= 1.0)).all(), inst.id

    m, q = full_md.monthly, full_md.quarterly
    for inst in m.spreads + m.flies + q.spreads + q.flies + q.condors:
        vals = np.array(list(inst.meeting_sensitivities.values()))
        assert ((vals >= -1.0) & (vals <= 1.0)).all(), inst.id

    # a defly differences two flies, so it can reach beyond one full window
    for inst in q.deflies:
        vals = np.array(list(inst.meeting_sensitivities.values()))
        assert ((vals >= -2.0) & (vals <= 2.0)).all(), inst.id


def test_missing_meeting_has_zero_sensitivity(single_hike_md):
    feb = single_hike_md.monthly.outrights[1]
    assert feb.sensitivity("2026-03-18") == 0.0


def test_meetings_accept_mappings_and_dates(single_hike, single_hike_md, holidays):
    rates = generate_daily_rates(single_hike, holidays)
    for meetings in ([{"date": "2026-01-28", "hikeBps": 25}], ["2026-01-28"], [JAN28]):
        md = calculate_market_data(rates, meetings)
        for got, want in zip(md.all_instruments(), single_hike_md.all_instruments()):
            assert got.meeting_sensitivities == want.meeting_sensitivities, (meetings, got.id)


def test_chronological_order(full_md):
    starts = [i.structure.start for i in full_md.monthly.outrights]
    assert starts == sorted(starts)
    starts = [i.structure.start for i in full_md.quarterly.outrights]
    assert starts == sorted(starts)


def test_average_rate_empty_window(single_hike, holidays):
    rates = generate_daily_rates(single_hike, holidays)
    assert average_rate(rates, pd.Timestamp("2030-01-01"), pd.Timestamp("2030-01-31")) == 0.0


def test_run_scenario_memoized(flat, holidays, flat_md):
    again = run_scenario(flat, list(reversed(holidays)))
    assert again is flat_md, "Same scenario and holiday set must hit the cache"


def test_market_data_frame_shape(full_md):
    df = market_data_frame(full_md)
    assert len(df) == len(full_md.all_instruments())
    assert set(df["tenor"]) == {"monthly", "quarterly"}
    assert df.loc[df["id"] == "FEB26", "kind"].item() == "outright"
    assert full_md.find("SR3Z26").id == "SR3Z26"
    with pytest.raises(KeyError):
        full_md.find("NOPE")
