from datetime import timedelta

import pytest

from carry_layers.session import SwapSession
from carry_layers.types import ADD_AB, DATA_INSUFFICIENT, HOLD, SIGNAL_C, Bar, InvalidInputError

from conftest import load_session, make_bars, pullback_bars


def test_new_date_accrues_with_lots_before_actions():
    s = SwapSession()
    bar = make_bars(1, swap=20.0)[0]
    assert s.upsert_bar(bar) is True
    # default book holds A=15
    assert s.pools.swap_total == pytest.approx(15 * 20.0)
    assert s.pools.defense == pytest.approx(150.0)
    assert s.pools.attack == pytest.approx(150.0)


def test_overwrite_does_not_double_accrue():
    s = SwapSession()
    bar = make_bars(1, swap=20.0)[0]
    s.upsert_bar(bar)
    before = s.pools.swap_total
    fixed = Bar(date=bar.date, open=7.0, high=7.2, low=6.9, close=7.1, swap_per_10k=35.0)
    assert s.upsert_bar(fixed) is False
    assert s.pools.swap_total == before
    assert len(s.bars) == 1
    assert s.last_bar().close == pytest.approx(7.1)


def test_evaluate_insufficient_until_21_bars():
    bars = make_bars(21)
    s = load_session(bars[:20])
    assert s.evaluate().status == DATA_INSUFFICIENT
    s.upsert_bar(bars[20])
    assert s.evaluate().status != DATA_INSUFFICIENT


def test_add_ab_then_cooldown(pullback_session):
    s = pullback_session
    assert s.evaluate().status == ADD_AB
    assert s.add_ab() is True
    assert (s.layers.a.lots, s.layers.b.lots) == (16, 1)
    last = s.last_bar().date
    assert s.layers.a.last_add_date == last

    # same day: cooldown blocks a second add
    assert s.evaluate().status == HOLD
    assert s.add_ab() is False
    assert (s.layers.a.lots, s.layers.b.lots) == (16, 1)

    # a week later the add is allowed again
    for i in range(1, 8):
        b = Bar(date=last + timedelta(days=i), open=7.0, high=7.05, low=6.95, close=7.0, swap_per_10k=20.0)
        s.upsert_bar(b)
    assert s.evaluate().status == ADD_AB
    assert s.add_ab() is True
    assert (s.layers.a.lots, s.layers.b.lots) == (17, 2)


def test_add_ab_refused_without_flag(calm_bars):
    s = load_session(calm_bars)
    n_logs = len(s.logs)
    assert s.add_ab() is False
    assert s.layers.a.lots == 15
    assert len(s.logs) == n_logs


def test_acknowledge_c(calm_bars):
    s = load_session(calm_bars)
    assert s.acknowledge_c() is False

    s.pools.attack = 100_000.0  # funds 14 lots at 7.0
    assert s.evaluate().status == SIGNAL_C
    assert s.acknowledge_c() is True
    assert s.layers.c.lots == 0
    assert s.layers.c.last_add_date == calm_bars[-1].date


def test_all_close_and_half_use_last_bar_date(calm_bars):
    s = load_session(calm_bars)
    s.half()
    assert s.layers.a.lots == 7
    assert f"[{calm_bars[-1].date}] HALF" in s.logs.entries[-1]
    s.all_close()
    assert s.layers.total_lots == 0


def test_actions_without_bars_log_na():
    s = SwapSession()
    s.all_close()
    assert "[N/A] ALL_CLOSE" in s.logs.entries[-1]


def test_save_params_validates_before_mutating():
    s = SwapSession()
    with pytest.raises(InvalidInputError) as exc:
        s.save_params({"atrAll": "0.5", "levAB": "abc"})
    assert exc.value.field == "levAB"
    assert s.params.atr_all == pytest.approx(0.30)

    p = s.save_params({"atrAll": "0.5", "gapDays": "3.7", "minLotC_10k": "0"})
    assert p.atr_all == pytest.approx(0.5)
    assert p.gap_days == 3
    assert p.min_lot_c == 1


def test_import_text_skips_bad_lines_and_accrues_once():
    s = SwapSession()
    text = "\n".join(
        [
            "date,open,high,low,close,swap",
            "2024-01-01,7.0,7.1,6.9,7.0,20",
            "2024/01/02\t7.0\t7.1\t6.9\t7.05\t20",
            "20240103 7.0 7.1 6.9 7.02 20",
            "2024-02-30,7.0,7.1,6.9,7.0,20",
            "2024-01-04,7.0,x,6.9,7.0,20",
            "2024-01-01,7.0,7.1,6.9,7.01,25",
        ]
    )
    assert s.import_text(text) == 4
    assert len(s.bars) == 3
    assert s.pools.swap_total == pytest.approx(3 * 15 * 20.0)
    assert s.bars.bars()[0].close == pytest.approx(7.01)


def test_copy_previous():
    s = SwapSession()
    assert s.copy_previous() is None
    bars = make_bars(2)
    for b in bars:
        s.upsert_bar(b)
    assert s.copy_previous() == bars[-1]


@pytest.mark.parametrize(
    "field, value",
    [("swap_per_10k", float("nan")), ("close", float("inf")), ("open", -7.0), ("high", 6.0)],
)
def test_upsert_rejects_malformed_bar_without_changes(field, value):
    s = load_session(make_bars(1, swap=20.0))
    pools_before = (s.pools.swap_total, s.pools.defense, s.pools.attack)
    logs_before = list(s.logs.entries)

    good = make_bars(2, swap=20.0)[1]
    values = dict(open=good.open, high=good.high, low=good.low, close=good.close, swap_per_10k=good.swap_per_10k)
    values[field] = value
    bad = Bar(date=good.date, **values)

    with pytest.raises(InvalidInputError) as exc:
        s.upsert_bar(bad)
    assert exc.value.field == field
    assert len(s.bars) == 1
    assert (s.pools.swap_total, s.pools.defense, s.pools.attack) == pools_before
    assert s.logs.entries == logs_before


def test_save_params_rejects_infinite_value():
    s = SwapSession()
    with pytest.raises(InvalidInputError) as exc:
        s.save_params({"equityJPY": "inf"})
    assert exc.value.field == "equityJPY"
    assert s.params.equity_jpy == pytest.approx(500_000.0)
