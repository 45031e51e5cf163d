from datetime import date

import pytest

from carry_layers.config import RiskParams
from carry_layers.ledger import (
    LOG_CAP,
    AuditLog,
    Layer,
    Layers,
    acknowledge_signal_c,
    apply_add_ab,
    apply_all_close,
    apply_half,
)
from carry_layers.sizing import max_lots_ab

D = date(2024, 2, 1)


def _layers(a, b, c):
    return Layers(a=Layer(lots=a), b=Layer(lots=b), c=Layer(lots=c))


def _lots(layers):
    return (layers.a.lots, layers.b.lots, layers.c.lots)


def test_all_close_zeroes_and_clears_cooldowns():
    layers = _layers(15, 4, 3)
    layers.a.last_add_date = D
    layers.c.last_add_date = D
    log = AuditLog()
    apply_all_close(layers, D, log)
    assert _lots(layers) == (0, 0, 0)
    assert all(layer.last_add_date is None for _, layer in layers)
    assert len(log) == 1
    assert "ALL_CLOSE: A=15 B=4 C=3 -> 0" in log.entries[-1]


def test_all_close_is_idempotent():
    layers = _layers(5, 5, 5)
    log = AuditLog()
    apply_all_close(layers, D, log)
    apply_all_close(layers, D, log)
    assert _lots(layers) == (0, 0, 0)
    assert len(log) == 2


def test_half_floors_each_layer():
    layers = _layers(15, 0, 3)
    layers.b.last_add_date = D
    log = AuditLog()
    apply_half(layers, D, log)
    assert _lots(layers) == (7, 0, 1)
    assert layers.b.last_add_date == D
    assert len(log) == 1


def test_repeated_half_converges_to_zero():
    layers = _layers(33, 9, 1)
    log = AuditLog()
    for _ in range(7):
        apply_half(layers, D, log)
    assert _lots(layers) == (0, 0, 0)


def test_add_ab_scenario():
    params = RiskParams(equity_jpy=500000, lev_ab=7.2, use_ab=0.95)
    layers = _layers(15, 0, 0)
    log = AuditLog()
    assert apply_add_ab(layers, params, 7.0, D, log) is True
    assert _lots(layers) == (16, 1, 0)
    assert layers.a.last_add_date == D and layers.b.last_add_date == D
    assert "maxLots=48, before=15" in log.entries[-1]


def test_add_ab_b_starved_adds_a_only():
    # max = floor(16 * 70000 / 70000) = 16 with equity chosen to cap at 16
    params = RiskParams(equity_jpy=16 * 70000, lev_ab=1.0, use_ab=1.0)
    assert max_lots_ab(params, 7.0) == 16
    layers = _layers(10, 5, 0)
    log = AuditLog()
    assert apply_add_ab(layers, params, 7.0, D, log) is True
    assert _lots(layers) == (11, 5, 0)
    # cooldown restarts for B even though it got nothing
    assert layers.b.last_add_date == D


def test_add_ab_fails_without_room():
    params = RiskParams(equity_jpy=16 * 70000, lev_ab=1.0, use_ab=1.0)
    layers = _layers(10, 6, 2)
    log = AuditLog()
    assert apply_add_ab(layers, params, 7.0, D, log) is False
    assert _lots(layers) == (10, 6, 2)
    assert layers.a.last_add_date is None
    assert len(log) == 0


@pytest.mark.parametrize("equity", [0.0, 50_000.0, 123_456.0, 500_000.0, 2_000_000.0])
@pytest.mark.parametrize("close", [3.5, 7.0, 9.87])
def test_add_ab_never_exceeds_cap(equity, close):
    params = RiskParams(equity_jpy=equity, lev_ab=7.2, use_ab=0.95)
    cap = max_lots_ab(params, close)
    layers = _layers(0, 0, 0)
    log = AuditLog()
    for _ in range(cap + 5):
        apply_add_ab(layers, params, close, D, log)
        assert layers.a.lots + layers.b.lots <= cap
    assert layers.a.lots + layers.b.lots == cap


def test_acknowledge_c_only_moves_cooldown():
    layers = _layers(3, 2, 4)
    log = AuditLog()
    acknowledge_signal_c(layers, D, log)
    assert _lots(layers) == (3, 2, 4)
    assert layers.c.last_add_date == D
    assert layers.a.last_add_date is None
    assert len(log) == 1


def test_audit_log_is_capped():
    log = AuditLog()
    for i in range(LOG_CAP + 10):
        log.add(f"entry {i}")
    assert len(log) == LOG_CAP
    assert log.entries[0].endswith("entry 10")
    assert log.tail(2)[-1].endswith(f"entry {LOG_CAP + 9}")
