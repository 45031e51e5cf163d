"""Daily decision engine.

Rules are evaluated in strict precedence and the first match wins:

1. DATA_INSUFFICIENT  snapshot invalid
2. ALL_CLOSE          atr14 > atr_all or |chg20| >= shock
3. HALF               atr14 > atr_half
4. ADD_AB             pullback, calm ATR, both cooldowns elapsed, room under max lots
5. SIGNAL_C           attack pool affords at least min_lot_c more lots for C
6. HOLD
"""

from __future__ import annotations

import logging
import math
from datetime import date

from .config import RiskParams
from .ledger import Layer, Layers
from .pools import Pools
from .sizing import max_lots_ab, max_lots_c
from .types import (
    ADD_AB,
    ALL_CLOSE,
    BADGE_BAD,
    BADGE_OK,
    BADGE_WARN,
    DATA_INSUFFICIENT,
    HALF,
    HOLD,
    SIGNAL_C,
    Decision,
    MetricsSnapshot,
    RuleFlags,
)

log = logging.getLogger(__name__)


def _fmt(x: float, d: int) -> str:
    return f"{x:.{d}f}" if math.isfinite(x) else "-"


def cooldown_elapsed(layer: Layer, today: date, gap_days: int) -> bool:
    if layer.last_add_date is None:
        return True
    return (today - layer.last_add_date).days >= int(gap_days)


def decide(params: RiskParams, layers: Layers, pools: Pools, snapshot: MetricsSnapshot) -> Decision:
    """Evaluate today's action from the latest metrics snapshot."""
    if not snapshot.valid or snapshot.metrics is None:
        return Decision(
            status=DATA_INSUFFICIENT,
            badge=BADGE_WARN,
            title="Data insufficient: decision on hold",
            reason=snapshot.message,
            flags=RuleFlags(),
            metrics=snapshot.metrics,
        )

    m = snapshot.metrics
    atr = m.atr14
    shock_abs = abs(m.chg20)

    atr_all_hit = atr > params.atr_all
    shock_hit = shock_abs >= params.shock
    all_close = atr_all_hit or shock_hit
    half = (not all_close) and atr > params.atr_half

    push_ok = m.push_rate >= params.push_th
    atr_add_ok = atr <= params.atr_add
    gap_ok_a = cooldown_elapsed(layers.a, m.date, params.gap_days)
    gap_ok_b = cooldown_elapsed(layers.b, m.date, params.gap_days)
    max_ab = max_lots_ab(params, m.close)
    lots_ab = layers.a.lots + layers.b.lots
    room_ab = max_ab > lots_ab
    add_ab = (not all_close) and (not half) and push_ok and atr_add_ok and gap_ok_a and gap_ok_b and room_ab

    # C has no ATR / pullback gate; only affordability of the minimum step.
    min_lot = max(1, int(params.min_lot_c))
    max_c = max_lots_c(pools.attack, m.close)
    signal_c = (not all_close) and max_c >= layers.c.lots + min_lot

    flags = RuleFlags(
        atr_all_hit=atr_all_hit,
        shock_hit=shock_hit,
        all_close=all_close,
        half=half,
        push_ok=push_ok,
        atr_add_ok=atr_add_ok,
        gap_ok_a=gap_ok_a,
        gap_ok_b=gap_ok_b,
        room_ab=room_ab,
        add_ab=add_ab,
        signal_c=signal_c,
    )

    status, badge = HOLD, BADGE_OK
    title = "Hold (no action)"
    reason = f"ATR={_fmt(atr, 4)} / 20d change={_fmt(m.chg20 * 100, 2)}% / pullback={_fmt(m.push_rate * 100, 2)}%"

    if all_close:
        status, badge = ALL_CLOSE, BADGE_BAD
        title = "Close all (A/B/C)"
        triggers = []
        if atr_all_hit:
            triggers.append(f"ATR>{_fmt(params.atr_all, 4)}")
        if shock_hit:
            triggers.append(f"|20d change|>={_fmt(params.shock * 100, 2)}%")
        reason = f"trigger: {' + '.join(triggers)} / ATR={_fmt(atr, 4)}, |chg20|={_fmt(shock_abs * 100, 2)}%"
    elif half:
        status, badge = HALF, BADGE_WARN
        title = "Halve (A/B/C)"
        reason = f"trigger: ATR>Half / ATR={_fmt(atr, 4)} > {_fmt(params.atr_half, 4)}"
    elif add_ab:
        status = ADD_AB
        title = "Add candidate (A/B)"
        reason = (
            f"pullback={_fmt(m.push_rate * 100, 2)}%>={_fmt(params.push_th * 100, 2)}%"
            f" and ATR={_fmt(atr, 4)}<={_fmt(params.atr_add, 4)}"
            f" and gap>={params.gap_days}d and maxLots({max_ab})>current({lots_ab})"
        )
    elif signal_c:
        status = SIGNAL_C
        title = "Attack (C) add signal: minimum lot affordable"
        reason = (
            f"attack pool={pools.attack:,.0f} JPY -> max C lots={max_c} (10k)"
            f" / current C={layers.c.lots} / min add={min_lot}"
        )

    log.debug("decision %s on %s: %s", status, m.date, reason)
    return Decision(
        status=status,
        badge=badge,
        title=title,
        reason=reason,
        flags=flags,
        max_lots_ab=max_ab,
        max_lots_c=max_c,
        metrics=m,
    )
