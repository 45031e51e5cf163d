"""Lot sizing for the three layers.

A/B are sized from account equity at moderate leverage; C is sized only from
the attack pool at a fixed 10x, so its risk never draws on principal.
"""

from __future__ import annotations

import math

from .config import RiskParams

LOT_UNITS = 10_000  # one lot = 10k units of the base currency
LEVERAGE_C = 10.0


def _lot_notional(close: float) -> float:
    return float(close) * LOT_UNITS


def max_lots_ab(params: RiskParams, close: float) -> int:
    """Max A+B lots: floor(equity * lev * use / (close * 10000)).

    Approximates margin capacity. Returns 0 for a non-positive close.
    """
    denom = _lot_notional(close)
    if not math.isfinite(denom) or denom <= 0:
        return 0
    return int(math.floor(params.equity_jpy * params.lev_ab * params.use_ab / denom))


def max_lots_c(attack_jpy: float, close: float) -> int:
    """Max C lots the attack pool funds at a fixed 10x notional."""
    denom = _lot_notional(close)
    if not math.isfinite(denom) or denom <= 0:
        return 0
    return int(math.floor(float(attack_jpy) * LEVERAGE_C / denom))
