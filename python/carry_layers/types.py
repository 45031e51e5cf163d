"""Shared types for the 3-layer swap carry engine.

Bars and snapshots are frozen; a Decision carries its status, the reason
text and every rule flag so callers never re-evaluate rules for display.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


# Decision statuses
DATA_INSUFFICIENT = "DATA_INSUFFICIENT"
ALL_CLOSE = "ALL_CLOSE"
HALF = "HALF"
ADD_AB = "ADD_AB"
SIGNAL_C = "SIGNAL_C"
HOLD = "HOLD"

# Severity badges
BADGE_OK = "ok"
BADGE_WARN = "warn"
BADGE_BAD = "bad"


class InvalidInputError(ValueError):
    """Rejected bar / parameter input. ``field`` names the offending field."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field


@dataclass(frozen=True)
class Bar:
    """One trading day.

    Prices are quote-currency per base unit; ``swap_per_10k`` is the signed
    overnight swap (JPY) for one 10k-unit lot.
    """

    date: date
    open: float
    high: float
    low: float
    close: float
    swap_per_10k: float


@dataclass(frozen=True)
class LatestMetrics:
    """Indicator values at the latest bar."""

    date: date
    close: float
    atr14: float
    chg20: float
    push_rate: float
    high20: float
    swap_per_10k: float


@dataclass(frozen=True)
class MetricsSnapshot:
    valid: bool
    message: str
    metrics: Optional[LatestMetrics] = None


@dataclass(frozen=True)
class RuleFlags:
    """Every rule condition evaluated for one day.

    Only the first true composite flag (all_close > half > add_ab > signal_c)
    decides the action, but all of them are kept for display and audit.
    """

    atr_all_hit: bool = False
    shock_hit: bool = False
    all_close: bool = False
    half: bool = False

    push_ok: bool = False
    atr_add_ok: bool = False
    gap_ok_a: bool = False
    gap_ok_b: bool = False
    room_ab: bool = False
    add_ab: bool = False

    signal_c: bool = False


@dataclass(frozen=True)
class Decision:
    status: str  # one of the status constants above
    badge: str  # 'ok' / 'warn' / 'bad'
    title: str
    reason: str
    flags: RuleFlags

    # Intermediate values (None when data is insufficient)
    max_lots_ab: Optional[int] = None
    max_lots_c: Optional[int] = None
    metrics: Optional[LatestMetrics] = None
