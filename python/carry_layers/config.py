"""Indicator windows and risk parameters.

RiskParams validates on construction: every field must be a finite number,
and gap_days / min_lot_c are floored to whole numbers of at least 1.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields

from .types import InvalidInputError


@dataclass(frozen=True)
class IndicatorConfig:
    """Indicator window configuration."""

    high_window: int = 20
    atr_window: int = 14
    change_window: int = 20

    # chg20 needs close[i-20], so the first usable bar is index 20.
    min_bars: int = 21


# Persisted (camelCase) key -> field name
PARAM_KEYS = {
    "atrAll": "atr_all",
    "atrHalf": "atr_half",
    "atrAdd": "atr_add",
    "pushTh": "push_th",
    "shock": "shock",
    "gapDays": "gap_days",
    "equityJPY": "equity_jpy",
    "levAB": "lev_ab",
    "useAB": "use_ab",
    "minLotC_10k": "min_lot_c",
    "goalMonthlyJPY": "goal_monthly_jpy",
}


@dataclass(frozen=True)
class RiskParams:
    """Risk rule thresholds and layer sizing inputs."""

    # ATR thresholds (price units, e.g. JPY per MXN)
    atr_all: float = 0.30
    atr_half: float = 0.22
    atr_add: float = 0.18

    # pullback from the 20-day high required before adding A/B (fraction)
    push_th: float = 0.05
    # |20-day change| that forces a full close (fraction)
    shock: float = 0.20
    # minimum calendar days between A/B adds
    gap_days: int = 7

    # A/B sizing: floor(equity * lev * use / (close * 10000))
    equity_jpy: float = 500_000.0
    lev_ab: float = 7.2
    use_ab: float = 0.95

    # C: minimum lot step (10k units) before the add signal fires
    min_lot_c: int = 1

    # display only
    goal_monthly_jpy: float = 100_000.0

    def __post_init__(self):
        for f in fields(self):
            v = getattr(self, f.name)
            try:
                v = float(v)
            except (TypeError, ValueError):
                raise InvalidInputError(f.name, f"not a number: {v!r}") from None
            if not math.isfinite(v):
                raise InvalidInputError(f.name, f"not a finite number: {v!r}")
            if f.name in ("gap_days", "min_lot_c"):
                object.__setattr__(self, f.name, max(1, int(math.floor(v))))
            else:
                object.__setattr__(self, f.name, v)

    @classmethod
    def from_params_dict(cls, d: dict) -> "RiskParams":
        """Create RiskParams from the persisted params dict.

        Keys are camelCase (e.g., atrAll, equityJPY). Unknown keys are ignored,
        missing keys keep their defaults.
        """
        kwargs = {}
        for k, v in (d or {}).items():
            if k in PARAM_KEYS:
                kwargs[PARAM_KEYS[k]] = v
        return cls(**kwargs)

    def to_params_dict(self) -> dict:
        return {k: getattr(self, name) for k, name in PARAM_KEYS.items()}
