"""Indicator computation utilities.

Every series is recomputed from the full bar history on each call. Values
before enough history exists are NaN; downstream code treats NaN as
"insufficient data".
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from .config import IndicatorConfig


def rolling_max(series: pd.Series, window: int) -> pd.Series:
    """Trailing max over ``window`` bars (NaN until the window is full)."""
    if window <= 0:
        raise ValueError("window must be positive")
    return series.astype(float).rolling(window=window, min_periods=window).max()


def true_range(df: pd.DataFrame) -> pd.Series:
    """True range. The first bar has no previous close, so TR[0] = High - Low."""
    high = df["High"].astype(float)
    low = df["Low"].astype(float)
    close = df["Close"].astype(float)
    prev_close = close.shift(1)
    # max(axis=1) skips the NaN legs of the first row
    return pd.concat(
        [
            high - low,
            (high - prev_close).abs(),
            (low - prev_close).abs(),
        ],
        axis=1,
    ).max(axis=1)


def atr_wilder(df: pd.DataFrame, window: int) -> pd.Series:
    """Average True Range with Wilder smoothing.

    Seeded with the simple mean of the first ``window`` TR values, then
    ``atr[i] = (atr[i-1] * (window - 1) + tr[i]) / window``.
    """
    if window <= 0:
        raise ValueError("window must be positive")
    tr = true_range(df).to_numpy(dtype=float)
    out = np.full(len(tr), np.nan)
    if len(tr) < window:
        return pd.Series(out, index=df.index)

    out[window - 1] = tr[:window].mean()
    for i in range(window, len(tr)):
        out[i] = (out[i - 1] * (window - 1) + tr[i]) / window
    return pd.Series(out, index=df.index)


def pct_change(series: pd.Series, periods: int) -> pd.Series:
    """``x[i] / x[i - periods] - 1`` (NaN for the first ``periods`` bars)."""
    if periods <= 0:
        raise ValueError("periods must be positive")
    x = series.astype(float)
    return x / x.shift(periods) - 1.0


def push_rate(high_n: pd.Series, close: pd.Series) -> pd.Series:
    """Pullback of close below the rolling high, as a fraction of that high."""
    h = high_n.astype(float)
    rate = (h - close.astype(float)) / h
    return rate.where(np.isfinite(h) & (h != 0))


def compute_indicators(df: pd.DataFrame, cfg: IndicatorConfig = IndicatorConfig()) -> pd.DataFrame:
    """Return high20 / atr14 / chg20 / pushRate aligned with ``df``."""
    high20 = rolling_max(df["High"], cfg.high_window)
    out = pd.DataFrame(index=df.index)
    out["high20"] = high20
    out["atr14"] = atr_wilder(df, cfg.atr_window)
    out["chg20"] = pct_change(df["Close"], cfg.change_window)
    out["pushRate"] = push_rate(high20, df["Close"])
    return out
