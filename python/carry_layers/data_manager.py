"""Data manager: holds daily bars and provides the latest-metrics snapshot.

Bars are keyed by calendar date. An upsert for a known date replaces that
row; the frame is kept sorted ascending with no duplicate dates.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from .config import IndicatorConfig
from .indicators import compute_indicators
from .types import Bar, LatestMetrics, MetricsSnapshot

COLUMNS = ["Open", "High", "Low", "Close", "Swap"]

MSG_INSUFFICIENT = "insufficient data (need at least {n} daily bars)"
MSG_NAN = "indicator is NaN (likely insufficient history)"


def _empty_frame() -> pd.DataFrame:
    return pd.DataFrame(
        {c: pd.Series(dtype=float) for c in COLUMNS},
        index=pd.DatetimeIndex([], name="Date"),
    )


class BarSeries:
    """Holds the daily bar history for the tracked pair."""

    def __init__(self, bars: Iterable[Bar] = (), ind_cfg: IndicatorConfig = IndicatorConfig()):
        self.ind_cfg = ind_cfg
        self.df = _empty_frame()
        for bar in bars:
            self.upsert(bar)

    def __len__(self) -> int:
        return int(len(self.df))

    def __contains__(self, d: date) -> bool:
        return pd.Timestamp(d) in self.df.index

    def upsert(self, bar: Bar) -> bool:
        """Insert or replace the bar for ``bar.date``. Returns True for a new date."""
        ts = pd.Timestamp(bar.date)
        values = [float(bar.open), float(bar.high), float(bar.low), float(bar.close), float(bar.swap_per_10k)]

        if ts in self.df.index:
            self.df.loc[ts, COLUMNS] = values
            return False

        row = pd.DataFrame([values], columns=COLUMNS, index=pd.DatetimeIndex([ts], name="Date"))
        if self.df.empty:
            self.df = row
        else:
            self.df = pd.concat([self.df, row])
        self.df = self.df[~self.df.index.duplicated(keep="last")].sort_index()
        return True

    def get(self, d: date) -> Optional[Bar]:
        ts = pd.Timestamp(d)
        if ts not in self.df.index:
            return None
        return self._row_to_bar(ts, self.df.loc[ts])

    def last_bar(self) -> Optional[Bar]:
        if self.df.empty:
            return None
        return self._row_to_bar(self.df.index[-1], self.df.iloc[-1])

    def bars(self) -> List[Bar]:
        return [self._row_to_bar(ts, row) for ts, row in self.df.iterrows()]

    @staticmethod
    def _row_to_bar(ts: pd.Timestamp, row: pd.Series) -> Bar:
        return Bar(
            date=ts.date(),
            open=float(row["Open"]),
            high=float(row["High"]),
            low=float(row["Low"]),
            close=float(row["Close"]),
            swap_per_10k=float(row["Swap"]),
        )

    def indicators(self) -> pd.DataFrame:
        return compute_indicators(self.df, self.ind_cfg)

    def latest_metrics(self) -> MetricsSnapshot:
        """Indicator values at the latest bar, or an invalid snapshot."""
        n_min = int(self.ind_cfg.min_bars)
        if len(self.df) < n_min:
            return MetricsSnapshot(valid=False, message=MSG_INSUFFICIENT.format(n=n_min))

        ind = self.indicators()
        row = self.df.iloc[-1]
        last = ind.iloc[-1]
        metrics = LatestMetrics(
            date=self.df.index[-1].date(),
            close=float(row["Close"]),
            atr14=float(last["atr14"]),
            chg20=float(last["chg20"]),
            push_rate=float(last["pushRate"]),
            high20=float(last["high20"]),
            swap_per_10k=float(row["Swap"]),
        )
        ok = bool(np.isfinite([metrics.atr14, metrics.chg20, metrics.push_rate]).all())
        return MetricsSnapshot(valid=ok, message="OK" if ok else MSG_NAN, metrics=metrics)
