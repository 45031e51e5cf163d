from __future__ import annotations

from datetime import date, timedelta
from typing import List, Optional, Sequence

import pytest

from carry_layers.session import SwapSession
from carry_layers.types import Bar

START = date(2024, 1, 1)


def make_bars(
    n: int,
    close: float = 7.0,
    spread: float = 0.05,
    swap: float = 20.0,
    start: date = START,
    closes: Optional[Sequence[float]] = None,
    spikes: Optional[dict] = None,
) -> List[Bar]:
    """Consecutive calendar-day bars with High/Low = Close +/- spread.

    ``spikes`` maps bar index -> High override (to create a 20-day high).
    """
    bars = []
    for i in range(n):
        c = float(closes[i]) if closes is not None else close
        high = c + spread
        if spikes and i in spikes:
            high = spikes[i]
        bars.append(Bar(date=start + timedelta(days=i), open=c, high=high, low=c - spread, close=c, swap_per_10k=swap))
    return bars


def pullback_bars(n: int = 25, swap: float = 20.0) -> List[Bar]:
    """Calm series (ATR ~0.1) whose 20-day high sits 0.5 above close (pullback ~6.7%)."""
    return make_bars(n, close=7.0, spread=0.05, swap=swap, spikes={n - 5: 7.5})


def load_session(bars: Sequence[Bar], **kwargs) -> SwapSession:
    s = SwapSession(**kwargs)
    for b in bars:
        s.upsert_bar(b)
    return s


@pytest.fixture
def calm_bars() -> List[Bar]:
    return make_bars(25)


@pytest.fixture
def pullback_session() -> SwapSession:
    return load_session(pullback_bars())
