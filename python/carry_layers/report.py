"""Display rows for the daily view."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

from .pools import daily_swap
from .session import SwapSession
from .types import BADGE_BAD, BADGE_OK, BADGE_WARN, Bar, Decision

LAYER_LABELS = {"A": "A principal", "B": "B defense compounding", "C": "C attack"}
DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class LayerRow:
    name: str
    label: str
    lots: int
    daily_swap: float  # NaN without a bar
    status: str
    badge: str  # 'ok' / 'warn' / 'bad' / '' for plain hold


@dataclass(frozen=True)
class KpiSummary:
    daily_swap: float
    monthly_swap: float
    goal_pct: float
    status: str
    badge: str


def layer_status(name: str, decision: Decision) -> tuple[str, str]:
    f = decision.flags
    if f.all_close:
        return "ALL CLOSE", BADGE_BAD
    if f.half:
        return "HALF", BADGE_WARN
    if name == "C" and f.signal_c:
        return "ADD SIGNAL", BADGE_OK
    if name in ("A", "B") and f.add_ab:
        return "ADD CANDIDATE", BADGE_OK
    return "HOLD", ""


def layer_rows(session: SwapSession, decision: Decision) -> List[LayerRow]:
    lb = session.last_bar()
    swap = lb.swap_per_10k if lb is not None else float("nan")
    rows = []
    for name, layer in session.layers:
        status, badge = layer_status(name, decision)
        rows.append(
            LayerRow(
                name=name,
                label=LAYER_LABELS[name],
                lots=layer.lots,
                daily_swap=daily_swap(layer.lots, swap),
                status=status,
                badge=badge,
            )
        )
    return rows


def kpi_summary(session: SwapSession, decision: Decision) -> KpiSummary:
    lb = session.last_bar()
    daily = float("nan")
    if lb is not None:
        daily = daily_swap(session.layers.total_lots, lb.swap_per_10k)
    monthly = daily * DAYS_PER_MONTH
    goal = session.params.goal_monthly_jpy or 100_000.0
    goal_pct = monthly / goal * 100.0 if math.isfinite(monthly) else float("nan")

    if decision.badge == BADGE_BAD:
        status = "STOPPED (all close)"
    elif decision.badge == BADGE_WARN:
        status = "CAUTION (half)"
    else:
        status = "NORMAL"
    return KpiSummary(daily_swap=daily, monthly_swap=monthly, goal_pct=goal_pct, status=status, badge=decision.badge)


def bars_table(session: SwapSession, n: int = 60) -> List[Bar]:
    """Most recent ``n`` bars, newest first."""
    return list(reversed(session.bars.bars()[-n:])) if n > 0 else []


def log_tail(session: SwapSession, n: int = 50) -> List[str]:
    return session.logs.tail(n)


def fmt_jpy(x: float) -> str:
    if not math.isfinite(x):
        return "-"
    return f"{round(x):,} JPY"


def render_text(session: SwapSession, decision: Decision) -> str:
    """Plain-text summary used by the CLI."""
    kpi = kpi_summary(session, decision)
    lines = [
        f"[{decision.status}] {decision.title}",
        f"  {decision.reason}",
        "",
        f"daily swap: {fmt_jpy(kpi.daily_swap)}  monthly: {fmt_jpy(kpi.monthly_swap)}"
        f"  goal: {'-' if not math.isfinite(kpi.goal_pct) else f'{kpi.goal_pct:.1f}%'}  status: {kpi.status}",
        f"pools: total={fmt_jpy(session.pools.swap_total)} defense={fmt_jpy(session.pools.defense)}"
        f" attack={fmt_jpy(session.pools.attack)}",
        "",
    ]
    for row in layer_rows(session, decision):
        lines.append(f"  {row.label:<24} lots={row.lots:>4}  swap/day={fmt_jpy(row.daily_swap):>12}  {row.status}")
    return "\n".join(lines)
