"""Swap income pools.

Daily swap on all held lots is split 50/50 into the defense and attack
pools. Pool balances are lifetime-cumulative: closing lots stops future
accrual but never claws back what was already credited.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .ledger import AuditLog, Layers
from .types import Bar

DEFENSE_SHARE = 0.5
ATTACK_SHARE = 0.5


@dataclass
class Pools:
    swap_total: float = 0.0  # JPY, unsplit
    defense: float = 0.0
    attack: float = 0.0


def daily_swap(total_lots: int, swap_per_10k: float) -> float:
    """Swap (JPY) for one day on ``total_lots`` 10k-unit lots."""
    return float(total_lots) * float(swap_per_10k)


def accrue_swap(pools: Pools, layers: Layers, bar: Bar, log: AuditLog, is_new_date: bool) -> Optional[float]:
    """Credit one day of swap using the lots held right now.

    Must run before any same-day ledger action. ``is_new_date`` must be False
    when the bar overwrote an existing date; the accrual is then skipped so a
    correction never double counts. Returns the daily amount, or None if skipped.
    """
    if not is_new_date:
        log.add(f"[{bar.date}] SWAP_ACCRUE skipped (date overwrite); adjust pools via export/import if needed")
        return None

    total_lots = layers.total_lots
    daily = daily_swap(total_lots, bar.swap_per_10k)
    add_defense = daily * DEFENSE_SHARE
    add_attack = daily * ATTACK_SHARE

    pools.swap_total += daily
    pools.defense += add_defense
    pools.attack += add_attack

    log.add(
        f"[{bar.date}] SWAP_ACCRUE: total={round(daily)} / defense+={round(add_defense)} / attack+={round(add_attack)}"
        f" (lots10k={total_lots}, swap/10k={bar.swap_per_10k})"
    )
    return daily
