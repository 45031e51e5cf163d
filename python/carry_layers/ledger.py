"""Position ledger for the three layers.

A: principal, B: defense compounding, C: attack (funded by the swap pool).
Lots are whole 10k-unit counts and never go negative. Each successful
operation appends exactly one audit line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterator, List, Optional, Tuple, Union

from .config import RiskParams
from .sizing import max_lots_ab

LAYER_NAMES = ("A", "B", "C")
LOG_CAP = 2000

DateLike = Union[date, str, None]


@dataclass
class Layer:
    lots: int = 0  # 10k units
    last_add_date: Optional[date] = None  # cooldown anchor
    halted: bool = False  # reserved for C; no rule sets it yet


@dataclass
class Layers:
    a: Layer = field(default_factory=Layer)
    b: Layer = field(default_factory=Layer)
    c: Layer = field(default_factory=Layer)

    def __iter__(self) -> Iterator[Tuple[str, Layer]]:
        return iter(zip(LAYER_NAMES, (self.a, self.b, self.c)))

    def get(self, name: str) -> Layer:
        return {"A": self.a, "B": self.b, "C": self.c}[name.upper()]

    @property
    def total_lots(self) -> int:
        return self.a.lots + self.b.lots + self.c.lots


class AuditLog:
    """Append-only audit trail, capped to the most recent ``cap`` lines."""

    def __init__(self, entries: Optional[List[str]] = None, cap: int = LOG_CAP):
        self.cap = int(cap)
        self.entries: List[str] = list(entries or [])[-self.cap:]

    def __len__(self) -> int:
        return len(self.entries)

    def add(self, msg: str) -> str:
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        line = f"{stamp}  {msg}"
        self.entries.append(line)
        if len(self.entries) > self.cap:
            self.entries = self.entries[-self.cap:]
        return line

    def tail(self, n: int = 50) -> List[str]:
        return self.entries[-n:] if n > 0 else []


def _label(d: DateLike) -> str:
    return "N/A" if d is None else str(d)


def apply_all_close(layers: Layers, d: DateLike, log: AuditLog) -> None:
    """Zero every layer and clear every cooldown anchor."""
    a, b, c = layers.a.lots, layers.b.lots, layers.c.lots
    for _, layer in layers:
        layer.lots = 0
        layer.last_add_date = None
    log.add(f"[{_label(d)}] ALL_CLOSE: A={a} B={b} C={c} -> 0")


def apply_half(layers: Layers, d: DateLike, log: AuditLog) -> None:
    """Floor-halve each layer independently; cooldowns are left alone."""
    before = [layer.lots for _, layer in layers]
    for _, layer in layers:
        layer.lots = layer.lots // 2
    a0, b0, c0 = before
    log.add(
        f"[{_label(d)}] HALF: A {a0}->{layers.a.lots}, B {b0}->{layers.b.lots}, C {c0}->{layers.c.lots}"
    )


def apply_add_ab(layers: Layers, params: RiskParams, close: float, d: date, log: AuditLog) -> bool:
    """Add one lot each to A and B, capped by the A+B max lots at ``close``.

    When only one lot fits, A gets it and B gets nothing; both cooldowns still
    restart. Returns False (and changes nothing) when no lot fits.
    """
    max_lots = max_lots_ab(params, close)
    cur = layers.a.lots + layers.b.lots
    if max_lots <= cur:
        return False

    add_a, add_b = 1, 1
    if cur + add_a + add_b > max_lots:
        # NOTE: this lets A outgrow B over many capped cycles.
        add_b = 0
        if cur + add_a > max_lots:
            return False

    layers.a.lots += add_a
    layers.b.lots += add_b
    layers.a.last_add_date = d
    layers.b.last_add_date = d
    log.add(f"[{_label(d)}] ADD_AB: +A={add_a}, +B={add_b} (maxLots={max_lots}, before={cur})")
    return True


def acknowledge_signal_c(layers: Layers, d: date, log: AuditLog) -> None:
    """Record that the C signal was acted on. C trades are manual, so lots are not touched."""
    layers.c.last_add_date = d
    log.add(f"[{_label(d)}] SIGNAL_C acknowledged (manual trade executed outside the engine)")
