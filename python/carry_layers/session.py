"""Caller-owned session: bars, params, layers, pools and the audit log.

The session is the single mutable state object. Every public action either
completes fully or leaves the state untouched.

Daily flow:
- ``upsert_bar`` stores the bar and accrues swap (new dates only)
- ``evaluate`` returns today's Decision
- the caller applies one of ``all_close`` / ``half`` / ``add_ab`` / ``acknowledge_c``
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

from .config import IndicatorConfig, RiskParams
from .data_manager import BarSeries
from .data_provider import make_bar, parse_bar_text, safe_float
from .engine import decide
from .ledger import (
    AuditLog,
    Layer,
    Layers,
    acknowledge_signal_c,
    apply_add_ab,
    apply_all_close,
    apply_half,
)
from .pools import Pools, accrue_swap
from .types import Bar, Decision, InvalidInputError

log = logging.getLogger(__name__)


def default_layers() -> Layers:
    return Layers(a=Layer(lots=15), b=Layer(lots=0), c=Layer(lots=0))


class SwapSession:
    """Three-layer swap carry book for one currency pair."""

    def __init__(
        self,
        params: Optional[RiskParams] = None,
        layers: Optional[Layers] = None,
        pools: Optional[Pools] = None,
        bars: Iterable[Bar] = (),
        logs: Iterable[str] = (),
        ind_cfg: IndicatorConfig = IndicatorConfig(),
    ):
        self.params = params if params is not None else RiskParams()
        self.layers = layers if layers is not None else default_layers()
        self.pools = pools if pools is not None else Pools()
        self.bars = BarSeries(bars, ind_cfg=ind_cfg)
        self.logs = AuditLog(list(logs))

    # ---------- bars ----------

    def upsert_bar(self, bar: Bar) -> bool:
        """Store ``bar`` and accrue that day's swap if the date is new.

        Returns True for a new date. Overwriting an existing date never accrues.
        Raises InvalidInputError, with nothing changed, for a malformed bar.
        """
        try:
            bar = make_bar(bar.date, bar.open, bar.high, bar.low, bar.close, bar.swap_per_10k)
        except InvalidInputError as e:
            log.warning("rejected bar %s: %s", bar.date, e)
            raise
        is_new_date = bar.date not in self.bars
        self.bars.upsert(bar)
        self.logs.add(
            f"[{bar.date}] BAR {'ADD' if is_new_date else 'UPDATE'}: O={bar.open} H={bar.high}"
            f" L={bar.low} C={bar.close} SW={bar.swap_per_10k}"
        )
        accrue_swap(self.pools, self.layers, bar, self.logs, is_new_date=is_new_date)
        log.info("bar %s %s", bar.date, "added" if is_new_date else "updated")
        return is_new_date

    def import_text(self, text: str) -> int:
        """Bulk import of pasted ``date,open,high,low,close,swap`` lines.

        Malformed lines are skipped. Returns the number of bars processed.
        """
        imported = 0
        for bar in parse_bar_text(text):
            is_new_date = bar.date not in self.bars
            self.bars.upsert(bar)
            self.logs.add(f"[{bar.date}] BAR {'ADD' if is_new_date else 'UPDATE'} (bulk)")
            if is_new_date:
                accrue_swap(self.pools, self.layers, bar, self.logs, is_new_date=True)
            imported += 1
        self.logs.add(f"[IMPORT] CSV import: {imported} lines processed")
        log.info("imported %d bars", imported)
        return imported

    def last_bar(self) -> Optional[Bar]:
        return self.bars.last_bar()

    def copy_previous(self) -> Optional[Bar]:
        """Last bar, for pre-filling tomorrow's entry form."""
        lb = self.bars.last_bar()
        if lb is not None:
            self.logs.add(f"[UI] copy previous: {lb.date}")
        return lb

    # ---------- params ----------

    def save_params(self, raw: dict) -> RiskParams:
        """Replace params from camelCase form values. Nothing changes on invalid input."""
        merged = self.params.to_params_dict()
        for key in merged:
            if key not in raw:
                continue
            v = safe_float(raw[key])
            if not math.isfinite(v):
                log.warning("rejected param %s=%r", key, raw[key])
                raise InvalidInputError(key, f"not a finite number: {raw[key]!r}")
            merged[key] = v
        self.params = RiskParams.from_params_dict(merged)
        self.logs.add("[UI] Params saved")
        return self.params

    # ---------- decisions & actions ----------

    def evaluate(self) -> Decision:
        return decide(self.params, self.layers, self.pools, self.bars.latest_metrics())

    def _action_date(self):
        lb = self.bars.last_bar()
        return lb.date if lb is not None else None

    def all_close(self) -> None:
        apply_all_close(self.layers, self._action_date(), self.logs)
        log.info("all layers closed")

    def half(self) -> None:
        apply_half(self.layers, self._action_date(), self.logs)
        log.info("layers halved: A=%d B=%d C=%d", self.layers.a.lots, self.layers.b.lots, self.layers.c.lots)

    def add_ab(self) -> bool:
        """Add to A/B. Refused unless today's decision flags an A/B add."""
        dec = self.evaluate()
        if not dec.flags.add_ab or dec.metrics is None:
            log.warning("A/B add refused: conditions not met (%s)", dec.status)
            return False
        ok = apply_add_ab(self.layers, self.params, dec.metrics.close, dec.metrics.date, self.logs)
        if not ok:
            log.warning("A/B add refused: max lots reached")
        return ok

    def acknowledge_c(self) -> bool:
        """Record a manual C add. Refused unless the C signal is on."""
        dec = self.evaluate()
        if not dec.flags.signal_c:
            log.warning("C acknowledge refused: no C signal")
            return False
        acknowledge_signal_c(self.layers, self._action_date(), self.logs)
        return True
