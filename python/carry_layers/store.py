"""JSON persistence of the full session state.

Shape: ``{params, layers, pools, bars, logs}`` using the persisted key names
(camelCase params, ``lots10k``, ``swapTotalJPY`` ...). A blob missing any of
``params`` / ``layers`` / ``pools`` restores as the default state.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path

from .config import RiskParams
from .data_provider import make_bar, parse_date
from .ledger import Layer, Layers
from .pools import Pools
from .session import SwapSession, default_layers
from .types import InvalidInputError

log = logging.getLogger(__name__)

REQUIRED_KEYS = ("params", "layers", "pools")


def default_state() -> SwapSession:
    return SwapSession(params=RiskParams(), layers=default_layers(), pools=Pools())


def _layer_to_dict(layer: Layer, with_halted: bool) -> dict:
    d = {
        "lots10k": int(layer.lots),
        "lastAddDate": layer.last_add_date.isoformat() if layer.last_add_date else None,
    }
    if with_halted:
        d["halted"] = bool(layer.halted)
    return d


def _layer_from_dict(d) -> Layer:
    d = d or {}
    if not isinstance(d, dict):
        raise TypeError(f"layer entry must be an object, got {type(d).__name__}")
    return Layer(
        lots=max(0, int(d.get("lots10k", 0) or 0)),
        last_add_date=parse_date(d["lastAddDate"]) if d.get("lastAddDate") else None,
        halted=bool(d.get("halted", False)),
    )


def _pool_value(pools_d: dict, key: str) -> float:
    v = float(pools_d.get(key, 0.0))
    if not math.isfinite(v):
        raise ValueError(f"{key} is not finite: {v}")
    return v


def state_to_dict(session: SwapSession) -> dict:
    return {
        "params": session.params.to_params_dict(),
        "layers": {
            "A": _layer_to_dict(session.layers.a, with_halted=False),
            "B": _layer_to_dict(session.layers.b, with_halted=False),
            "C": _layer_to_dict(session.layers.c, with_halted=True),
        },
        "pools": {
            "swapTotalJPY": session.pools.swap_total,
            "defenseJPY": session.pools.defense,
            "attackJPY": session.pools.attack,
        },
        "bars": [
            {
                "date": b.date.isoformat(),
                "open": b.open,
                "high": b.high,
                "low": b.low,
                "close": b.close,
                "swapPer10k": b.swap_per_10k,
            }
            for b in session.bars.bars()
        ],
        "logs": list(session.logs.entries),
    }


def state_from_dict(d: dict) -> SwapSession:
    """Rebuild a session. Falls back to the default state on a missing top-level key."""
    if not isinstance(d, dict) or any(d.get(k) is None for k in REQUIRED_KEYS):
        log.warning("state blob missing one of %s; using defaults", REQUIRED_KEYS)
        return default_state()

    try:
        if not isinstance(d["params"], dict):
            raise InvalidInputError("params", "must be an object")
        params = RiskParams.from_params_dict(d["params"])
    except InvalidInputError as e:
        log.warning("stored params invalid (%s); using default params", e)
        params = RiskParams()

    layers_d, pools_d = d["layers"], d["pools"]
    try:
        if not isinstance(layers_d, dict) or not isinstance(pools_d, dict):
            raise TypeError("layers and pools must be objects")
        layers = Layers(
            a=_layer_from_dict(layers_d.get("A")),
            b=_layer_from_dict(layers_d.get("B")),
            c=_layer_from_dict(layers_d.get("C")),
        )
        pools = Pools(
            swap_total=_pool_value(pools_d, "swapTotalJPY"),
            defense=_pool_value(pools_d, "defenseJPY"),
            attack=_pool_value(pools_d, "attackJPY"),
        )
    except (TypeError, ValueError) as e:
        log.warning("stored layers/pools malformed (%s); using defaults", e)
        return default_state()

    bars = []
    for b in d.get("bars") or []:
        try:
            bars.append(make_bar(b["date"], b["open"], b["high"], b["low"], b["close"], b["swapPer10k"]))
        except (KeyError, TypeError, InvalidInputError) as e:
            log.warning("dropping stored bar %r: %s", b, e)

    logs = d.get("logs")
    if not isinstance(logs, list):
        logs = []

    return SwapSession(params=params, layers=layers, pools=pools, bars=bars, logs=logs)


def export_state(session: SwapSession) -> str:
    """Pretty-printed JSON of the full state."""
    return json.dumps(state_to_dict(session), ensure_ascii=False, indent=2)


def import_state(text: str) -> SwapSession:
    """Parse an exported blob. Raises ValueError on broken JSON."""
    try:
        d = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid state JSON: {e}") from e
    return state_from_dict(d)


def load_state(path: str | Path) -> SwapSession:
    """Load from ``path``; a missing or unreadable file gives the default state."""
    p = Path(path)
    if not p.exists():
        log.info("no state file at %s; starting from defaults", p)
        return default_state()
    try:
        return import_state(p.read_text(encoding="utf-8"))
    except (TypeError, ValueError) as e:
        log.warning("could not read %s (%s); starting from defaults", p, e)
        return default_state()


def save_state(session: SwapSession, path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(export_state(session), encoding="utf-8")
    log.info("state saved to %s", p)
    return p
