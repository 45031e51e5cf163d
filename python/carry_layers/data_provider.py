"""Raw bar input: manual fields, pasted text and CSV files.

Everything here validates before a ``Bar`` is built, so the session never
sees a non-finite price or a malformed date.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .types import Bar, InvalidInputError

log = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^(\d{4})[-/]?(\d{2})[-/]?(\d{2})$")

BAR_FIELDS = ("open", "high", "low", "close", "swap_per_10k")


def parse_date(s) -> Optional[date]:
    """Parse YYYY-MM-DD, YYYY/MM/DD or YYYYMMDD. Returns None if not a real calendar date."""
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    m = _DATE_RE.match(str(s if s is not None else "").strip())
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def safe_float(x) -> float:
    """Float from user text (thousands separators allowed); NaN when unparsable."""
    try:
        v = float(str(x).replace(",", "").strip())
    except (TypeError, ValueError):
        return float("nan")
    return v if math.isfinite(v) else float("nan")


def make_bar(d, open_, high, low, close, swap_per_10k) -> Bar:
    """Validate raw fields and build a Bar. Raises InvalidInputError naming the bad field."""
    day = parse_date(d)
    if day is None:
        raise InvalidInputError("date", f"invalid date {d!r} (expected YYYY-MM-DD)")

    values = {}
    for name, raw in zip(BAR_FIELDS, (open_, high, low, close, swap_per_10k)):
        v = safe_float(raw)
        if not math.isfinite(v):
            raise InvalidInputError(name, f"not a finite number: {raw!r}")
        values[name] = v

    for name in ("open", "high", "low", "close"):
        if values[name] <= 0:
            raise InvalidInputError(name, f"price must be positive: {values[name]}")
    if values["high"] < values["low"]:
        raise InvalidInputError("high", f"high {values['high']} is below low {values['low']}")

    return Bar(date=day, **values)


def split_smart(line: str) -> List[str]:
    """Split on tabs, else commas, else whitespace."""
    s = str(line).strip()
    if not s:
        return []
    if "\t" in s:
        return [x.strip() for x in s.split("\t")]
    if "," in s:
        return [x.strip() for x in s.split(",")]
    return s.split()


def parse_bar_line(line: str) -> Optional[Bar]:
    """One pasted line ``date,open,high,low,close,swap``; None when malformed."""
    parts = split_smart(line)
    if len(parts) < 6:
        return None
    try:
        return make_bar(*parts[:6])
    except InvalidInputError as e:
        log.debug("skipping line %r: %s", line, e)
        return None


def parse_bar_text(text: str) -> List[Bar]:
    """Parse pasted multi-line text. Malformed lines (headers included) are skipped."""
    bars = []
    for line in (text or "").splitlines():
        bar = parse_bar_line(line)
        if bar is not None:
            bars.append(bar)
    return bars


class CsvBarProvider:
    """Load bars from a CSV file with Date, Open, High, Low, Close, Swap columns."""

    def fetch(self, csv_path: str | Path, datetime_col: str = "Date") -> List[Bar]:
        path = Path(csv_path)
        if not path.exists():
            raise FileNotFoundError(str(path))

        df = pd.read_csv(path, dtype=str)
        cols = {c.strip().lower(): c for c in df.columns}
        date_col = cols.get(datetime_col.lower()) or cols.get("datetime") or cols.get("time")
        swap_col = cols.get("swap") or cols.get("swapper10k") or cols.get("swap_per_10k")
        picked = [cols.get(k) for k in ("open", "high", "low", "close")]
        if date_col is None or swap_col is None or not all(picked):
            raise ValueError("CSV must contain Date, Open, High, Low, Close and Swap columns.")

        bars = []
        for _, row in df.iterrows():
            try:
                bars.append(make_bar(row[date_col], *(row[c] for c in picked), row[swap_col]))
            except InvalidInputError as e:
                log.warning("%s: skipping row %s: %s", path.name, row.to_dict(), e)
        return bars
