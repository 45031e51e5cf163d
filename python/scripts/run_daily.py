from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from carry_layers.data_provider import CsvBarProvider, make_bar
from carry_layers.report import log_tail, render_text
from carry_layers.store import export_state, load_state, save_state
from carry_layers.types import InvalidInputError


def main():
    p = argparse.ArgumentParser(description="MXN/JPY swap carry 3-layer daily decision.")
    p.add_argument("--state", type=str, default="carry_state.json", help="JSON state file (created if missing).")
    p.add_argument("--bar", nargs=6, metavar=("DATE", "OPEN", "HIGH", "LOW", "CLOSE", "SWAP"), default=None,
                   help="Add or update one daily bar (swap is JPY per 10k lot).")
    p.add_argument("--paste", type=str, default=None, help="Text file of pasted bar lines (tab/comma/space separated).")
    p.add_argument("--csv", type=str, default=None, help="CSV with Date,Open,High,Low,Close,Swap columns.")
    p.add_argument("--params", type=str, default=None, help="JSON file of camelCase params to save (e.g. atrAll).")
    p.add_argument("--action", choices=["all-close", "half", "add-ab", "ack-c"], default=None,
                   help="Apply an action at the latest bar date.")
    p.add_argument("--export", type=str, default=None, help="Write the full state JSON to this path.")
    p.add_argument("--log_tail", type=int, default=10, help="Audit log lines to print.")
    p.add_argument("--verbose", action="store_true")
    args = p.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    session = load_state(args.state)

    try:
        if args.params:
            session.save_params(json.loads(Path(args.params).read_text(encoding="utf-8")))
        if args.bar:
            session.upsert_bar(make_bar(*args.bar))
    except InvalidInputError as e:
        print(f"rejected: {e}", file=sys.stderr)
        return 2

    if args.paste:
        session.import_text(Path(args.paste).read_text(encoding="utf-8"))
    if args.csv:
        for bar in CsvBarProvider().fetch(args.csv):
            session.upsert_bar(bar)

    if args.action == "all-close":
        session.all_close()
    elif args.action == "half":
        session.half()
    elif args.action == "add-ab":
        if not session.add_ab():
            print("A/B add not applied (conditions not met or max lots reached).", file=sys.stderr)
    elif args.action == "ack-c":
        if not session.acknowledge_c():
            print("No C add signal today.", file=sys.stderr)

    save_state(session, args.state)
    if args.export:
        Path(args.export).write_text(export_state(session), encoding="utf-8")
        print(args.export)

    print(render_text(session, session.evaluate()))
    for line in log_tail(session, args.log_tail):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
