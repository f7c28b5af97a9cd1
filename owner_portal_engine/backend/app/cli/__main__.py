# backend/app/cli/__main__.py
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from app.domain.errors import ValidationError
from app.logging_config import configure_logging
from app.runtime import Runtime, build_runtime
from app.services.owner_statements import owner_statement
from app.services.record_store import known_properties


async def _property_ids(rt: Runtime, given: list[str] | None) -> list[str]:
    if given:
        return [str(p) for p in given]
    return [str(p["id"]) for p in await known_properties(rt.store)]


async def _run(rt: Runtime, args: argparse.Namespace) -> dict[str, Any]:
    if args.cmd == "overview":
        ov = await rt.portfolio.overview(await _property_ids(rt, args.property), args.month)
        return ov.to_dict()

    if args.cmd == "trends":
        tr = await rt.portfolio.trends(await _property_ids(rt, args.property), args.months)
        return tr.to_dict()

    if args.cmd == "dashboard":
        return (await rt.compliance.dashboard()).to_dict()

    if args.cmd == "status":
        return (await rt.compliance.status(args.property)).to_dict()

    if args.cmd == "reservations":
        start = args.start or rt.settings.full_range_start
        end = args.end or rt.settings.full_range_end
        return (await rt.reconciler.reconcile(args.property, start, end)).to_dict()

    if args.cmd == "statement":
        res = await owner_statement(
            rt.secondary,
            rt.store,
            args.property,
            args.start,
            args.end,
            args.rate,
            settings=rt.settings,
        )
        return res.to_dict()

    raise SystemExit(f"unknown command: {args.cmd}")


async def _main(args: argparse.Namespace) -> dict[str, Any]:
    rt = await build_runtime()
    try:
        return await _run(rt, args)
    finally:
        await rt.aclose()


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m app.cli")
    sub = p.add_subparsers(dest="cmd", required=True)

    ov = sub.add_parser("overview", help="portfolio overview for one month")
    ov.add_argument("--month", required=True, help="YYYY-MM")
    ov.add_argument("--property", action="append", help="repeatable; default: every known property")

    tr = sub.add_parser("trends", help="portfolio trends across months")
    tr.add_argument("--months", nargs="+", required=True, help="YYYY-MM ...")
    tr.add_argument("--property", action="append")

    sub.add_parser("dashboard", help="compliance dashboard for every known property")

    st = sub.add_parser("status", help="compliance status for one property")
    st.add_argument("--property", required=True)

    rs = sub.add_parser("reservations", help="reconciled reservations for one property")
    rs.add_argument("--property", required=True)
    rs.add_argument("--start")
    rs.add_argument("--end")

    sm = sub.add_parser("statement", help="owner statement for one property")
    sm.add_argument("--property", required=True)
    sm.add_argument("--start", required=True)
    sm.add_argument("--end", required=True)
    sm.add_argument("--rate", type=float, default=None, help="0.25 or 25")

    args = p.parse_args()

    configure_logging()
    try:
        out = asyncio.run(_main(args))
    except ValidationError as e:
        print(json.dumps({"ok": False, "errors": e.errors}, indent=2))
        sys.exit(2)

    print(json.dumps(out, indent=2, default=str))


if __name__ == "__main__":
    main()
