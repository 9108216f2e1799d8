# src/tickbus/cli.py
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import List, Optional

from tickbus.core import log
from tickbus.core.clock import DEFAULT_INTERVAL
from tickbus.core.contracts import FailurePolicy, TickbusError
from tickbus.core.metrics import start_exporter, stop_exporter
from tickbus.host import Host
from tickbus.variants import simple
from tickbus.variants.mediatr import MediatorTickerService, build_mediator
from tickbus.variants.service import TickerBackgroundService, TickerService
from tickbus.wire_config import build_from_yaml


def _non_negative_int(text: str) -> int:
    n = int(text)
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tickbus", description="In-process notification demos.")
    p.add_argument("--log-level", default=None, help="overrides LOG_LEVEL")
    p.add_argument("--log-json", action="store_true", default=None, help="JSON log lines (LOG_JSON=1)")
    p.add_argument("--metrics-interval", type=float, default=None,
                   help="log a metrics snapshot every N seconds (0 = off; default METRICS_INTERVAL)")
    sub = p.add_subparsers(dest="variant", required=True)

    s = sub.add_parser("simple", help="raw events: echo key presses read from stdin")
    s.add_argument("--presses", type=int, default=simple.DEFAULT_PRESSES)

    for name, help_ in (("service", "singleton service with hard-wired subscribers"),
                        ("mediatr", "mediator with per-publish handler resolution")):
        t = sub.add_parser(name, help=help_)
        t.add_argument("--interval", type=float, default=DEFAULT_INTERVAL, help="seconds between ticks")
        t.add_argument("--max-ticks", type=_non_negative_int, default=None, help="stop after N ticks (default: run until signalled)")
        t.add_argument("--policy", choices=[x.value for x in FailurePolicy], default=FailurePolicy.PROPAGATE.value)
        if name == "mediatr":
            t.add_argument("--wiring", default=None, help="YAML wiring file (services + handlers)")
    return p


def _build_host(args: argparse.Namespace) -> Host:
    if args.variant == "service":
        svc = TickerBackgroundService(
            TickerService(), interval=args.interval, policy=args.policy, max_ticks=args.max_ticks,
        )
    else:
        mediator = build_from_yaml(args.wiring) if args.wiring else build_mediator(policy=args.policy)
        svc = MediatorTickerService(mediator, interval=args.interval, policy=args.policy, max_ticks=args.max_ticks)
    return Host([svc])


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log.setup(args.log_level, args.log_json, force=True)
    lg = log.get("cli")

    # resolved after setup so a value from .env is seen
    metrics_interval = args.metrics_interval
    if metrics_interval is None:
        metrics_interval = float(os.getenv("METRICS_INTERVAL", "0"))
    if metrics_interval > 0:
        start_exporter(interval_sec=metrics_interval)
    try:
        if args.variant == "simple":
            simple.run(presses=args.presses)
        else:
            asyncio.run(_build_host(args).run())
    except TickbusError as e:
        lg.error("%s", e)
        return 2
    except KeyboardInterrupt:
        return 130
    finally:
        stop_exporter()
    return 0


if __name__ == "__main__":
    sys.exit(main())
