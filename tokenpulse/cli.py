"""Command line entry point: ``python -m tokenpulse``."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Sequence

from .aggregator import PUMPFUN_KINDS, ProtocolAggregator
from .api import create_app, run_async
from .config import Settings, load_settings
from .http import dumps
from .logging_utils import setup_logging

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tokenpulse", description="Aggregate memecoin token lists")
    parser.add_argument("--config", default=None, help="Path to a YAML or TOML configuration file")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    sub = parser.add_subparsers(dest="command", required=True)

    tokens = sub.add_parser("tokens", help="List tokens for one or more protocols")
    tokens.add_argument("protocols", nargs="+", help="Protocol names, e.g. pump raydium moonit")
    tokens.add_argument("--status", default=None, help="new, finalStretch or migrated")
    tokens.add_argument("--limit", type=int, default=None, help="Maximum number of tokens to print")

    token = sub.add_parser("token", help="Show details for a single token")
    token.add_argument("address")
    token.add_argument("--chain", default="solana")

    pump = sub.add_parser("pump", help="List a pump.fun board")
    pump.add_argument("kind", nargs="?", default="latest", choices=PUMPFUN_KINDS)
    pump.add_argument("--limit", type=int, default=50)

    sub.add_parser("stats", help="Show launchpad statistics")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1", help="Bind host")
    serve.add_argument("--port", type=int, default=5000, help="Bind port")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(list(argv) if argv is not None else None)


def _emit(payload: Any) -> None:
    sys.stdout.write(dumps(payload, pretty=True).decode())
    sys.stdout.write("\n")


def run_from_args(args: argparse.Namespace, settings: Settings) -> int:
    aggregator = ProtocolAggregator.from_settings(settings)

    if args.command == "serve":
        app = create_app(aggregator)
        log.info("serving on %s:%s", args.host, args.port)
        try:
            app.run(host=args.host, port=args.port, threaded=True)
        finally:
            app.config["LOOP_RUNNER"].close()
        return 0

    if args.command == "tokens":
        tokens = run_async(lambda: aggregator.fetch_tokens_by_protocols(args.protocols, args.status))
        if args.limit:
            tokens = tokens[: args.limit]
        _emit([t.as_dict() for t in tokens])
        return 0

    if args.command == "token":
        details = run_async(lambda: aggregator.fetch_token_details(args.chain, args.address))
        _emit(details.as_dict())
        return 0 if details.found else 1

    if args.command == "pump":
        tokens = run_async(lambda: aggregator.fetch_pumpfun_tokens(args.kind, args.limit))
        _emit([t.as_dict() for t in tokens])
        return 0

    if args.command == "stats":
        stats = run_async(aggregator.fetch_launchpad_stats)
        if stats is None:
            log.error("launchpad stats unavailable")
            return 1
        _emit(stats)
        return 0

    raise ValueError(f"unknown command: {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(args.config)
    except ValueError as exc:
        setup_logging()
        log.error("%s", exc)
        return 2
    setup_logging(level=args.log_level or settings.log_level, json_logs=args.json_logs or settings.log_json)
    try:
        return run_from_args(args, settings)
    except ValueError as exc:
        log.error("%s", exc)
        return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
