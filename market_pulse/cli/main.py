#!/usr/bin/env python3
"""Market Pulse command line interface.

Sub-commands:
    serve     Run the dashboard API with its refresh loop
    snapshot  Fetch one market snapshot and print it as JSON
    analyze   Fetch one snapshot and print AI commentary for it
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from zoneinfo import ZoneInfo

from market_pulse.commentary.prompts import CommentaryInputs, role_title
from market_pulse.commentary.service import CommentaryService
from market_pulse.config import AppConfig, load_config
from market_pulse.market.binance import BinanceMarketClient
from market_pulse.market.models import ChartMode, MarketSnapshot, TimeFrame

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the CLI.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Set specific levels for noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="market-pulse",
        description="Live BTC/gold dashboard with funding rates and AI commentary",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from config)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the dashboard API")
    serve.add_argument("--host", default=None, help="Bind address (default: from config)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: from config)")

    timeframes = [t.value for t in TimeFrame]
    snapshot = subparsers.add_parser("snapshot", help="Print one market snapshot as JSON")
    snapshot.add_argument("--timeframe", default=None, choices=timeframes)

    analyze = subparsers.add_parser("analyze", help="Print AI commentary for the current market")
    analyze.add_argument("--timeframe", default=None, choices=timeframes)
    analyze.add_argument(
        "--mode",
        default=ChartMode.COMBINED.value,
        choices=[m.value for m in ChartMode],
        help="Analyst persona (default: combined)",
    )

    return parser.parse_args(argv)


async def fetch_snapshot(config: AppConfig, timeframe: str) -> MarketSnapshot:
    async with BinanceMarketClient(
        config.api, config.market, tz=ZoneInfo(config.market.display_timezone)
    ) as client:
        return await client.fetch_snapshot(timeframe)


async def analyze(config: AppConfig, timeframe: str, mode: str) -> str:
    """Fetch one snapshot and return the commentary written for it."""
    snapshot = await fetch_snapshot(config, timeframe)
    service = CommentaryService(config.llm)
    return await service.generate(CommentaryInputs.from_snapshot(snapshot), mode)


def run_server(config: AppConfig, host: str | None, port: int | None) -> None:
    import uvicorn

    from market_pulse.api.server import create_app

    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
        log_level=config.server.log_level.lower(),
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    try:
        config = load_config()
    except ValueError as exc:
        setup_logging(args.log_level or "INFO")
        logger.error("%s", exc)
        return 1

    setup_logging(args.log_level or config.server.log_level)
    timeframe = getattr(args, "timeframe", None) or config.market.default_timeframe

    try:
        if args.command == "serve":
            logger.info("Starting Market Pulse API")
            run_server(config, args.host, args.port)
        elif args.command == "snapshot":
            snapshot = asyncio.run(fetch_snapshot(config, timeframe))
            print(json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False))
        elif args.command == "analyze":
            text = asyncio.run(analyze(config, timeframe, args.mode))
            print(f"## {role_title(args.mode)}\n")
            print(text)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
