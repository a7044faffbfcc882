"""Command-line entry point.

Usage:
    python -m dex_trade_aggregator init-db
    python -m dex_trade_aggregator replay events.jsonl

``replay`` reads one decoded log envelope per line (``event``, ``args``,
``transactionHash``, ``logIndex``) and applies them in file order.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any, TextIO

from dex_trade_aggregator.aggregation.errors import AggregatorError
from dex_trade_aggregator.config import Settings, get_settings
from dex_trade_aggregator.pipeline import EventPipeline

logger = logging.getLogger("dex_trade_aggregator")


def _read_envelopes(stream: TextIO) -> Iterator[dict[str, Any]]:
    for line_no, line in enumerate(stream, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            yield json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError(f"line {line_no}: invalid JSON: {e}") from e


async def _init_db(settings: Settings) -> None:
    pipeline = EventPipeline.from_settings(settings)
    async with pipeline:
        if pipeline.db_manager is None:
            raise RuntimeError("init-db requires a database backend")
        await pipeline.db_manager.init_schema()


async def _replay(settings: Settings, source: str) -> int:
    async with EventPipeline.from_settings(settings) as pipeline:
        if source == "-":
            stats = await pipeline.replay(_read_envelopes(sys.stdin))
        else:
            with Path(source).open(encoding="utf-8") as fh:
                stats = await pipeline.replay(_read_envelopes(fh))
    logger.info(
        "Replay complete: processed=%d ignored=%d trades=%d last_event=%s",
        stats.events_processed,
        stats.events_ignored,
        stats.trades_aggregated,
        stats.last_event_id,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dex-trade-aggregator")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init-db", help="Create database tables")
    replay = sub.add_parser("replay", help="Apply decoded log events from a JSON-lines file")
    replay.add_argument("source", help="Path to a .jsonl file, or '-' for stdin")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.get_logging_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting %s with %s", args.command, settings.redacted_summary())

    try:
        settings.validate_requirements(command=args.command)
        if args.command == "init-db":
            asyncio.run(_init_db(settings))
            return 0
        return asyncio.run(_replay(settings, args.source))
    except (AggregatorError, OSError, ValueError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
