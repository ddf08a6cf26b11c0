"""Backtest entrypoint.

Scores every race in a date-time window with the configured model and
settles the answers against the recorded results. Ground truth comes from
the configured database, or from a JSON results export with
``--results-json``.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from houndcast.backtest import Backtester
from houndcast.config import Settings, load_instruction, load_settings
from houndcast.ground_truth import DBM, InMemoryGroundTruthRepository, SqlGroundTruthRepository
from houndcast.ground_truth.repository import naive_utc
from houndcast.models import BacktestResults, OddsRange
from houndcast.scoring import ChatCompletionsClient, RequestDispatcher
from houndcast.shared.errors import ConfigError, RepositoryError, SettlementError
from houndcast.shared.logging import setup_logging_from_settings

logger = logging.getLogger("houndcast.entrypoints.backtest")

EXIT_USAGE = 2


def _datetime_arg(value: str) -> datetime:
    try:
        return naive_utc(datetime.fromisoformat(value))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid ISO date-time: {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Backtest the scoring model against historical races")
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument("--start", type=_datetime_arg, required=True, help="Window start (ISO, UTC)")
    parser.add_argument("--end", type=_datetime_arg, help="Window end (ISO, UTC); defaults to --start")
    parser.add_argument("--distances", type=int, nargs="+", required=True, help="Race distances in metres")
    parser.add_argument("--instruction", help="System prompt file; overrides requests.instruction_path")
    parser.add_argument("--balance", type=float, help="Initial balance")
    parser.add_argument("--stake", type=float, help="Fixed stake per bet")
    parser.add_argument("--odds-low", type=float, help="Lowest accepted closing odds")
    parser.add_argument("--odds-high", type=float, help="Highest accepted closing odds")
    parser.add_argument(
        "--favorite-protected",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Never lay the market favourite",
    )
    parser.add_argument("--results-json", help="JSON results export to use instead of the database")
    parser.add_argument("--output", default="backtest_results.json", help="Results JSON file")
    return parser


def _odds_range(args: argparse.Namespace, settings: Settings) -> OddsRange:
    current = settings.backtest.odds_range
    return OddsRange(
        low=current.low if args.odds_low is None else args.odds_low,
        high=current.high if args.odds_high is None else args.odds_high,
    )


def _instruction(args: argparse.Namespace, settings: Settings) -> str:
    path = args.instruction or settings.requests.instruction_path
    if not path:
        raise ConfigError("no instruction file: pass --instruction or set requests.instruction_path")
    return load_instruction(path)


async def run(args: argparse.Namespace, settings: Settings) -> BacktestResults:
    instruction = _instruction(args, settings)

    dbm: Optional[DBM] = None
    if args.results_json:
        repo = InMemoryGroundTruthRepository.from_json(args.results_json)
    else:
        dbm = DBM(settings.database)
        repo = SqlGroundTruthRepository(dbm)

    try:
        async with ChatCompletionsClient(settings.scoring) as client:
            dispatcher = RequestDispatcher(client, settings=settings.dispatch)
            backtester = Backtester(repo, dispatcher, settings, instruction)
            return await backtester.run(
                args.start,
                args.end or args.start,
                args.distances,
                initial_balance=args.balance,
                fixed_stake=args.stake,
                odds_range=_odds_range(args, settings),
                favorite_protected=args.favorite_protected,
            )
    finally:
        if dbm is not None:
            await dbm.dispose()


def write_results(results: BacktestResults, output: str) -> Path:
    path = Path(output)
    if path.parent != Path("."):
        path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(results.to_dict(), f, indent=2, ensure_ascii=False)
    logger.info({"event": "results_written", "path": str(path)})
    return path


def main(argv: Optional[List[str]] = None) -> int:
    if os.environ.get("HOUNDCAST_TEST_MODE") != "true":
        load_dotenv()

    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args.config)
        setup_logging_from_settings(settings.logging)
        results = asyncio.run(run(args, settings))
    except (ConfigError, SettlementError, RepositoryError) as exc:
        print(f"houndcast-backtest: {exc}", file=sys.stderr)
        return EXIT_USAGE

    write_results(results, args.output)
    meta = results.meta
    logger.info(
        {
            "event": "backtest_done",
            "races_tracked": meta.race_count.races_tracked,
            "final_balance": meta.balance.final_balance,
            "percentage": meta.percentage,
        }
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
