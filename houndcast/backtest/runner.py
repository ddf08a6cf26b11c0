"""Run a backtest of the scoring model over historical races.

Pipeline:
1. Collect races run in a date-time window at the requested distances
2. Attach each runner's last five races as form
3. Build chat requests and dispatch them to the scoring service
4. Settle the accepted answers against the recorded results

Usage:
    houndcast-backtest --start 2025-06-01T00:00 --end 2025-06-07T23:59 \\
        --distances 480 500 --output results.json
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from houndcast.config import Settings
from houndcast.ground_truth.repository import GroundTruthRepository, DEFAULT_FORM_SIZE
from houndcast.models import BacktestResults, CompetitorRecord, OddsRange
from houndcast.scoring.dispatcher import RequestDispatcher
from houndcast.scoring.requests import build_requests

from .settlement import MAX_FIELD_SIZE, MIN_FIELD_SIZE, SettlementEngine, check_parameters

logger = logging.getLogger(__name__)


def winners_time(entries: Sequence[CompetitorRecord]) -> float:
    """Fastest recorded run time of a race, 0.0 when none was recorded."""
    times = [e.result_run_time for e in entries if e.result_run_time is not None]
    return min(times) if times else 0.0


def form_entry(run: CompetitorRecord, race_winners_time: float) -> Dict[str, Any]:
    return {
        "btnDistance": run.result_btn_distance,
        "resultRunTime": run.result_run_time,
        "resultDogWeight": run.result_dog_weight,
        "raceComment": run.result_comment,
        "raceWinnersTime": race_winners_time,
        "goingType": run.race_going,
        "raceClass": run.race_class,
        "trap": run.trap_number,
        "sectionalTime": run.result_sectional_time,
        "resultPosition": run.finish_position,
        "distance": run.distance,
    }


class Backtester:
    """Collect races, score them and settle the answers.

    The repository supplies both the prompt material (race fields and form)
    and the results used for settlement.
    """

    def __init__(
        self,
        repo: GroundTruthRepository,
        dispatcher: RequestDispatcher,
        settings: Settings,
        instruction: str,
        *,
        engine: Optional[SettlementEngine] = None,
    ) -> None:
        self.repo = repo
        self.dispatcher = dispatcher
        self.settings = settings
        self.instruction = instruction
        self.engine = engine or SettlementEngine()
        self._winners_times: Dict[int, float] = {}

    async def collect_races(
        self,
        start: datetime,
        end: datetime,
        distances: Sequence[int],
    ) -> List[Dict[str, Any]]:
        """Race documents for the window, earliest first.

        Collection stops at ``max_races`` or ``max_request_defence``,
        whichever is lower.
        """
        cfg = self.settings.requests
        limit = min(cfg.max_races, cfg.max_request_defence)
        race_ids = await self.repo.race_ids_between(start, end, distances)
        total = len(race_ids)
        logger.info({"event": "races_found", "count": total, "limit": limit})

        races: List[Dict[str, Any]] = []
        for idx, race_id in enumerate(race_ids, start=1):
            logger.debug({"event": "collect_race", "position": f"{idx}/{total}", "race_id": race_id})
            entries = await self.repo.race_entries(race_id)
            if not entries:
                continue
            if not MIN_FIELD_SIZE <= len(entries) <= MAX_FIELD_SIZE:
                logger.info({"event": "race_skipped_field_size", "race_id": race_id, "participants": len(entries)})
                continue

            races.append(await self._race_document(race_id, entries))
            if len(races) >= limit:
                logger.info({"event": "races_capped", "count": len(races)})
                break
        return races

    async def _race_document(self, race_id: int, entries: Sequence[CompetitorRecord]) -> Dict[str, Any]:
        first = entries[0]
        off_time = first.race_date_time
        self._winners_times.setdefault(race_id, winners_time(entries))

        dogs = []
        for entry in entries:
            form = await self.repo.dog_form(entry.dog_id, before=off_time, limit=DEFAULT_FORM_SIZE)
            dogs.append(
                {
                    "trackName": entry.track_name,
                    "trapNumber": entry.trap_number,
                    "dogName": entry.dog_name,
                    "forms": [form_entry(run, await self._winners_time(run.race_id)) for run in form],
                }
            )

        return {
            "race_date": off_time.date().isoformat(),
            "race_time": off_time.time().isoformat(),
            "race_id": race_id,
            "distance": first.distance,
            "dogs": dogs,
        }

    async def _winners_time(self, race_id: int) -> float:
        cached = self._winners_times.get(race_id)
        if cached is None:
            cached = winners_time(await self.repo.race_entries(race_id))
            self._winners_times[race_id] = cached
        return cached

    async def run(
        self,
        start: datetime,
        end: datetime,
        distances: Sequence[int],
        *,
        initial_balance: Optional[float] = None,
        fixed_stake: Optional[float] = None,
        odds_range: Optional[OddsRange] = None,
        favorite_protected: Optional[bool] = None,
    ) -> BacktestResults:
        """Run one backtest; unset parameters fall back to ``settings.backtest``."""
        params = self.settings.backtest
        initial_balance = params.initial_balance if initial_balance is None else initial_balance
        fixed_stake = params.fixed_stake if fixed_stake is None else fixed_stake
        odds_range = params.odds_range if odds_range is None else odds_range
        if favorite_protected is None:
            favorite_protected = params.favorite_protected
        check_parameters(initial_balance, fixed_stake, odds_range)

        races = await self.collect_races(start, end, distances)
        requests = build_requests(
            races,
            self.instruction,
            model=self.settings.scoring.model,
            races_per_request=self.settings.requests.races_per_request,
        )
        logger.info({"event": "backtest_requests", "requests": len(requests), "races": len(races)})

        result = await self.dispatcher.dispatch_with_stats(requests)
        meta, trail = await self.engine.settle(
            result.answers,
            self.repo,
            len(races),
            initial_balance,
            fixed_stake,
            odds_range,
            favorite_protected,
            dispatch_stats=result.stats,
        )
        return BacktestResults(meta=meta, races=trail)


__all__ = ["Backtester", "form_entry", "winners_time"]
