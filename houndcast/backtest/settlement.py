"""Replay validated answers against historical results.

The simulated strategy lays (bets against) one of the two dogs the model
rates least likely to win. A lay that loses costs
``stake * (odds - 1)``; a lay that wins pays ``stake * BETFAIR_PERCENTAGE``
after exchange commission.

Races are settled strictly one after another: each obligation is checked
against the balance left by the previous race, and the run stops outright
the first time the balance cannot cover it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from houndcast.models import (
    Answer,
    Balance,
    CompetitorRecord,
    ErrorCounts,
    OddsRange,
    PositionInfo,
    RaceCount,
    RaceTrailDog,
    RaceTrailEntry,
    RaceTrailMeta,
    RealResult,
    ResultsMeta,
    SkipInfo,
    StakeOutcome,
    odds_range_error,
)
from houndcast.ground_truth.repository import GroundTruthRepository
from houndcast.scoring.dispatcher import DispatchStats
from houndcast.shared.errors import RepositoryError, SettlementError

logger = logging.getLogger(__name__)

# Share of the stake kept after Betfair commission
BETFAIR_PERCENTAGE = 0.975

MIN_FIELD_SIZE = 5
MAX_FIELD_SIZE = 6
SHORTLIST_SIZE = 2
MIN_INITIAL_BALANCE = 2.0
BAD_HIT_RANKS = (4, 5, 6)


@dataclass(frozen=True)
class Candidate:
    rank: int
    odds: float
    finish_position: int


@dataclass
class _Counters:
    tracked_races: int = 0
    empty_content: int = 0
    parse_failures: int = 0
    lookup_failures: int = 0
    skipped_races_lt5: int = 0
    skipped_races_gt6: int = 0
    skipped_odds_range: int = 0
    skipped_favorite: int = 0
    bad_hits: dict = field(default_factory=lambda: {rank: 0 for rank in BAD_HIT_RANKS})


def check_parameters(initial_balance: float, fixed_stake: float, odds_range: OddsRange) -> None:
    """Raise ``SettlementError`` for settlement parameters no run can use."""
    if not math.isfinite(initial_balance) or initial_balance <= MIN_INITIAL_BALANCE:
        raise SettlementError(f"invalid initial balance: {initial_balance}")
    if not math.isfinite(fixed_stake) or fixed_stake <= 0:
        raise SettlementError(f"invalid fixed stake: {fixed_stake}")
    problem = odds_range_error(odds_range.low, odds_range.high)
    if problem:
        raise SettlementError(f"invalid odds range: {problem}")


def check_preconditions(
    answers: Sequence[Answer],
    initial_balance: float,
    fixed_stake: float,
    odds_range: OddsRange,
) -> None:
    """Raise ``SettlementError`` when a run cannot start."""
    if not answers:
        raise SettlementError("no answers to settle")
    check_parameters(initial_balance, fixed_stake, odds_range)


def select_candidate(
    shortlist: Sequence[Candidate],
    favorite_odds: float,
    favorite_protected: bool,
) -> Tuple[Optional[Candidate], bool]:
    """Pick the lay selection from an odds-sorted shortlist.

    Returns ``(selection, favorite_skipped)``. With protection on, the
    market favourite is never selected; passing over it counts once per
    race.
    """
    if not shortlist:
        return None, False
    first = shortlist[0]
    if not favorite_protected or first.odds != favorite_odds:
        return first, False
    if len(shortlist) > 1 and shortlist[1].odds != favorite_odds:
        return shortlist[1], True
    return None, True


def profit_percentage(balance: float, initial_balance: float) -> float:
    return (balance - initial_balance) / initial_balance * 100.0


class SettlementEngine:
    """Sequential settlement of one backtest run.

    Ledger and counters are local to each ``settle`` call, so one engine can
    run several independent settlements (one at a time or concurrently).
    """

    def __init__(
        self,
        *,
        commission_keep: float = BETFAIR_PERCENTAGE,
        shortlist_size: int = SHORTLIST_SIZE,
    ) -> None:
        self.commission_keep = commission_keep
        self.shortlist_size = shortlist_size

    async def settle(
        self,
        answers: Sequence[Answer],
        repo: GroundTruthRepository,
        total_races: int,
        initial_balance: float,
        fixed_stake: float,
        odds_range: OddsRange,
        favorite_protected: bool,
        *,
        dispatch_stats: Optional[DispatchStats] = None,
    ) -> Tuple[ResultsMeta, List[RaceTrailEntry]]:
        check_preconditions(answers, initial_balance, fixed_stake, odds_range)

        counters = _Counters()
        if dispatch_stats is not None:
            counters.empty_content = dispatch_stats.empty_candidates
            counters.parse_failures = dispatch_stats.parse_failures
        balance = initial_balance
        trail: List[RaceTrailEntry] = []

        logger.info(
            {
                "event": "settlement_start",
                "total_races": total_races,
                "answers": len(answers),
                "initial_balance": initial_balance,
                "fixed_stake": fixed_stake,
                "odds_range": [odds_range.low, odds_range.high],
                "favorite_protected": favorite_protected,
            }
        )

        for answer in answers:
            meta = answer.meta
            try:
                field_records = await repo.race_participants(meta.date, meta.time)
            except RepositoryError as exc:
                counters.lookup_failures += 1
                logger.error({"event": "race_lookup_error", "date": str(meta.date), "time": str(meta.time), "error": str(exc)})
                continue

            field_size = len(field_records)
            if not MIN_FIELD_SIZE <= field_size <= MAX_FIELD_SIZE:
                if field_size < MIN_FIELD_SIZE:
                    counters.skipped_races_lt5 += 1
                else:
                    counters.skipped_races_gt6 += 1
                logger.warning(
                    {
                        "event": "race_skipped_field_size",
                        "participants": field_size,
                        "skipped_races_lt5": counters.skipped_races_lt5,
                        "skipped_races_gt6": counters.skipped_races_gt6,
                    }
                )
                continue

            favorite_odds = min(r.closing_odds for r in field_records)
            shortlist = await self._build_shortlist(answer, repo, odds_range, counters)

            selection, favorite_skipped = select_candidate(shortlist, favorite_odds, favorite_protected)
            if not shortlist:
                counters.skipped_odds_range += 1
            if favorite_skipped:
                counters.skipped_favorite += 1

            stake: Optional[StakeOutcome] = None
            if selection is not None:
                obligation = fixed_stake * (selection.odds - 1.0)
                if balance < obligation:
                    logger.warning(
                        {
                            "event": "settlement_insolvent",
                            "balance": balance,
                            "obligation": obligation,
                        }
                    )
                    break

                if selection.finish_position == 1:
                    balance -= obligation
                else:
                    balance += fixed_stake * self.commission_keep
                counters.tracked_races += 1
                stake = StakeOutcome(
                    selected_odds=selection.odds,
                    finish_position=selection.finish_position,
                )

            trail.append(
                RaceTrailEntry(
                    race_id=field_records[0].race_id,
                    meta=RaceTrailMeta(
                        date=meta.date,
                        time=meta.time,
                        distance=meta.distance,
                        grade=meta.grade,
                        track=meta.track,
                        favorite_odds=favorite_odds,
                        current_balance=balance,
                        profit=profit_percentage(balance, initial_balance),
                    ),
                    dogs=_compare_field(answer, field_records),
                    stake=stake,
                    summary=answer.summary or "",
                )
            )

        percentage = profit_percentage(balance, initial_balance)
        logger.info(
            {
                "event": "settlement_complete",
                "races_settled": len(trail),
                "races_tracked": counters.tracked_races,
                "final_balance": balance,
                "percentage": percentage,
            }
        )

        meta = ResultsMeta(
            race_count=RaceCount(total_races=total_races, races_tracked=counters.tracked_races),
            odds_range=odds_range,
            position_info=PositionInfo(
                bad_hit_4_pos=counters.bad_hits[4],
                bad_hit_5_pos=counters.bad_hits[5],
                bad_hit_6_pos=counters.bad_hits[6],
            ),
            skip_info=SkipInfo(
                skipped_races_lt5=counters.skipped_races_lt5,
                skipped_races_gt6=counters.skipped_races_gt6,
                skipped_odds_range=counters.skipped_odds_range,
                skipped_favorite=counters.skipped_favorite,
            ),
            balance=Balance(initial_balance=initial_balance, final_balance=balance),
            errors=ErrorCounts(
                total_empty_content=counters.empty_content,
                total_race_parse_error=counters.parse_failures,
                total_lookup_error=counters.lookup_failures,
            ),
            initial_stake=fixed_stake,
            percentage=percentage,
        )
        return meta, trail

    async def _build_shortlist(
        self,
        answer: Answer,
        repo: GroundTruthRepository,
        odds_range: OddsRange,
        counters: _Counters,
    ) -> List[Candidate]:
        meta = answer.meta
        shortlist: List[Candidate] = []
        for prediction in answer.shortlist(self.shortlist_size):
            try:
                record = await repo.dog_record(meta.date, meta.time, meta.distance, prediction.name)
            except RepositoryError as exc:
                counters.lookup_failures += 1
                logger.error({"event": "dog_lookup_error", "dog": prediction.name, "error": str(exc)})
                continue
            if record is None:
                continue

            if record.finish_position == 1 and prediction.rank in counters.bad_hits:
                counters.bad_hits[prediction.rank] += 1

            if not odds_range.contains(record.closing_odds):
                logger.info(
                    {
                        "event": "odds_out_of_range",
                        "dog": prediction.name,
                        "odds": record.closing_odds,
                    }
                )
                continue

            shortlist.append(
                Candidate(
                    rank=prediction.rank,
                    odds=record.closing_odds,
                    finish_position=record.finish_position,
                )
            )

        shortlist.sort(key=lambda c: c.odds)
        return shortlist


def _compare_field(answer: Answer, field_records: Sequence[CompetitorRecord]) -> List[RaceTrailDog]:
    return [
        RaceTrailDog(
            dog_name=record.dog_name,
            model_prediction=answer.prediction_for(record.dog_name),
            real_results=RealResult(rank=record.finish_position, betfair_odds=record.closing_odds),
        )
        for record in field_records
    ]


__all__ = [
    "BETFAIR_PERCENTAGE",
    "Candidate",
    "SettlementEngine",
    "check_parameters",
    "check_preconditions",
    "profit_percentage",
    "select_candidate",
]
