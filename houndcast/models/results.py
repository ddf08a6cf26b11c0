"""Backtest output: aggregate meta plus the per-race trail.

Serialised with camelCase keys (``model_dump(by_alias=True)``).
"""

from __future__ import annotations

import math
from datetime import date, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .answer import Prediction


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def odds_range_error(low: float, high: float) -> Optional[str]:
    """Describe why ``[low, high]`` is unusable, or None when it is fine."""
    for name, value in (("low", low), ("high", high)):
        if not math.isfinite(value) or value <= 0:
            return f"odds_range.{name} must be finite and > 0, got {value}"
    if low > high:
        return f"odds_range.low {low} > odds_range.high {high}"
    return None


class OddsRange(_CamelModel):
    """Inclusive closing-odds band a selection must fall into.

    Bounds are checked where the range is used (settings, settlement).
    """

    low: float
    high: float

    def contains(self, odds: float) -> bool:
        return self.low <= odds <= self.high


class RaceCount(_CamelModel):
    total_races: int
    races_tracked: int


class PositionInfo(_CamelModel):
    """How often the model's two least-favoured picks actually won."""

    bad_hit_4_pos: int = 0
    bad_hit_5_pos: int = 0
    bad_hit_6_pos: int = 0


class SkipInfo(_CamelModel):
    skipped_races_lt5: int = 0
    skipped_races_gt6: int = 0
    skipped_odds_range: int = 0
    skipped_favorite: int = 0


class Balance(_CamelModel):
    initial_balance: float
    final_balance: float


class ErrorCounts(_CamelModel):
    total_empty_content: int = 0
    total_race_parse_error: int = 0
    total_lookup_error: int = 0


class ResultsMeta(_CamelModel):
    race_count: RaceCount
    odds_range: OddsRange
    position_info: PositionInfo
    skip_info: SkipInfo
    balance: Balance
    errors: ErrorCounts
    initial_stake: float
    percentage: float


class StakeOutcome(_CamelModel):
    selected_odds: float
    finish_position: int


class RaceTrailMeta(_CamelModel):
    date: date
    time: time
    distance: int
    grade: Optional[str] = None
    track: str
    favorite_odds: float
    current_balance: float
    profit: float


class RealResult(_CamelModel):
    rank: int
    betfair_odds: float


class RaceTrailDog(_CamelModel):
    dog_name: str
    model_prediction: Optional[Prediction] = None
    real_results: RealResult


class RaceTrailEntry(_CamelModel):
    race_id: int
    meta: RaceTrailMeta
    dogs: List[RaceTrailDog]
    stake: Optional[StakeOutcome] = None
    summary: str = ""


class BacktestResults(_CamelModel):
    meta: ResultsMeta
    races: List[RaceTrailEntry]

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


__all__ = [
    "odds_range_error",
    "OddsRange",
    "RaceCount",
    "PositionInfo",
    "SkipInfo",
    "Balance",
    "ErrorCounts",
    "ResultsMeta",
    "StakeOutcome",
    "RaceTrailMeta",
    "RealResult",
    "RaceTrailDog",
    "RaceTrailEntry",
    "BacktestResults",
]
