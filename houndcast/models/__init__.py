from .answer import Answer, Prediction, RaceMeta
from .records import CompetitorRecord
from .results import (
    Balance,
    BacktestResults,
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

__all__ = [
    "Answer",
    "Prediction",
    "RaceMeta",
    "CompetitorRecord",
    "Balance",
    "BacktestResults",
    "ErrorCounts",
    "OddsRange",
    "PositionInfo",
    "RaceCount",
    "RaceTrailDog",
    "RaceTrailEntry",
    "RaceTrailMeta",
    "RealResult",
    "ResultsMeta",
    "SkipInfo",
    "StakeOutcome",
    "odds_range_error",
]
