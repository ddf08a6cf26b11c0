"""Structured answer returned by the scoring service for one race."""

from __future__ import annotations

from datetime import date, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class RaceMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: date
    time: time
    distance: int = Field(..., ge=0)
    track: str
    grade: Optional[str] = None


class Prediction(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    name: str
    raw_score: float
    percentage: float
    rank: int = Field(..., ge=1)
    comment: Optional[str] = None


class Answer(BaseModel):
    """One model answer: race meta, ranked predictions and a summary.

    Predictions are always held ascending by ``rank`` and rank values are
    unique within an answer.
    """

    model_config = ConfigDict(extra="ignore")

    meta: RaceMeta
    predictions: List[Prediction]
    summary: Optional[str] = None

    @model_validator(mode="after")
    def _sort_unique_ranks(self) -> "Answer":
        ranks = [p.rank for p in self.predictions]
        if len(ranks) != len(set(ranks)):
            raise ValueError(f"duplicate prediction ranks: {sorted(ranks)}")
        self.predictions.sort(key=lambda p: p.rank)
        return self

    @property
    def zero_score_count(self) -> int:
        return sum(1 for p in self.predictions if p.raw_score == 0.0)

    def prediction_for(self, name: str) -> Optional[Prediction]:
        for prediction in self.predictions:
            if prediction.name == name:
                return prediction
        return None

    def shortlist(self, size: int = 2) -> List[Prediction]:
        """The ``size`` predictions the model rates least likely to win."""
        if size <= 0:
            return []
        return list(self.predictions[-size:])


__all__ = ["RaceMeta", "Prediction", "Answer"]
