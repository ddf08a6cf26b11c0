"""Ground truth rows as seen by the settlement engine."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CompetitorRecord(BaseModel):
    """One dog's historical result in one race.

    Accepts both snake_case and the camelCase keys used by result exports
    (``dogName``, ``raceDateTime``, ``bfOdds1Minute``...).
    """

    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    dog_id: int
    dog_name: str
    race_id: int
    finish_position: int = Field(..., ge=1, alias="resultPosition")
    distance: int
    track_name: Optional[str] = None
    race_date_time: datetime
    closing_odds: float = Field(..., gt=0.0, alias="bfOdds1Minute")
    trap_number: Optional[int] = None
    race_class: Optional[str] = None
    race_going: Optional[int] = None
    result_run_time: Optional[float] = None
    result_sectional_time: Optional[float] = None
    result_btn_distance: Optional[str] = None
    result_comment: Optional[str] = None
    result_dog_weight: Optional[float] = None


__all__ = ["CompetitorRecord"]
