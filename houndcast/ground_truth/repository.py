"""Read access to historical race results.

``race_participants`` and ``dog_record`` are what settlement needs;
``race_ids_between``, ``race_entries`` and ``dog_form`` feed the backtest
request builder. A failing lookup raises ``RepositoryError``; a lookup that
finds nothing returns an empty list or None.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from houndcast.models import CompetitorRecord
from houndcast.shared.errors import RepositoryError

from .dbm import DBM
from .schema import DogRaceInfo

logger = logging.getLogger(__name__)

DEFAULT_FORM_SIZE = 5


def race_key(race_date: date, race_time: time) -> datetime:
    """Naive UTC datetime used as the race lookup key."""
    return datetime.combine(race_date, race_time)


def naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class GroundTruthRepository(ABC):
    @abstractmethod
    async def race_participants(self, race_date: date, race_time: time) -> List[CompetitorRecord]:
        """All records sharing the exact race date and time."""
        pass

    @abstractmethod
    async def dog_record(
        self,
        race_date: date,
        race_time: time,
        distance: int,
        dog_name: str,
    ) -> Optional[CompetitorRecord]:
        """Exact match on date, time, distance and dog name."""
        pass

    @abstractmethod
    async def race_ids_between(
        self,
        start: datetime,
        end: datetime,
        distances: Sequence[int],
    ) -> List[int]:
        """Race ids run in ``[start, end]`` at one of ``distances``, earliest first."""
        pass

    @abstractmethod
    async def race_entries(self, race_id: int) -> List[CompetitorRecord]:
        pass

    @abstractmethod
    async def dog_form(
        self,
        dog_id: int,
        *,
        before: Optional[datetime] = None,
        limit: int = DEFAULT_FORM_SIZE,
    ) -> List[CompetitorRecord]:
        """A dog's most recent runs, newest first, strictly before ``before``."""
        pass


def _sort_field(records: Iterable[CompetitorRecord]) -> List[CompetitorRecord]:
    return sorted(records, key=lambda r: (r.trap_number is None, r.trap_number or 0, r.dog_name))


class SqlGroundTruthRepository(GroundTruthRepository):
    """Repository over the ``dog_race_info`` table."""

    def __init__(self, dbm: DBM) -> None:
        self.dbm = dbm

    async def race_participants(self, race_date: date, race_time: time) -> List[CompetitorRecord]:
        stmt = select(DogRaceInfo).where(DogRaceInfo.race_date_time == race_key(race_date, race_time))
        return _sort_field(await self._fetch(stmt))

    async def dog_record(
        self,
        race_date: date,
        race_time: time,
        distance: int,
        dog_name: str,
    ) -> Optional[CompetitorRecord]:
        stmt = (
            select(DogRaceInfo)
            .where(DogRaceInfo.race_date_time == race_key(race_date, race_time))
            .where(DogRaceInfo.distance == distance)
            .where(DogRaceInfo.dog_name == dog_name)
            .order_by(DogRaceInfo.id)
            .limit(1)
        )
        records = await self._fetch(stmt)
        return records[0] if records else None

    async def race_ids_between(
        self,
        start: datetime,
        end: datetime,
        distances: Sequence[int],
    ) -> List[int]:
        first_seen = func.min(DogRaceInfo.race_date_time)
        stmt = (
            select(DogRaceInfo.race_id, first_seen)
            .where(DogRaceInfo.race_date_time >= start)
            .where(DogRaceInfo.race_date_time <= end)
            .where(DogRaceInfo.distance.in_(list(distances)))
            .group_by(DogRaceInfo.race_id)
            .order_by(first_seen, DogRaceInfo.race_id)
        )
        try:
            async with self.dbm.session() as session:
                rows = await session.execute(stmt)
                return [int(row[0]) for row in rows.all()]
        except SQLAlchemyError as exc:
            raise RepositoryError(f"race id lookup failed: {exc}") from exc

    async def race_entries(self, race_id: int) -> List[CompetitorRecord]:
        stmt = select(DogRaceInfo).where(DogRaceInfo.race_id == race_id)
        return _sort_field(await self._fetch(stmt))

    async def dog_form(
        self,
        dog_id: int,
        *,
        before: Optional[datetime] = None,
        limit: int = DEFAULT_FORM_SIZE,
    ) -> List[CompetitorRecord]:
        stmt = select(DogRaceInfo).where(DogRaceInfo.dog_id == dog_id)
        if before is not None:
            stmt = stmt.where(DogRaceInfo.race_date_time < before)
        stmt = stmt.order_by(DogRaceInfo.race_date_time.desc()).limit(limit)
        return await self._fetch(stmt)

    async def _fetch(self, stmt: Any) -> List[CompetitorRecord]:
        try:
            async with self.dbm.session() as session:
                rows = await session.execute(stmt)
                return [rec for rec in (_to_record(row[0]) for row in rows.all()) if rec is not None]
        except SQLAlchemyError as exc:
            raise RepositoryError(f"ground truth lookup failed: {exc}") from exc


def _to_record(row: DogRaceInfo) -> Optional[CompetitorRecord]:
    try:
        return CompetitorRecord(
            dog_id=row.dog_id,
            dog_name=row.dog_name,
            race_id=row.race_id,
            finish_position=row.result_position,
            distance=row.distance,
            track_name=row.track_name,
            race_date_time=row.race_date_time,
            closing_odds=row.bf_odds_1_minute,
            trap_number=row.trap_number,
            race_class=row.race_class,
            race_going=row.race_going,
            result_run_time=row.result_run_time,
            result_sectional_time=row.result_sectional_time,
            result_btn_distance=row.result_btn_distance,
            result_comment=row.result_comment,
            result_dog_weight=row.result_dog_weight,
        )
    except ValidationError as exc:
        logger.warning({"event": "invalid_ground_truth_row", "id": row.id, "error": str(exc)})
        return None


def record_to_row(record: CompetitorRecord) -> dict:
    """Column mapping for inserting a record into ``dog_race_info``."""
    return {
        "dog_id": record.dog_id,
        "dog_name": record.dog_name,
        "race_id": record.race_id,
        "race_date_time": naive_utc(record.race_date_time),
        "distance": record.distance,
        "track_name": record.track_name,
        "result_position": record.finish_position,
        "bf_odds_1_minute": record.closing_odds,
        "trap_number": record.trap_number,
        "race_class": record.race_class,
        "race_going": record.race_going,
        "result_run_time": record.result_run_time,
        "result_sectional_time": record.result_sectional_time,
        "result_btn_distance": record.result_btn_distance,
        "result_comment": record.result_comment,
        "result_dog_weight": record.result_dog_weight,
    }


class InMemoryGroundTruthRepository(GroundTruthRepository):
    """Repository over an in-memory list, e.g. a JSON results export."""

    def __init__(self, records: Iterable[CompetitorRecord] = ()) -> None:
        self.records: List[CompetitorRecord] = [
            r.model_copy(update={"race_date_time": naive_utc(r.race_date_time)})
            for r in records
        ]

    @classmethod
    def from_json(cls, path: str | Path) -> "InMemoryGroundTruthRepository":
        """Load a JSON array of result rows (camelCase or snake_case keys)."""
        try:
            with Path(path).open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise RepositoryError(f"cannot read results file {path}: {exc}") from exc
        if not isinstance(data, list):
            raise RepositoryError(f"results file {path} must contain a JSON array")

        records = []
        for idx, item in enumerate(data):
            try:
                records.append(CompetitorRecord.model_validate(item))
            except ValidationError as exc:
                logger.warning({"event": "invalid_ground_truth_row", "index": idx, "error": str(exc)})
        return cls(records)

    async def race_participants(self, race_date: date, race_time: time) -> List[CompetitorRecord]:
        key = race_key(race_date, race_time)
        return _sort_field(r for r in self.records if r.race_date_time == key)

    async def dog_record(
        self,
        race_date: date,
        race_time: time,
        distance: int,
        dog_name: str,
    ) -> Optional[CompetitorRecord]:
        key = race_key(race_date, race_time)
        for r in self.records:
            if r.race_date_time == key and r.distance == distance and r.dog_name == dog_name:
                return r
        return None

    async def race_ids_between(
        self,
        start: datetime,
        end: datetime,
        distances: Sequence[int],
    ) -> List[int]:
        wanted = set(distances)
        first_seen: dict[int, datetime] = {}
        for r in self.records:
            if start <= r.race_date_time <= end and r.distance in wanted:
                seen = first_seen.get(r.race_id)
                if seen is None or r.race_date_time < seen:
                    first_seen[r.race_id] = r.race_date_time
        return [race_id for race_id, _ in sorted(first_seen.items(), key=lambda kv: (kv[1], kv[0]))]

    async def race_entries(self, race_id: int) -> List[CompetitorRecord]:
        return _sort_field(r for r in self.records if r.race_id == race_id)

    async def dog_form(
        self,
        dog_id: int,
        *,
        before: Optional[datetime] = None,
        limit: int = DEFAULT_FORM_SIZE,
    ) -> List[CompetitorRecord]:
        runs = [
            r for r in self.records
            if r.dog_id == dog_id and (before is None or r.race_date_time < before)
        ]
        runs.sort(key=lambda r: r.race_date_time, reverse=True)
        return runs[:limit]


__all__ = [
    "DEFAULT_FORM_SIZE",
    "GroundTruthRepository",
    "SqlGroundTruthRepository",
    "InMemoryGroundTruthRepository",
    "race_key",
    "record_to_row",
]
