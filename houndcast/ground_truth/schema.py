"""Historical per-dog race results."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class DogRaceInfo(Base):
    """One dog's result in one race, with the one-minute Betfair price."""

    __tablename__ = "dog_race_info"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    dog_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    dog_name: Mapped[str] = mapped_column(String(128), nullable=False)
    race_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    race_date_time: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        comment="Race off time (naive UTC)",
    )
    distance: Mapped[int] = mapped_column(Integer, nullable=False)
    track_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    result_position: Mapped[int] = mapped_column(Integer, nullable=False)
    bf_odds_1_minute: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Betfair price one minute before the off",
    )
    trap_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    race_class: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    race_going: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    result_run_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    result_sectional_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    result_btn_distance: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    result_comment: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    result_dog_weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    __table_args__ = (
        Index("ix_dog_race_info_race_date_time", "race_date_time"),
        Index("ix_dog_race_info_race_id", "race_id"),
        Index("ix_dog_race_info_dog_id", "dog_id"),
        Index("ix_dog_race_info_lookup", "race_date_time", "distance", "dog_name"),
    )


__all__ = ["Base", "DogRaceInfo"]
