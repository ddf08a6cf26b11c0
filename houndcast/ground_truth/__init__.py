"""
Ground truth store: historical dog race results with closing prices.

Settlement only reads from it; ``DBM.insert_results`` loads exports.
"""
from .dbm import DBM
from .repository import (
    GroundTruthRepository,
    InMemoryGroundTruthRepository,
    SqlGroundTruthRepository,
    record_to_row,
)

__all__ = [
    "DBM",
    "GroundTruthRepository",
    "InMemoryGroundTruthRepository",
    "SqlGroundTruthRepository",
    "record_to_row",
]
