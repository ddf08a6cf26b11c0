"""Shared factories for answers, ground truth records and chat responses."""

import json
import zlib
from datetime import date, datetime, time

import pytest

from houndcast.models import Answer, CompetitorRecord

RACE_DATE = date(2025, 6, 2)
RACE_TIME = time(14, 18)
DISTANCE = 480


def build_answer(names_by_rank, *, raw_scores=None, race_date=RACE_DATE, race_time=RACE_TIME,
                 distance=DISTANCE, summary="steady field"):
    """Answer JSON dict; ``names_by_rank[i]`` gets rank ``i + 1``."""
    raw_scores = raw_scores or [float(10 - i) for i in range(len(names_by_rank))]
    return {
        "meta": {
            "date": race_date.isoformat(),
            "time": race_time.isoformat(),
            "distance": distance,
            "track": "Romford",
            "grade": "A4",
        },
        "predictions": [
            {
                "name": name,
                "rawScore": raw_scores[i],
                "percentage": round(100.0 / len(names_by_rank), 2),
                "rank": i + 1,
                "comment": None,
            }
            for i, name in enumerate(names_by_rank)
        ],
        "summary": summary,
    }


def build_record(name, position, odds, *, dog_id=None, race_id=1, race_date=RACE_DATE,
                 race_time=RACE_TIME, distance=DISTANCE, trap=None, run_time=None):
    return CompetitorRecord(
        dog_id=dog_id if dog_id is not None else zlib.crc32(name.encode()),
        dog_name=name,
        race_id=race_id,
        finish_position=position,
        distance=distance,
        track_name="Romford",
        race_date_time=datetime.combine(race_date, race_time),
        closing_odds=odds,
        trap_number=trap if trap is not None else position,
        race_class="A4",
        race_going=0,
        result_run_time=run_time,
    )


def chat_response(*contents):
    """Raw chat-completions body with one choice per content (None = null)."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [
            {
                "index": i,
                "message": {
                    "role": "assistant",
                    "content": content if content is None or isinstance(content, str) else json.dumps(content),
                },
                "finish_reason": "stop",
            }
            for i, content in enumerate(contents)
        ],
    }


@pytest.fixture
def make_answer():
    def _make(names_by_rank, **kwargs):
        return Answer.model_validate(build_answer(names_by_rank, **kwargs))

    return _make


@pytest.fixture
def answer_json():
    return build_answer


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def make_chat_response():
    return chat_response
