"""Strict JSON schema the scoring service must answer with."""

from __future__ import annotations

from typing import Any, Dict

SCHEMA_NAME = "PredictionResponse"

PREDICTION_RESPONSE_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": SCHEMA_NAME,
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "meta": {
            "type": "object",
            "description": "Race meta information",
            "additionalProperties": False,
            "properties": {
                "date": {
                    "type": ["string"],
                    "description": "Race date (YYYY-MM-DD), taken from raceDateTime",
                },
                "time": {
                    "type": ["string"],
                    "description": "Race time (HH:MM:SS)",
                },
                "distance": {
                    "type": "integer",
                    "description": "Race distance in metres (e.g. 480)",
                },
                "track": {
                    "type": "string",
                    "description": "Track name, always required",
                },
                "grade": {
                    "type": ["string"],
                    "description": "Race grade (A3, A4, D3...)",
                },
            },
            "required": ["date", "time", "distance", "track", "grade"],
        },
        "predictions": {
            "type": "array",
            "description": "Dogs ranked by chance of winning",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "name": {"type": "string", "description": "Dog name"},
                    "rawScore": {"type": "number", "description": "Total raw score"},
                    "percentage": {
                        "type": "number",
                        "description": "Win chance in percent (0-100)",
                    },
                    "rank": {
                        "type": "integer",
                        "description": "Position in the forecast (1 is the favourite)",
                    },
                    "comment": {
                        "type": ["string", "null"],
                        "description": "Short comment on the result",
                    },
                },
                "required": ["name", "rawScore", "percentage", "rank", "comment"],
            },
        },
        "summary": {
            "type": ["string", "null"],
            "description": "Short conclusion for the forecast",
        },
    },
    "required": ["meta", "predictions", "summary"],
}


def response_format() -> Dict[str, Any]:
    """``response_format`` body field for a chat-completions request."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": SCHEMA_NAME,
            "strict": True,
            "schema": PREDICTION_RESPONSE_SCHEMA,
        },
    }
