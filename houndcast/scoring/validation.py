"""Acceptance rules for raw scoring-service responses.

A response is accepted when one of its candidate message bodies decodes
into an ``Answer`` and is not degenerate. Degenerate means two or more
predictions scored exactly 0.0, i.e. the model failed to separate the
field.

Validation is stateless and does not depend on call timing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional

from pydantic import ValidationError

from houndcast.models import Answer

logger = logging.getLogger(__name__)

# An answer with this many zero raw scores is rejected
DEGENERATE_ZERO_SCORES = 2


@dataclass
class ValidationResult:
    """Outcome of validating one raw response."""

    answer: Optional[Answer] = None
    empty_candidates: int = 0
    parse_failures: int = 0
    degenerate: int = 0

    @property
    def accepted(self) -> bool:
        return self.answer is not None


def iter_candidates(raw: Any) -> Iterator[Optional[str]]:
    """Yield each choice's message content (None when missing)."""
    if not isinstance(raw, Mapping):
        return
    choices = raw.get("choices")
    if not isinstance(choices, list):
        return
    for choice in choices:
        message = choice.get("message") if isinstance(choice, Mapping) else None
        content = message.get("content") if isinstance(message, Mapping) else None
        yield content if isinstance(content, str) else None


def is_degenerate(answer: Answer) -> bool:
    return answer.zero_score_count >= DEGENERATE_ZERO_SCORES


def validate_response(raw: Any) -> ValidationResult:
    """Return the first parseable, non-degenerate answer in ``raw``.

    Null, unparseable and degenerate candidates are skipped and counted;
    the response is rejected only when none survives. A blank string is
    a parse failure, not empty content.
    """
    result = ValidationResult()
    for content in iter_candidates(raw):
        if content is None:
            result.empty_candidates += 1
            logger.warning({"event": "empty_content"})
            continue

        try:
            answer = Answer.model_validate_json(content)
        except ValidationError as exc:
            result.parse_failures += 1
            logger.error({"event": "answer_parse_error", "error": str(exc), "content": content[:500]})
            continue

        if is_degenerate(answer):
            result.degenerate += 1
            logger.warning(
                {
                    "event": "degenerate_answer",
                    "date": answer.meta.date.isoformat(),
                    "time": answer.meta.time.isoformat(),
                    "zero_scores": answer.zero_score_count,
                }
            )
            continue

        result.answer = answer
        return result

    return result


class ResponseValidator:
    """Validate raw responses and keep running counters across calls."""

    def __init__(self) -> None:
        self.empty_candidates = 0
        self.parse_failures = 0
        self.degenerate = 0
        self.accepted = 0
        self.rejected = 0

    def validate(self, raw: Any) -> Optional[Answer]:
        result = validate_response(raw)
        self.empty_candidates += result.empty_candidates
        self.parse_failures += result.parse_failures
        self.degenerate += result.degenerate
        if result.accepted:
            self.accepted += 1
        else:
            self.rejected += 1
        return result.answer


__all__ = [
    "DEGENERATE_ZERO_SCORES",
    "ValidationResult",
    "ResponseValidator",
    "iter_candidates",
    "is_degenerate",
    "validate_response",
]
