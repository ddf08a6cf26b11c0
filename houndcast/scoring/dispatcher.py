"""Concurrent request dispatch with round-based retry.

Each round submits every pending request at once, validates whatever comes
back, and carries failures and rejects into the next round. After
``max_rounds`` anything still pending is dropped. Accepted answers are
returned in original submission order, at most one per request.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from houndcast.config import DispatchSettings
from houndcast.models import Answer

from .client import ScoringClient
from .validation import ResponseValidator

logger = logging.getLogger(__name__)

MAX_ROUNDS = 5


@dataclass(frozen=True)
class PendingRequest:
    index: int
    payload: Mapping[str, Any]


@dataclass
class DispatchStats:
    requests_submitted: int = 0
    rounds_run: int = 0
    attempts: int = 0
    service_failures: int = 0
    empty_candidates: int = 0
    parse_failures: int = 0
    degenerate: int = 0
    accepted: int = 0
    dropped: int = 0


@dataclass
class DispatchResult:
    answers: List[Answer] = field(default_factory=list)
    stats: DispatchStats = field(default_factory=DispatchStats)


class RequestDispatcher:
    """Fan requests out to a ``ScoringClient`` and collect validated answers.

    Usage:
        dispatcher = RequestDispatcher(client)
        answers = await dispatcher.dispatch(requests)
    """

    def __init__(
        self,
        client: ScoringClient,
        *,
        max_rounds: Optional[int] = None,
        settings: Optional[DispatchSettings] = None,
    ) -> None:
        self.client = client
        if max_rounds is None:
            max_rounds = settings.max_rounds if settings is not None else MAX_ROUNDS
        if max_rounds < 1:
            raise ValueError(f"max_rounds must be >= 1, got {max_rounds}")
        self.max_rounds = max_rounds

    async def dispatch(self, requests: Sequence[Mapping[str, Any]]) -> List[Answer]:
        result = await self.dispatch_with_stats(requests)
        return result.answers

    async def dispatch_with_stats(self, requests: Sequence[Mapping[str, Any]]) -> DispatchResult:
        stats = DispatchStats(requests_submitted=len(requests))
        pending = [PendingRequest(index=i, payload=payload) for i, payload in enumerate(requests)]
        accepted: Dict[int, Answer] = {}
        validator = ResponseValidator()

        for round_no in range(1, self.max_rounds + 1):
            if not pending:
                break
            stats.rounds_run = round_no
            survivors, retries = await self._run_round(pending, stats, validator)
            for index, answer in survivors:
                # a request leaves pending once accepted, so no index repeats
                accepted.setdefault(index, answer)
            logger.info(
                {
                    "event": "dispatch_round",
                    "round": round_no,
                    "submitted": len(pending),
                    "accepted": len(survivors),
                    "retry": len(retries),
                }
            )
            pending = retries

        if pending:
            stats.dropped = len(pending)
            logger.warning(
                {
                    "event": "dispatch_dropped",
                    "dropped": len(pending),
                    "indices": [req.index for req in pending],
                    "max_rounds": self.max_rounds,
                }
            )

        stats.empty_candidates = validator.empty_candidates
        stats.parse_failures = validator.parse_failures
        stats.degenerate = validator.degenerate
        stats.accepted = len(accepted)
        answers = [accepted[index] for index in sorted(accepted)]
        return DispatchResult(answers=answers, stats=stats)

    async def _run_round(
        self,
        pending: List[PendingRequest],
        stats: DispatchStats,
        validator: ResponseValidator,
    ) -> Tuple[List[Tuple[int, Answer]], List[PendingRequest]]:
        survivors: List[Tuple[int, Answer]] = []
        retries: List[PendingRequest] = []

        tasks = {asyncio.create_task(self.client.send(req.payload)): req for req in pending}
        stats.attempts += len(tasks)
        done, _ = await asyncio.wait(tasks.keys())

        for task in done:
            req = tasks[task]
            if task.cancelled():
                stats.service_failures += 1
                logger.error({"event": "dispatch_task_cancelled", "index": req.index})
                retries.append(req)
                continue

            exc = task.exception()
            if exc is not None:
                stats.service_failures += 1
                logger.error(
                    {
                        "event": "scoring_request_error",
                        "index": req.index,
                        "error": repr(exc),
                    }
                )
                retries.append(req)
                continue

            answer = validator.validate(task.result())
            if answer is None:
                retries.append(req)
            else:
                survivors.append((req.index, answer))

        return survivors, retries


__all__ = [
    "MAX_ROUNDS",
    "PendingRequest",
    "DispatchStats",
    "DispatchResult",
    "RequestDispatcher",
]
