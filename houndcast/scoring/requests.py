from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence


def build_requests(
    races: Sequence[Dict[str, Any]],
    instruction: str,
    *,
    model: str,
    races_per_request: int = 1,
) -> List[Dict[str, Any]]:
    """Chunk race documents into chat payloads.

    Each payload holds ``races_per_request`` races serialised into the user
    message, preceded by the shared system instruction.
    """
    if races_per_request < 1:
        raise ValueError(f"races_per_request must be >= 1, got {races_per_request}")

    requests: List[Dict[str, Any]] = []
    for start in range(0, len(races), races_per_request):
        chunk = list(races[start:start + races_per_request])
        system = {"role": "system", "content": instruction}
        user = {"role": "user", "content": json.dumps({"races": chunk}, default=str)}
        requests.append(
            {
                "meta": {"model": model},
                "messages": [system, user],
            }
        )
    return requests


__all__ = ["build_requests"]
