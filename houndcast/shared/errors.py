"""Exception types shared across the dispatch and settlement pipeline."""

from __future__ import annotations


class ScoringServiceError(Exception):
    """Raised when the scoring service call fails (transport, status or body).

    The dispatcher treats every instance as retryable.
    """

    pass


class SettlementError(Exception):
    """Raised when settlement preconditions are violated."""

    pass


class RepositoryError(Exception):
    """Raised when a ground truth lookup fails (not when it finds nothing)."""

    pass


class ConfigError(Exception):
    """Raised when settings or instruction files cannot be loaded."""

    pass


__all__ = [
    "ScoringServiceError",
    "SettlementError",
    "RepositoryError",
    "ConfigError",
]
