from .client import ChatCompletionsClient, ScoringClient
from .dispatcher import MAX_ROUNDS, DispatchResult, DispatchStats, RequestDispatcher
from .requests import build_requests
from .validation import ResponseValidator, ValidationResult, validate_response

__all__ = [
    "ChatCompletionsClient",
    "ScoringClient",
    "MAX_ROUNDS",
    "DispatchResult",
    "DispatchStats",
    "RequestDispatcher",
    "build_requests",
    "ResponseValidator",
    "ValidationResult",
    "validate_response",
]
