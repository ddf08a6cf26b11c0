from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

import httpx

from houndcast.config import ScoringServiceSettings
from houndcast.shared.errors import ScoringServiceError

from .schema import response_format

logger = logging.getLogger(__name__)


class ScoringClient(ABC):
    """One scoring-service call per request payload.

    Implementations return the raw response mapping or raise. Any
    exception is treated as retryable by the dispatcher.
    """

    @abstractmethod
    async def send(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        pass


class ChatCompletionsClient(ScoringClient):
    """
    Async HTTP client for an OpenAI-compatible ``/chat/completions`` endpoint.

    - Sends the payload's ``messages`` with the configured model parameters
    - Forces the strict ``PredictionResponse`` JSON schema
    - Does not retry; every failure surfaces as ``ScoringServiceError``
    """

    def __init__(
        self,
        settings: Optional[ScoringServiceSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or ScoringServiceSettings()
        limits = httpx.Limits(max_keepalive_connections=20, max_connections=100)
        self._client = httpx.AsyncClient(
            base_url=self.settings.base_url.rstrip("/"),
            timeout=self.settings.timeout_seconds,
            limits=limits,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ChatCompletionsClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def send(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        body = self.build_body(payload)
        headers = {}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        logger.debug({"scoring_request": {"model": body["model"], "messages": len(body["messages"])}})
        try:
            resp = await self._client.post("/chat/completions", json=body, headers=headers)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ScoringServiceError(
                f"scoring service returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ScoringServiceError(f"scoring service request failed: {exc!r}") from exc
        except ValueError as exc:
            raise ScoringServiceError("scoring service returned a non-JSON body") from exc

        if not isinstance(data, dict):
            raise ScoringServiceError("scoring service returned a non-object body")
        return data

    def build_body(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        messages = payload.get("messages")
        if not isinstance(messages, list) or not messages:
            raise ScoringServiceError("request payload is missing 'messages'")

        cfg = self.settings
        body: Dict[str, Any] = {
            "model": cfg.model,
            "messages": messages,
            "frequency_penalty": cfg.frequency_penalty,
            "presence_penalty": cfg.presence_penalty,
            "logprobs": cfg.logprobs,
            "reasoning_effort": cfg.reasoning_effort,
            "temperature": cfg.temperature,
            "response_format": response_format(),
        }
        if cfg.seed is not None:
            body["seed"] = cfg.seed
        if cfg.max_completion_tokens is not None:
            body["max_completion_tokens"] = cfg.max_completion_tokens
        return body


__all__ = ["ScoringClient", "ChatCompletionsClient"]
