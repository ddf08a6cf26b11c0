"""Tests for scoring/client.py - chat-completions HTTP client."""

import json

import httpx
import pytest

from houndcast.config import ScoringServiceSettings
from houndcast.scoring.client import ChatCompletionsClient
from houndcast.scoring.schema import SCHEMA_NAME
from houndcast.shared.errors import ScoringServiceError

PAYLOAD = {
    "meta": {"model": "o3-mini"},
    "messages": [
        {"role": "system", "content": "rank the dogs"},
        {"role": "user", "content": "{\"races\": []}"},
    ],
}


def _settings(**overrides):
    values = {"base_url": "https://scoring.test/v1", "api_key": "sk-test"}
    values.update(overrides)
    return ScoringServiceSettings(**values)


def _client(handler, **overrides):
    return ChatCompletionsClient(_settings(**overrides), transport=httpx.MockTransport(handler))


class TestBuildBody:
    def test_includes_model_parameters_and_schema(self):
        client = ChatCompletionsClient(_settings(seed=7, reasoning_effort="high"))
        body = client.build_body(PAYLOAD)

        assert body["model"] == "o3-mini"
        assert body["messages"] == PAYLOAD["messages"]
        assert body["reasoning_effort"] == "high"
        assert body["seed"] == 7
        assert "max_completion_tokens" not in body
        assert body["response_format"]["type"] == "json_schema"
        assert body["response_format"]["json_schema"]["name"] == SCHEMA_NAME
        assert body["response_format"]["json_schema"]["strict"] is True

    def test_meta_not_forwarded(self):
        body = ChatCompletionsClient(_settings()).build_body(PAYLOAD)
        assert "meta" not in body

    @pytest.mark.parametrize("payload", [{}, {"messages": []}, {"messages": "hi"}])
    def test_missing_messages_raises(self, payload):
        with pytest.raises(ScoringServiceError):
            ChatCompletionsClient(_settings()).build_body(payload)


class TestSend:
    @pytest.mark.asyncio
    async def test_posts_to_chat_completions(self, make_chat_response):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=make_chat_response("{}"))

        async with _client(handler) as client:
            data = await client.send(PAYLOAD)

        assert seen["url"] == "https://scoring.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["model"] == "o3-mini"
        assert data["choices"][0]["message"]["content"] == "{}"

    @pytest.mark.asyncio
    async def test_no_auth_header_without_key(self, make_chat_response):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json=make_chat_response("{}"))

        async with _client(handler, api_key=None) as client:
            await client.send(PAYLOAD)

        assert seen["auth"] is None

    @pytest.mark.asyncio
    async def test_http_error_status_raises(self):
        async with _client(lambda request: httpx.Response(429, json={"error": "slow down"})) as client:
            with pytest.raises(ScoringServiceError, match="429"):
                await client.send(PAYLOAD)

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(ScoringServiceError):
                await client.send(PAYLOAD)

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self):
        async with _client(lambda request: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(ScoringServiceError, match="non-JSON"):
                await client.send(PAYLOAD)

    @pytest.mark.asyncio
    async def test_non_object_body_raises(self):
        async with _client(lambda request: httpx.Response(200, json=[1, 2])) as client:
            with pytest.raises(ScoringServiceError, match="non-object"):
                await client.send(PAYLOAD)
