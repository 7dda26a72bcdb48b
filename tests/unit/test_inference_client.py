"""
Unit tests for the inference clients.
HTTP is simulated with httpx.MockTransport.
"""
import asyncio
import json

import httpx
import pytest

from app.core.circuit_breaker import CircuitBreaker, CircuitState
from app.services.inference import OpenAIInferenceClient, StubInferenceClient


def _client(handler, **kwargs):
    kwargs.setdefault("api_key", "test-key")
    return OpenAIInferenceClient(
        base_url="https://llm.test/v1",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _completion(content):
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


class TestOpenAIInferenceClient:
    @pytest.mark.asyncio
    async def test_successful_completion(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return _completion("1:0.9,2:0.8")

        result = await _client(handler, model="gpt-test", max_tokens=500).complete("prompt")

        assert result.ok
        assert result.text == "1:0.9,2:0.8"
        assert seen["path"].endswith("/chat/completions")
        assert seen["auth"] == "Bearer test-key"
        assert seen["body"]["model"] == "gpt-test"
        assert seen["body"]["max_tokens"] == 500
        assert [m["role"] for m in seen["body"]["messages"]] == ["system", "user"]
        assert seen["body"]["messages"][1]["content"] == "prompt"

    @pytest.mark.asyncio
    async def test_error_status_is_unavailable(self):
        breaker = CircuitBreaker("inference", failure_threshold=5)
        client = _client(lambda r: httpx.Response(500), circuit_breaker=breaker)

        result = await client.complete("prompt")

        assert not result.ok
        assert result.error == "status 500"
        assert breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_missing_choices_is_malformed(self):
        result = await _client(lambda r: httpx.Response(200, json={"choices": []})).complete("p")

        assert result.error == "malformed response structure"

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        result = await _client(lambda r: httpx.Response(200, text="<html>")).complete("p")

        assert result.error == "invalid JSON body"

    @pytest.mark.asyncio
    async def test_transport_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        result = await _client(handler).complete("p")

        assert result.error == "timeout"

    @pytest.mark.asyncio
    async def test_total_time_budget_enforced(self):
        async def handler(request):
            await asyncio.sleep(1)
            return _completion("1:0.9")

        result = await _client(handler, timeout_sec=0.05).complete("p")

        assert not result.ok
        assert result.error == "timeout"

    @pytest.mark.asyncio
    async def test_missing_api_key_never_calls_out(self):
        calls = []

        def handler(request):
            calls.append(request)
            return _completion("1:0.9")

        result = await _client(handler, api_key=None).complete("p")

        assert result.error == "api key not configured"
        assert calls == []

    @pytest.mark.asyncio
    async def test_open_circuit_short_circuits(self):
        breaker = CircuitBreaker("inference", failure_threshold=1, recovery_timeout_sec=60)
        client = _client(lambda r: httpx.Response(503), circuit_breaker=breaker)

        await client.complete("p")
        assert breaker.state == CircuitState.OPEN

        result = await client.complete("p")
        assert result.error == "circuit open"

    @pytest.mark.asyncio
    async def test_success_resets_failures(self):
        breaker = CircuitBreaker("inference", failure_threshold=3)
        breaker.record_failure()
        client = _client(lambda r: _completion("1:0.9"), circuit_breaker=breaker)

        await client.complete("p")

        assert breaker.failure_count == 0


class TestStubInferenceClient:
    @pytest.mark.asyncio
    async def test_echoes_prompt_candidates(self):
        prompt = "AVAILABLE VIDEOS:\nID:7 | NBA | x | 10s | Views:1\nID:9 | NBA | y | 10s | Views:2\n"

        result = await StubInferenceClient(count=10).complete(prompt)

        assert result.text == "7:0.95,9:0.90"

    @pytest.mark.asyncio
    async def test_no_candidates_gives_empty_reply(self):
        result = await StubInferenceClient().complete("nothing here")

        assert result.ok
        assert result.text == ""
