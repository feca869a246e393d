"""
Tests for the remote text-scoring client, its circuit breaker and the motto finder.
"""
import json

import httpx
import pytest

from jobsift.config import Settings
from jobsift.core.ai_client import AIClient, AIFailure, AIResult, CircuitBreaker, extract_json_object
from jobsift.pipeline.motto import MottoFinder, find_motto_sentence
from jobsift.scoring.refine import RankingResponse


def completion(content):
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def make_client(mock_http, handler, **kwargs):
    return AIClient(api_key="test-key", model="test/model", client=mock_http(handler), **kwargs)


class TestExtractJsonObject:
    """Model output parsing."""

    def test_raw_json(self):
        assert extract_json_object('{"matchScore": 80, "reasoning": "ok"}') == {"matchScore": 80, "reasoning": "ok"}

    def test_fenced_json(self):
        content = 'Here you go:\n```json\n{"motto": "-", "result": false}\n```'
        assert extract_json_object(content) == {"motto": "-", "result": False}

    def test_json_wrapped_in_prose(self):
        assert extract_json_object('Sure! {"a": 1} Hope that helps.') == {"a": 1}

    def test_not_json(self):
        assert extract_json_object("I cannot help with that") is None
        assert extract_json_object("[1, 2, 3]") is None


class TestAIClient:
    """Chat completion calls and failure classification."""

    def test_disabled_without_key(self):
        assert not AIClient(settings=Settings()).enabled
        assert not AIClient(api_key="key", settings=Settings(ai_enabled=False)).enabled
        assert AIClient(api_key="key").enabled

    @pytest.mark.asyncio
    async def test_disabled_returns_failure(self):
        result = await AIClient(settings=Settings()).complete_json("system", "user", RankingResponse)
        assert not result.ok
        assert result.reason == AIFailure.DISABLED

    @pytest.mark.asyncio
    async def test_request_payload_and_parsed_result(self, mock_http):
        seen = {}

        def handler(request):
            seen['url'] = str(request.url)
            seen['auth'] = request.headers.get('authorization')
            seen['body'] = json.loads(request.content)
            return completion('{"matchScore": 72, "reasoning": "Solid Python background"}')

        client = make_client(mock_http, handler, base_url="https://llm.example/v1/")
        result = await client.complete_json("system", "user", RankingResponse, temperature=0.1)

        assert result.ok
        assert result.value.match_score == 72
        assert seen['url'] == "https://llm.example/v1/chat/completions"
        assert seen['auth'] == "Bearer test-key"
        assert seen['body']['model'] == "test/model"
        assert seen['body']['response_format'] == {"type": "json_object"}
        assert seen['body']['messages'][0] == {"role": "system", "content": "system"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response,reason", [
        (httpx.Response(500, text="upstream error"), AIFailure.HTTP_STATUS),
        (httpx.Response(200, json={"choices": []}), AIFailure.EMPTY_CONTENT),
        (completion("   "), AIFailure.EMPTY_CONTENT),
        (completion("no json here"), AIFailure.MALFORMED_JSON),
        (completion('{"score": 80}'), AIFailure.SCHEMA_MISMATCH),
    ])
    async def test_failure_reasons(self, mock_http, response, reason):
        client = make_client(mock_http, lambda request: response)
        result = await client.complete_json("system", "user", RankingResponse)
        assert result.reason == reason

    @pytest.mark.asyncio
    async def test_timeout(self, mock_http):
        def handler(request):
            raise httpx.ReadTimeout("slow model", request=request)

        result = await make_client(mock_http, handler).complete_text("system", "user")
        assert result.reason == AIFailure.TIMEOUT

    @pytest.mark.asyncio
    async def test_transport_error(self, mock_http):
        def handler(request):
            raise httpx.ConnectError("no route", request=request)

        result = await make_client(mock_http, handler).complete_text("system", "user")
        assert result.reason == AIFailure.TRANSPORT

    @pytest.mark.asyncio
    async def test_circuit_opens_after_repeated_failures(self, mock_http):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        client = make_client(mock_http, handler)
        for _ in range(4):
            await client.complete_text("system", "user")
        result = await client.complete_text("system", "user")

        assert result.reason == AIFailure.CIRCUIT_OPEN
        assert len(calls) == 4


class TestCircuitBreaker:
    """Error-rate window and reset behaviour."""

    def test_stays_closed_below_min_calls(self):
        breaker = CircuitBreaker(min_calls=4)
        for _ in range(3):
            breaker.record_call(True)
        assert breaker.can_make_call()

    def test_success_closes_open_circuit(self):
        breaker = CircuitBreaker(min_calls=2)
        breaker.record_call(True)
        breaker.record_call(True)
        assert not breaker.can_make_call()

        breaker.record_call(False)
        assert breaker.can_make_call()

    def test_half_open_after_reset_period(self):
        breaker = CircuitBreaker(min_calls=1, reset_seconds=0)
        breaker.record_call(True)
        assert breaker.circuit_open
        assert breaker.can_make_call()


class TestMottoFinder:
    """Motto lookup with keyword fallback."""

    def test_keyword_sentence(self):
        text = "We build robots.\nOur mission is to make factories safer. Apply now!"
        assert find_motto_sentence(text) == "Our mission is to make factories safer."
        assert find_motto_sentence("Nothing relevant here.") is None

    @pytest.mark.asyncio
    async def test_fallback_without_client(self):
        result = await MottoFinder().find("Our culture: ship small, ship often.", "https://acme.example/job")

        assert result.found
        assert result.motto == "Our culture: ship small, ship often."
        assert result.origin.source == "fallback"
        assert result.origin.confidence == "low"
        assert result.origin.source_url == "https://acme.example/job"

    @pytest.mark.asyncio
    async def test_found_by_remote_lookup(self, stub_ai):
        client = stub_ai({'motto': 'Engineering with heart', 'result': True, 'reasoning': 'Stated in intro'})
        result = await MottoFinder(client).find("Engineering with heart. Join us.")

        assert result.found
        assert result.motto == "Engineering with heart"
        assert (result.origin.source, result.origin.confidence) == ("job_ad", "high")
        assert client.calls[0]['temperature'] == 0.1

    @pytest.mark.asyncio
    async def test_remote_lookup_without_motto(self, stub_ai):
        client = stub_ai({'motto': '-', 'result': False, 'reasoning': 'No values statement'})
        result = await MottoFinder(client).find("Plain job ad text.")

        assert not result.found
        assert result.motto is None
        assert (result.origin.source, result.origin.confidence) == ("job_ad", "low")

    @pytest.mark.asyncio
    async def test_remote_failure_is_reported_not_raised(self, stub_ai):
        client = stub_ai(AIResult.failure(AIFailure.TIMEOUT))
        result = await MottoFinder(client).find("Our values matter.")

        assert not result.found
        assert result.motto == "-"
        assert (result.origin.source, result.origin.confidence) == ("api_error", "low")

    @pytest.mark.asyncio
    async def test_long_input_is_truncated(self, stub_ai):
        client = stub_ai({'motto': '-', 'result': False})
        await MottoFinder(client).find("x" * 10000)
        assert len(client.calls[0]['user']) < 3100
