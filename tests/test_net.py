"""
Tests for PageFetcher: retries, status and content-type checks, timeouts and cancellation.
"""
import asyncio

import httpx
import pytest

from jobsift.core.net import PageFetcher
from jobsift.errors import FetchError, FetchErrorKind, RunCancelled

URL = "https://www.jobs.ch/en/vacancies/detail/abc-123"


def make_fetcher(client, **kwargs):
    kwargs.setdefault('backoff_base', 0)
    kwargs.setdefault('backoff_cap', 0)
    return PageFetcher(client=client, **kwargs)


class TestPageFetcher:
    """Single-page fetching with retry semantics."""

    @pytest.mark.asyncio
    async def test_returns_body_text(self, mock_http):
        """Successful HTML responses are returned as text."""
        seen = {}

        def handler(request):
            seen['user_agent'] = request.headers.get('user-agent')
            return httpx.Response(200, html="<html><body>ok</body></html>")

        fetcher = make_fetcher(mock_http(handler), user_agent="jobsift-test")
        body = await fetcher.fetch(URL)

        assert "ok" in body
        assert seen['user_agent'] == "jobsift-test"

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, mock_http):
        """Transient failures are retried up to retry_count extra attempts."""
        calls = []

        def handler(request):
            calls.append(request.url)
            if len(calls) < 3:
                return httpx.Response(503, text="busy")
            return httpx.Response(200, html="<p>third time</p>")

        fetcher = make_fetcher(mock_http(handler))
        body = await fetcher.fetch(URL, retry_count=2)

        assert "third time" in body
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_http_status_error_after_final_attempt(self, mock_http):
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(500, text="boom")

        fetcher = make_fetcher(mock_http(handler))
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(URL, retry_count=2)

        assert exc_info.value.kind == FetchErrorKind.HTTP_STATUS
        assert exc_info.value.status_code == 500
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_zero_retries_means_single_attempt(self, mock_http):
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(404)

        fetcher = make_fetcher(mock_http(handler))
        with pytest.raises(FetchError):
            await fetcher.fetch(URL, retry_count=0)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_rejects_non_text_content(self, mock_http):
        """JSON or binary bodies are not job pages."""
        def handler(request):
            return httpx.Response(200, content=b'{"jobs": []}', headers={'content-type': 'application/json'})

        fetcher = make_fetcher(mock_http(handler))
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(URL, retry_count=0)
        assert exc_info.value.kind == FetchErrorKind.BAD_CONTENT_TYPE

    @pytest.mark.asyncio
    async def test_attempt_timeout(self, mock_http):
        """A slow response is abandoned once the per-attempt timeout elapses."""
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, html="<p>late</p>")

        fetcher = make_fetcher(mock_http(handler))
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(URL, timeout_ms=50, retry_count=0)
        assert exc_info.value.kind == FetchErrorKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_transport_timeout_maps_to_timeout_kind(self, mock_http):
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        fetcher = make_fetcher(mock_http(handler))
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(URL, retry_count=0)
        assert exc_info.value.kind == FetchErrorKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_connection_error_maps_to_network_kind(self, mock_http):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = make_fetcher(mock_http(handler))
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(URL, retry_count=0)
        assert exc_info.value.kind == FetchErrorKind.NETWORK


class TestFetchCancellation:
    """The run-wide cancel event stops fetching at every stage."""

    @pytest.mark.asyncio
    async def test_cancelled_before_first_attempt(self, mock_http):
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(200, html="<p>never</p>")

        event = asyncio.Event()
        event.set()
        fetcher = make_fetcher(mock_http(handler))

        with pytest.raises(RunCancelled):
            await fetcher.fetch(URL, cancel_event=event)
        assert calls == []

    @pytest.mark.asyncio
    async def test_cancelled_in_flight(self, mock_http):
        async def handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200, html="<p>too late</p>")

        event = asyncio.Event()
        fetcher = make_fetcher(mock_http(handler))
        task = asyncio.ensure_future(fetcher.fetch(URL, timeout_ms=5000, retry_count=0, cancel_event=event))

        await asyncio.sleep(0.05)
        event.set()

        with pytest.raises(RunCancelled):
            await asyncio.wait_for(task, timeout=1)

    @pytest.mark.asyncio
    async def test_cancelled_during_backoff(self, mock_http):
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(502)

        event = asyncio.Event()
        fetcher = PageFetcher(client=mock_http(handler), backoff_base=2, backoff_cap=2)
        task = asyncio.ensure_future(fetcher.fetch(URL, retry_count=3, cancel_event=event))

        await asyncio.sleep(0.05)
        event.set()

        with pytest.raises(RunCancelled):
            await asyncio.wait_for(task, timeout=1)
        assert len(calls) == 1
