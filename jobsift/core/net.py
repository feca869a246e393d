"""
HTTP page fetcher with per-attempt timeout, retries and capped exponential backoff.
Honours a run-wide cancellation event between and during attempts.
"""
import asyncio
import logging
import time
from typing import Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from jobsift.config import DEFAULT_USER_AGENT, Settings
from jobsift.errors import FetchError, FetchErrorKind, RunCancelled

logger = logging.getLogger(__name__)

BACKOFF_BASE_SECONDS = 0.5
BACKOFF_CAP_SECONDS = 2.0


class PageFetcher:
    """Fetches HTML pages for discovery and extraction."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        user_agent: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        retry_count: Optional[int] = None,
        backoff_base: float = BACKOFF_BASE_SECONDS,
        backoff_cap: float = BACKOFF_CAP_SECONDS,
        settings: Optional[Settings] = None,
    ):
        settings = settings or Settings()
        self._client = client
        self.user_agent = user_agent or settings.user_agent or DEFAULT_USER_AGENT
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.fetch_timeout_ms
        self.retry_count = retry_count if retry_count is not None else settings.fetch_retry_count
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap

    def _get_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }

    async def fetch(
        self,
        url: str,
        timeout_ms: Optional[int] = None,
        retry_count: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> str:
        """
        Fetch a page and return its body as text.

        Args:
            url: Absolute URL to fetch
            timeout_ms: Bound on each individual attempt
            retry_count: Additional attempts after the first one
            cancel_event: Run-wide cancellation signal

        Raises:
            FetchError: after the final attempt fails
            RunCancelled: when cancel_event is set
        """
        timeout_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        retry_count = retry_count if retry_count is not None else self.retry_count
        total_attempts = retry_count + 1

        def _log_retry(state: RetryCallState) -> None:
            delay = state.next_action.sleep if state.next_action else 0
            error = state.outcome.exception() if state.outcome else None
            logger.info(
                f"[net] {url} attempt {state.attempt_number}/{total_attempts} failed ({error}); "
                f"retrying in {int(delay * 1000)}ms"
            )

        async def _sleep(seconds: float) -> None:
            await self._sleep_or_cancel(seconds, cancel_event)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(total_attempts),
            wait=wait_exponential(multiplier=self.backoff_base, max=self.backoff_cap),
            retry=retry_if_exception_type(FetchError),
            before_sleep=_log_retry,
            sleep=_sleep,
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                number = attempt.retry_state.attempt_number
                if cancel_event is not None and cancel_event.is_set():
                    raise RunCancelled(f"Cancelled before fetching {url}")
                logger.info(f"[net] GET {url} attempt {number}/{total_attempts}")
                return await self._attempt(url, timeout_ms / 1000.0, cancel_event)

        # AsyncRetrying either returns from inside the loop or re-raises
        raise FetchError(FetchErrorKind.NETWORK, url, f"No attempt made for {url}")

    async def _attempt(self, url: str, timeout: float,
                       cancel_event: Optional[asyncio.Event]) -> str:
        request = asyncio.ensure_future(self._get(url, timeout))
        waiters = {request}
        cancel_waiter = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if cancel_waiter is not None and not cancel_waiter.done():
                cancel_waiter.cancel()

        if request in done:
            return request.result()

        request.cancel()
        try:
            await request
        except (asyncio.CancelledError, Exception):
            pass

        if cancel_waiter is not None and cancel_waiter in done:
            logger.info(f"[net] Cancelled in-flight fetch of {url}")
            raise RunCancelled(f"Cancelled while fetching {url}")

        logger.warning(f"[net] Timeout fetching {url} after {timeout:.1f}s")
        raise FetchError(FetchErrorKind.TIMEOUT, url, f"Timed out after {timeout:.1f}s fetching {url}")

    async def _get(self, url: str, timeout: float) -> str:
        start_time = time.time()
        try:
            if self._client is not None:
                response = await self._client.get(url, headers=self._get_headers(), timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                    response = await client.get(url, headers=self._get_headers())
        except httpx.TimeoutException as e:
            logger.warning(f"[net] Timeout fetching {url}: {e}")
            raise FetchError(FetchErrorKind.TIMEOUT, url, f"Timed out fetching {url}") from e
        except httpx.HTTPError as e:
            logger.warning(f"[net] Connection error fetching {url}: {e}")
            raise FetchError(FetchErrorKind.NETWORK, url, f"Network error fetching {url}: {e}") from e

        elapsed_ms = int((time.time() - start_time) * 1000)

        if not response.is_success:
            logger.warning(f"[net] GET {response.status_code} {url} ({elapsed_ms}ms)")
            raise FetchError(
                FetchErrorKind.HTTP_STATUS,
                url,
                f"HTTP {response.status_code} fetching {url}",
                status_code=response.status_code,
            )

        content_type = response.headers.get("content-type", "")
        if "text" not in content_type.lower():
            logger.warning(f"[net] Unexpected content type {content_type!r} for {url}")
            raise FetchError(
                FetchErrorKind.BAD_CONTENT_TYPE,
                url,
                f"Unexpected content type {content_type!r} for {url}",
                status_code=response.status_code,
            )

        logger.info(f"[net] GET {response.status_code} {url} ({len(response.content)} bytes, {elapsed_ms}ms)")
        return response.text

    @staticmethod
    async def _sleep_or_cancel(seconds: float, cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is None:
            await asyncio.sleep(seconds)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise RunCancelled("Cancelled during retry backoff")
