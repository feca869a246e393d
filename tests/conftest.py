"""
Shared fixtures: sample job pages, candidate profiles and stand-ins for the
network-facing collaborators.
"""
import asyncio
from typing import Dict, List, Optional, Union

import httpx
import pytest

from jobsift.core.ai_client import AIFailure, AIResult
from jobsift.errors import FetchError, FetchErrorKind
from jobsift.models import CandidateProfile, Role

JOB_PAGE_HTML = """
<html>
<head>
  <title>Senior Python Engineer at Acme AG - jobs.ch</title>
  <meta property="og:title" content="Senior Python Engineer">
  <meta property="og:site_name" content="jobs.ch">
</head>
<body>
  <h1>Senior Python Engineer</h1>
  <a data-cy="company-link" href="/en/companies/acme/"><span>Acme AG</span></a>
  <ul class="job-meta">
    <li data-cy="info-workload"><span>Workload:</span><span>80 – 100%</span></li>
    <li data-cy="info-contract"><span>Contract type:</span><span>Unlimited employment</span></li>
    <li data-cy="info-language"><span>Language:</span><span>German (Fluent), English (Fluent)</span></li>
    <li data-cy="info-location-link"><span>Bahnhofstrasse 1, 8001 Zürich</span></li>
    <li data-cy="info-publication"><span>Publication date:</span><span>n/a</span></li>
  </ul>
  <h2>Your tasks</h2>
  <ul>
    <li>Build data pipelines in Python and Django</li>
    <li>Design REST APIs with our UX team</li>
  </ul>
  <h2>Your profile</h2>
  <ul>
    <li>5+ years with Python</li>
    <li>Experience with PostgreSQL and Docker</li>
    <li>Machine learning experience is a plus</li>
  </ul>
  <h2>What we offer</h2>
  <ul>
    <li>Hybrid work</li>
    <li>Small agile team of 8 people</li>
  </ul>
  <p>Our values: innovation, ownership and growth.</p>
</body>
</html>
"""


class StubAIClient:
    """Stands in for AIClient; hands out queued results in call order.

    Queue entries may be an AIResult, a dict (validated against the requested
    schema), a string (plain completion text) or an exception to raise.
    """

    def __init__(self, *results: Union[AIResult, Dict, str, Exception], enabled: bool = True):
        self.results = list(results)
        self.enabled = enabled
        self.calls: List[Dict] = []

    def _next(self):
        if not self.results:
            return AIResult.failure(AIFailure.EMPTY_CONTENT)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def complete_json(self, system, user, schema, **kwargs):
        self.calls.append({'system': system, 'user': user, 'schema': schema, **kwargs})
        result = self._next()
        if isinstance(result, dict):
            return AIResult.success(schema.model_validate(result))
        return result

    async def complete_text(self, system, user, **kwargs):
        self.calls.append({'system': system, 'user': user, **kwargs})
        result = self._next()
        if isinstance(result, str):
            return AIResult.success(result)
        return result


class FakeFetcher:
    """PageFetcher stand-in serving canned pages and tracking concurrency."""

    def __init__(self, pages: Optional[Dict[str, Union[str, Exception]]] = None,
                 default: Optional[str] = None, delay: float = 0.0):
        self.pages = pages or {}
        self.default = default
        self.delay = delay
        self.fetched: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.on_fetch = None

    async def fetch(self, url, timeout_ms=None, retry_count=None, cancel_event=None):
        self.fetched.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.on_fetch is not None:
                self.on_fetch(url)
            if self.delay:
                await asyncio.sleep(self.delay)
            page = self.pages.get(url, self.default)
            if isinstance(page, Exception):
                raise page
            if page is None:
                raise FetchError(FetchErrorKind.HTTP_STATUS, url, f"HTTP 404 fetching {url}", status_code=404)
            return page
        finally:
            self.in_flight -= 1


@pytest.fixture
def job_page_html():
    """Job board detail page with metadata anchors and headed sections."""
    return JOB_PAGE_HTML


@pytest.fixture
def candidate():
    """Backend candidate with six years of Python work."""
    return CandidateProfile(
        roles=[Role(title='Backend Engineer', stack=['Python', 'Django', 'PostgreSQL'], years=6)],
        skills=['Docker'],
        keywords=['python', 'data pipelines', 'kubernetes'],
    )


@pytest.fixture
def stub_ai():
    """Factory for StubAIClient instances."""
    return StubAIClient


@pytest.fixture
def fake_fetcher():
    """Factory for FakeFetcher instances."""
    return FakeFetcher


@pytest.fixture
def mock_http():
    """Build an httpx.AsyncClient whose requests are answered by a handler."""
    def _build(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return _build
