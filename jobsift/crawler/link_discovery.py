"""
Paginated job link discovery over a search results page.
"""
import asyncio
import logging
from typing import Callable, List, Optional, Sequence, Set
from urllib.parse import parse_qs, urlencode, urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup

from jobsift.config import DEFAULT_DETAIL_MARKERS, DEFAULT_MAX_SEARCH_PAGES
from jobsift.core.extraction_heuristics import is_non_navigational, matches_detail_marker, normalize_url
from jobsift.core.net import PageFetcher
from jobsift.errors import RunCancelled
from jobsift.models import DiscoveryResult, FetchOptions, Progress

logger = logging.getLogger(__name__)

ProgressSink = Callable[[Progress], None]

PAGE_PARAM = 'page'


def start_page(search_url: str) -> int:
    """Page number encoded in the search URL, defaulting to 1."""
    values = parse_qs(urlparse(search_url).query).get(PAGE_PARAM)
    if not values:
        return 1
    try:
        page = int(values[0])
    except ValueError:
        return 1
    return page if page >= 0 else 1


def page_url(search_url: str, page: int) -> str:
    """Search URL with the page query parameter set, other parameters kept."""
    parsed = urlparse(search_url)
    params = parse_qs(parsed.query, keep_blank_values=True)
    params[PAGE_PARAM] = [str(page)]
    return urlunparse(parsed._replace(query=urlencode(params, doseq=True)))


def extract_job_links(html: str, base_url: str, markers: Optional[Sequence[str]] = None) -> List[str]:
    """Absolute, normalized job-detail links on a page, in document order."""
    markers = DEFAULT_DETAIL_MARKERS if markers is None else markers
    soup = BeautifulSoup(html, 'lxml')
    links = []
    for anchor in soup.find_all('a', href=True):
        href = anchor['href'].strip()
        if is_non_navigational(href) or not matches_detail_marker(href, markers):
            continue
        links.append(normalize_url(urljoin(base_url, href)))
    return links


def emit(sink: Optional[ProgressSink], progress: Progress) -> None:
    """Deliver progress to an optional sink; sink failures never stop the run."""
    if sink is None:
        return
    try:
        sink(progress)
    except Exception as e:
        logger.warning(f"[progress] Progress sink failed: {e}")


class LinkDiscoverer:
    """Walks search result pages until a page contributes no new links."""

    def __init__(self, fetcher: PageFetcher, markers: Optional[Sequence[str]] = None):
        self.fetcher = fetcher
        self.markers = list(markers) if markers is not None else list(DEFAULT_DETAIL_MARKERS)

    async def collect(
        self,
        search_url: str,
        fetch_options: Optional[FetchOptions] = None,
        max_pages: int = DEFAULT_MAX_SEARCH_PAGES,
        on_progress: Optional[ProgressSink] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> DiscoveryResult:
        """
        Collect unique job links starting at search_url.

        Pages are fetched sequentially. Collection stops after max_pages pages
        or as soon as a page adds no link that was not already seen.

        Raises:
            FetchError: when a results page cannot be fetched
            RunCancelled: when cancel_event is set
        """
        options = fetch_options or FetchOptions()
        first_page = start_page(search_url)
        links: List[str] = []
        seen: Set[str] = set()
        pages_fetched = 0

        for offset in range(max(0, max_pages)):
            if cancel_event is not None and cancel_event.is_set():
                raise RunCancelled(f"Discovery cancelled after {pages_fetched} pages")

            page_number = first_page + offset
            url = search_url if offset == 0 else page_url(search_url, page_number)
            emit(on_progress, Progress(message=f"Scanning page {page_number} for job links...",
                                       total=max_pages, completed=offset))

            html = await self.fetcher.fetch(
                url,
                timeout_ms=options.timeout_ms,
                retry_count=options.retry_count,
                cancel_event=cancel_event,
            )
            pages_fetched += 1

            page_links = extract_job_links(html, url, self.markers)
            new_links = 0
            for link in page_links:
                if link in seen:
                    continue
                seen.add(link)
                links.append(link)
                new_links += 1

            logger.info(f"[link_discovery] Page {page_number}: found {len(page_links)} links ({new_links} new)")
            emit(on_progress, Progress(message=f"Page {page_number}: found {len(page_links)} links ({new_links} new)",
                                       total=max_pages, completed=offset + 1))

            if new_links == 0:
                break

        emit(on_progress, Progress(
            message=f"Completed: {len(links)} job links from {pages_fetched} pages",
            total=len(links), completed=len(links),
        ))
        logger.info(f"[link_discovery] Collected {len(links)} links from {pages_fetched} pages of {search_url}")
        return DiscoveryResult(links=links, pages_fetched=pages_fetched)
