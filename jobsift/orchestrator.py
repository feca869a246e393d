"""
Batch orchestrator: fetch, extract, score, refine and persist job links in bounded batches.
"""
import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from jobsift.config import DEFAULT_BATCH_SIZE, DEFAULT_MAX_SEARCH_PAGES, Settings
from jobsift.core.ai_client import AIClient
from jobsift.core.extraction_heuristics import should_skip_url, unique_normalized
from jobsift.core.net import PageFetcher
from jobsift.crawler.link_discovery import LinkDiscoverer, ProgressSink, emit
from jobsift.errors import OrchestrationError, OrchestrationErrorKind, RunCancelled
from jobsift.letters import LetterWriter
from jobsift.models import (
    AnalysisRecord,
    BatchResult,
    CandidateProfile,
    FetchOptions,
    FinalAssessment,
    LetterLanguage,
    LinkError,
    MotivationLetter,
    Progress,
    SkippedLink,
)
from jobsift.pipeline.extractor import JobExtractor
from jobsift.scoring.fit import FitScorer
from jobsift.scoring.refine import RankRefiner
from jobsift.storage import AnalysisStorage, InMemoryAnalysisStorage

logger = logging.getLogger(__name__)

LinkOutcome = Union[AnalysisRecord, LinkError]


class BatchOrchestrator:
    """Runs the per-link pipeline over many links with per-link failure isolation."""

    def __init__(
        self,
        fetcher: PageFetcher,
        extractor: JobExtractor,
        scorer: FitScorer,
        refiner: RankRefiner,
        storage: AnalysisStorage,
        batch_size: int = DEFAULT_BATCH_SIZE,
        fetch_options: Optional[FetchOptions] = None,
        detail_markers: Optional[Sequence[str]] = None,
        max_pages: int = DEFAULT_MAX_SEARCH_PAGES,
        letter_writer: Optional[LetterWriter] = None,
        on_progress: Optional[ProgressSink] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.fetcher = fetcher
        self.extractor = extractor
        self.scorer = scorer
        self.refiner = refiner
        self.storage = storage
        self.batch_size = batch_size
        self.fetch_options = fetch_options or FetchOptions()
        self.detail_markers = list(detail_markers) if detail_markers is not None else None
        self.max_pages = max_pages
        self.on_progress = on_progress
        self.letter_writer = letter_writer or LetterWriter()

    @classmethod
    def from_settings(cls, settings: Settings, storage: Optional[AnalysisStorage] = None,
                      on_progress: Optional[ProgressSink] = None) -> "BatchOrchestrator":
        ai_client = AIClient.from_settings(settings) if settings.ai_available else None
        if ai_client is None:
            logger.info("[orchestrator] Remote AI unavailable, using heuristics only")
        return cls(
            fetcher=PageFetcher(settings=settings),
            extractor=JobExtractor.with_ai(ai_client),
            scorer=FitScorer(),
            refiner=RankRefiner(ai_client),
            storage=storage if storage is not None else InMemoryAnalysisStorage(),
            batch_size=settings.batch_size,
            fetch_options=FetchOptions(timeout_ms=settings.fetch_timeout_ms,
                                       retry_count=settings.fetch_retry_count),
            detail_markers=settings.detail_markers,
            max_pages=settings.max_search_pages,
            letter_writer=LetterWriter(ai_client),
            on_progress=on_progress,
        )

    async def analyze_html(self, html: str, candidate: CandidateProfile,
                           source_url: Optional[str] = None) -> AnalysisRecord:
        """Extract, score, refine and persist one already-fetched page."""
        job = await self.extractor.extract(html, source_url)
        heuristic = self.scorer.score(job, candidate)
        ranking = await self.refiner.rank(job, candidate, heuristic)
        record = AnalysisRecord(
            job=job,
            candidate=candidate,
            assessment=FinalAssessment.combine(heuristic, ranking),
        )
        return self.storage.save(record)

    async def analyze_job(self, url: str, candidate: CandidateProfile,
                          cancel_event: Optional[asyncio.Event] = None) -> AnalysisRecord:
        """Fetch one URL and run it through the full pipeline."""
        html = await self.fetcher.fetch(
            url,
            timeout_ms=self.fetch_options.timeout_ms,
            retry_count=self.fetch_options.retry_count,
            cancel_event=cancel_event,
        )
        return await self.analyze_html(html, candidate, source_url=url)

    async def _process_link(self, url: str, candidate: CandidateProfile,
                            cancel_event: Optional[asyncio.Event]) -> LinkOutcome:
        try:
            record = await self.analyze_job(url, candidate, cancel_event)
        except RunCancelled:
            logger.info(f"[orchestrator] Cancelled while processing {url}")
            return LinkError(url=url, message="Cancelled")
        except Exception as e:
            logger.warning(f"[orchestrator] Failed to analyze {url}: {e}")
            return LinkError(url=url, message=str(e) or e.__class__.__name__)
        logger.info(f"[orchestrator] Analyzed {url}: score {record.assessment.match_score} "
                    f"({record.assessment.source})")
        return record

    def _partition(self, links: Iterable[str]) -> Tuple[List[str], List[SkippedLink]]:
        pending: List[str] = []
        skipped: List[SkippedLink] = []
        for url in unique_normalized(links):
            skip, reason = should_skip_url(url, self.detail_markers)
            if skip:
                skipped.append(SkippedLink(url=url, reason=reason))
                continue
            if self.storage.exists_by_url(url):
                skipped.append(SkippedLink(url=url, reason='already_analyzed'))
                continue
            pending.append(url)
        return pending, skipped

    async def analyze_many(
        self,
        links: Sequence[str],
        candidate: CandidateProfile,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> BatchResult:
        """
        Analyze links in sequential batches of concurrently processed members.

        Raises:
            OrchestrationError: when no links are given
        """
        if not links:
            raise OrchestrationError(OrchestrationErrorKind.NO_LINKS_FOUND, "No job links to analyze")

        pending, skipped = self._partition(links)
        result = BatchResult(skipped=skipped)
        for item in skipped:
            logger.info(f"[orchestrator] Skipping {item.url} ({item.reason})")

        total = len(pending)
        batch_count = (total + self.batch_size - 1) // self.batch_size
        logger.info(f"[orchestrator] Processing {total} links in {batch_count} batches "
                    f"({len(skipped)} skipped)")

        for index in range(0, total, self.batch_size):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"[orchestrator] Cancelled before batch {index // self.batch_size + 1}/{batch_count}")
                result.cancelled = True
                break

            batch = pending[index:index + self.batch_size]
            outcomes = await asyncio.gather(
                *(self._process_link(url, candidate, cancel_event) for url in batch),
                return_exceptions=True,
            )
            for url, outcome in zip(batch, outcomes):
                if isinstance(outcome, AnalysisRecord):
                    result.records.append(outcome)
                elif isinstance(outcome, LinkError):
                    result.errors.append(outcome)
                else:
                    result.errors.append(LinkError(url=url, message=str(outcome) or outcome.__class__.__name__))

            done = min(index + self.batch_size, total)
            emit(self.on_progress, Progress(
                message=f"Analyzed {done}/{total} jobs ({len(result.errors)} errors)",
                total=total, completed=done,
            ))

        if cancel_event is not None and cancel_event.is_set():
            result.cancelled = True

        logger.info(f"[orchestrator] Completed: {len(result.records)} analyzed, {len(result.errors)} errors, "
                    f"{len(result.skipped)} skipped{' (cancelled)' if result.cancelled else ''}")
        return result

    async def run_search(
        self,
        search_url: str,
        candidate: CandidateProfile,
        max_pages: Optional[int] = None,
        markers: Optional[Sequence[str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> BatchResult:
        """Discover links from a search page, then analyze them."""
        discoverer = LinkDiscoverer(self.fetcher, markers if markers is not None else self.detail_markers)
        discovery = await discoverer.collect(
            search_url,
            fetch_options=self.fetch_options,
            on_progress=self.on_progress,
            max_pages=max_pages if max_pages is not None else self.max_pages,
            cancel_event=cancel_event,
        )
        if not discovery.links:
            raise OrchestrationError(
                OrchestrationErrorKind.NO_LINKS_FOUND,
                f"No job links found on {search_url} ({discovery.pages_fetched} pages scanned)",
            )
        return await self.analyze_many(discovery.links, candidate, cancel_event)

    async def write_letter(
        self,
        record: Union[str, AnalysisRecord],
        language: LetterLanguage = 'en',
        refresh: bool = False,
    ) -> MotivationLetter:
        """
        Motivation letter for an analysis, drafted once per language and kept with the record.

        A stored letter is returned with source "cache" unless refresh is set.

        Raises:
            OrchestrationError: when a record id is not in storage
        """
        if isinstance(record, str):
            found = self.storage.get(record)
            if found is None:
                raise OrchestrationError(OrchestrationErrorKind.RECORD_NOT_FOUND, f"No analysis with id {record}")
            record = found

        cached = record.letters.get(language)
        if cached is not None and not refresh:
            logger.info(f"[orchestrator] Returning stored {language} letter for {record.id or record.job.title}")
            return cached.model_copy(update={'source': 'cache'})

        heuristic = self.scorer.score(record.job, record.candidate)
        letter = await self.letter_writer.write(record.job, record.candidate, heuristic, language)
        if record.id is not None and self.storage.save_letter(record.id, letter) is None:
            logger.info(f"[orchestrator] Analysis {record.id} is not stored here, letter not persisted")
        logger.info(f"[orchestrator] Drafted {language} letter for {record.job.title} (source={letter.source})")
        return letter
