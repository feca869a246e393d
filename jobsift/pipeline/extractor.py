"""
Main extraction orchestrator.

Turns one job page into a JobPosting through deterministic cascades:
1. Title and company (meta tags, JSON-LD, headings, readability, URL)
2. Technology stack (canonical terms and aliases)
3. Narrative sections (heading heuristics, optional remote classifier)
4. Structured metadata (anchors, JSON-LD, label patterns, sanitizer)
5. Company motto (remote lookup or keyword scan)
"""

import asyncio
import logging
from typing import Dict, Optional

from jobsift.core.ai_client import AIClient
from jobsift.core.extraction_heuristics import source_domain
from jobsift.errors import ExtractionError, ExtractionErrorKind
from jobsift.models import JobPosting
from .classifier import SectionClassifier
from .context import FieldResult, PageContext
from .metadata import extract_metadata, run_cascade
from .motto import MottoFinder
from .sections import Sections, extract_sections
from .tech import extract_tech
from .titles import COMPANY_STRATEGIES, TITLE_STRATEGIES, extract_company_url

logger = logging.getLogger(__name__)


class JobExtractor:
    """Builds JobPosting values from raw HTML."""

    def __init__(
        self,
        classifier: Optional[SectionClassifier] = None,
        motto_finder: Optional[MottoFinder] = None,
    ):
        self.classifier = classifier or SectionClassifier()
        self.motto_finder = motto_finder or MottoFinder()

    @classmethod
    def with_ai(cls, client: Optional[AIClient]) -> "JobExtractor":
        """Extractor whose classifier and motto finder share one remote client."""
        return cls(classifier=SectionClassifier(client), motto_finder=MottoFinder(client))

    async def extract(self, html: str, source_url: Optional[str] = None) -> JobPosting:
        """
        Extract a structured posting.

        Raises:
            ExtractionError: empty input, or no title/company after every strategy
        """
        if not html or not html.strip():
            raise ExtractionError(ExtractionErrorKind.EMPTY_INPUT, "Empty HTML input", url=source_url)

        ctx = PageContext(html, source_url)
        label = source_url or 'raw html'

        title = run_cascade(ctx, TITLE_STRATEGIES)
        if title is None:
            logger.warning(f"[extractor] No title found for {label}")
            raise ExtractionError(ExtractionErrorKind.MISSING_TITLE, f"Could not determine job title for {label}",
                                  url=source_url)

        company = run_cascade(ctx, COMPANY_STRATEGIES)
        if company is None:
            logger.warning(f"[extractor] No company found for {label}")
            raise ExtractionError(ExtractionErrorKind.MISSING_COMPANY, f"Could not determine company for {label}",
                                  url=source_url)

        metadata = extract_metadata(ctx)
        stack = extract_tech([ctx.visible_text, ctx.readable.text])
        sections = extract_sections(ctx)

        classified, motto = await asyncio.gather(
            self.classifier.classify(ctx, sections),
            self.motto_finder.find(ctx.visible_text, source_url),
        )
        if classified is not None:
            sections = classified

        field_sources: Dict[str, str] = {'title': title.source, 'company': company.source}
        field_sources.update({name: result.source for name, result in metadata.items()})
        field_sources['sections'] = sections.source
        field_sources['motto'] = motto.origin.source

        cascaded = {'title': title, 'company': company, **metadata}
        field_confidence = {name: round(result.confidence, 2) for name, result in cascaded.items()}

        posting = JobPosting(
            title=title.value,
            company=company.value,
            stack=stack,
            qualifications=sections.qualifications,
            roles=sections.roles,
            benefits=sections.benefits,
            workload=_value(metadata, 'workload'),
            duration=_value(metadata, 'duration'),
            language=_value(metadata, 'language'),
            location=_value(metadata, 'location'),
            published_at=_value(metadata, 'published_at'),
            salary=_value(metadata, 'salary'),
            company_size=_value(metadata, 'company_size'),
            company_url=extract_company_url(ctx),
            motto=motto.motto if motto.found else None,
            motto_origin=motto.origin,
            source_url=source_url,
            source_domain=source_domain(source_url),
            field_sources=field_sources,
            field_confidence=field_confidence,
        )
        logger.info(
            f"[extractor] {label}: '{posting.title}' at {posting.company} "
            f"({len(posting.stack)} technologies, sections via {sections.source})"
        )
        return posting


def _value(fields: Dict[str, FieldResult], name: str) -> Optional[str]:
    result = fields.get(name)
    return result.value if result is not None else None
