"""
Remote section classifier.

Asks the text-scoring service to re-bucket a page's own sentences into
qualifications, roles and benefits. Output is accepted only when it is
well-formed, non-empty and every kept item occurs in the source text.
"""
import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from jobsift.core.ai_client import AIClient
from .context import PageContext
from .sanitizer import collapse_whitespace, sanitize_list
from .sections import Sections

logger = logging.getLogger(__name__)

MAX_INPUT_CHARS = 8000

SYSTEM_PROMPT = (
    "You organise job advertisements. Use only the provided content. "
    "Never fabricate, paraphrase or summarise: copy sentences or bullet points verbatim. "
    "Return JSON with three arrays: qualifications (skills and experience the candidate "
    "needs), roles (responsibilities and day-to-day work) and benefits (what the company "
    "offers). Each array holds at most 8 distinct strings. Use an empty array when the "
    "content has nothing for a category."
)


class SectionClassification(BaseModel):
    qualifications: List[str] = Field(default_factory=list)
    roles: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)


def _normalize_for_lookup(text: str) -> str:
    return collapse_whitespace(text).lower()


class SectionClassifier:
    """Optional remote re-bucketing of narrative sections."""

    def __init__(self, client: Optional[AIClient] = None):
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client is not None and self.client.enabled

    async def classify(self, ctx: PageContext, heuristic: Sections) -> Optional[Sections]:
        """
        Returns classified sections, or None when the heuristic result should stand.
        Never raises.
        """
        if not self.enabled:
            return None

        content = ctx.readable.html or ctx.html
        user = (
            f"Source URL: {ctx.source_url or 'unknown'}\n\n"
            f"Content:\n{content[:MAX_INPUT_CHARS]}"
        )

        try:
            result = await self.client.complete_json(SYSTEM_PROMPT, user, SectionClassification)
        except Exception as e:
            logger.warning(f"[classifier] Classification call failed: {e}")
            return None

        if not result.ok:
            logger.info(f"[classifier] Keeping heuristic sections ({result.reason.value})")
            return None

        haystack = _normalize_for_lookup(ctx.visible_text)
        known = {_normalize_for_lookup(item) for item in heuristic.all_items()}

        def grounded(items: List[str]) -> List[str]:
            kept = []
            for item in sanitize_list(items):
                key = _normalize_for_lookup(item)
                if key in known or key in haystack:
                    kept.append(item)
                else:
                    logger.debug(f"[classifier] Dropping item not found in page: {item[:80]}")
            return kept

        parsed: SectionClassification = result.value
        sections = Sections(
            qualifications=grounded(parsed.qualifications),
            roles=grounded(parsed.roles),
            benefits=grounded(parsed.benefits),
            source='ai',
        )
        if sections.is_empty():
            logger.info("[classifier] Classification produced no grounded items; keeping heuristic sections")
            return None
        return sections
