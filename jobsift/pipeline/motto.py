"""
Company motto / values statement finder.

Asks the text-scoring service for an explicit values statement. Without a
credential a local keyword scan is used instead. Every path returns a
MottoResult carrying its origin; nothing here raises.
"""
import re
import logging
from typing import Optional

from pydantic import BaseModel, Field

from jobsift.core.ai_client import AIClient
from jobsift.models import MottoOrigin

logger = logging.getLogger(__name__)

MOTTO_KEYWORDS = ['values', 'mission', 'culture', 'motto', 'belief']
MAX_INPUT_CHARS = 3000
MAX_FALLBACK_SENTENCE = 300
NO_MOTTO = '-'

SYSTEM_PROMPT = (
    "You read job advertisements and find the hiring company's motto, slogan or "
    "explicit values statement. Only report a statement that appears in the text; "
    "never invent one. Respond with JSON: {\"motto\": string, \"result\": boolean, "
    "\"reasoning\": string}. Set result to false and motto to \"-\" when the text "
    "contains no such statement."
)

_SENTENCE_SPLIT = re.compile(r'(?<=[.!?])\s+|\n+')


class MottoResponse(BaseModel):
    motto: str
    result: bool
    reasoning: str = ''


class MottoResult(BaseModel):
    motto: Optional[str] = None
    found: bool = False
    reasoning: str = ''
    origin: MottoOrigin = Field(default_factory=lambda: MottoOrigin(source='fallback', confidence='low'))


def find_motto_sentence(text: str) -> Optional[str]:
    """First sentence mentioning values, mission, culture, motto or belief."""
    for sentence in _SENTENCE_SPLIT.split(text or ''):
        sentence = ' '.join(sentence.split())
        if not sentence or len(sentence) > MAX_FALLBACK_SENTENCE:
            continue
        lower = sentence.lower()
        if any(keyword in lower for keyword in MOTTO_KEYWORDS):
            return sentence
    return None


class MottoFinder:
    """Locates a company motto in job ad text."""

    def __init__(self, client: Optional[AIClient] = None):
        self.client = client

    def _fallback(self, text: str, source_url: Optional[str]) -> MottoResult:
        sentence = find_motto_sentence(text)
        return MottoResult(
            motto=sentence,
            found=sentence is not None,
            reasoning='Keyword scan of job ad text' if sentence else 'No values statement found by keyword scan',
            origin=MottoOrigin(
                source='fallback',
                confidence='low',
                extracted_from='keyword_scan' if sentence else None,
                source_url=source_url,
            ),
        )

    @staticmethod
    def _api_error(detail: str, source_url: Optional[str]) -> MottoResult:
        return MottoResult(
            motto=NO_MOTTO,
            found=False,
            reasoning=detail,
            origin=MottoOrigin(source='api_error', confidence='low', source_url=source_url),
        )

    async def find(self, text: str, source_url: Optional[str] = None) -> MottoResult:
        if self.client is None or not self.client.enabled:
            return self._fallback(text, source_url)

        user = f"Job advertisement text:\n{(text or '')[:MAX_INPUT_CHARS]}"
        try:
            result = await self.client.complete_json(
                SYSTEM_PROMPT, user, MottoResponse, temperature=0.1, max_tokens=500,
            )
        except Exception as e:
            logger.warning(f"[motto] Motto lookup failed: {e}")
            return self._api_error(f'Motto lookup failed: {e}', source_url)

        if not result.ok:
            logger.info(f"[motto] Motto lookup unavailable ({result.reason.value})")
            return self._api_error(f'Motto lookup unavailable: {result.reason.value}', source_url)

        response: MottoResponse = result.value
        motto = ' '.join(response.motto.split())
        found = response.result and bool(motto) and motto != NO_MOTTO
        return MottoResult(
            motto=motto if found else None,
            found=found,
            reasoning=response.reasoning,
            origin=MottoOrigin(
                source='job_ad',
                confidence='high' if found else 'low',
                extracted_from='job_ad_text',
                source_url=source_url,
            ),
        )
