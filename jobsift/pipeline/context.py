"""
Shared extraction state: the parsed page plus lazily derived views of it.
"""
import logging
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from .readable import ReadableContent, extract_readable
from .jsonld import find_job_postings

logger = logging.getLogger(__name__)

# Confidence scores by extraction method
CONFIDENCE_SCORES = {
    'jsonld': 0.90,
    'structured': 0.85,
    'meta': 0.80,
    'dom': 0.70,
    'readability': 0.65,
    'heuristic': 0.60,
    'regex': 0.50,
    'url': 0.40,
    'ai': 0.40,
}

NON_VISIBLE_TAGS = ['script', 'style', 'noscript', 'template', 'svg']


class FieldResult:
    """Result for a single extracted field."""

    def __init__(self, value: Any = None, source: Optional[str] = None,
                 confidence: Optional[float] = None):
        self.value = value
        self.source = source
        if confidence is None:
            confidence = CONFIDENCE_SCORES.get((source or '').split(':')[0], 0.0)
        self.confidence = confidence

    def is_valid(self) -> bool:
        """Check if field has a valid value."""
        if self.value is None:
            return False
        if isinstance(self.value, str) and not self.value.strip():
            return False
        if isinstance(self.value, list) and len(self.value) == 0:
            return False
        return True

    def __repr__(self) -> str:
        return f"FieldResult({self.value!r}, source={self.source!r})"


class PageContext:
    """Parsed page handed to every extraction strategy."""

    def __init__(self, html: str, source_url: Optional[str] = None):
        self.html = html
        self.source_url = source_url
        self.soup = BeautifulSoup(html, 'lxml')
        self._visible_text: Optional[str] = None
        self._readable: Optional[ReadableContent] = None
        self._job_postings: Optional[List[Dict]] = None

    @property
    def visible_text(self) -> str:
        """Page text with scripts, styles and other non-rendered nodes removed."""
        if self._visible_text is None:
            soup = BeautifulSoup(self.html, 'lxml')
            for tag in soup(NON_VISIBLE_TAGS):
                tag.decompose()
            body = soup.body or soup
            self._visible_text = body.get_text('\n', strip=True)
        return self._visible_text

    @property
    def readable(self) -> ReadableContent:
        if self._readable is None:
            self._readable = extract_readable(self.html)
        return self._readable

    @property
    def job_postings(self) -> List[Dict]:
        """Schema.org JobPosting objects embedded as JSON-LD."""
        if self._job_postings is None:
            self._job_postings = find_job_postings(self.soup)
        return self._job_postings

    def meta_content(self, *keys: str) -> Optional[str]:
        """First non-empty <meta> content matching any property/name key."""
        for key in keys:
            tag = self.soup.find('meta', attrs={'property': key}) or self.soup.find('meta', attrs={'name': key})
            if tag and tag.get('content') and tag['content'].strip():
                return tag['content'].strip()
        return None
