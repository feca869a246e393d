"""
Readability rendition of a page: main-content HTML, its text and a short title.
"""
import logging
from typing import List, Optional

from bs4 import BeautifulSoup
from lxml.etree import ParserError
from readability import Document
from readability.readability import Unparseable

logger = logging.getLogger(__name__)


class ReadableContent:
    """Main content as isolated by readability-lxml."""

    def __init__(self, title: Optional[str] = None, html: str = "", text: str = ""):
        self.title = title
        self.html = html
        self.text = text

    def list_items(self) -> List[str]:
        if not self.html:
            return []
        soup = BeautifulSoup(self.html, 'lxml')
        return [li.get_text(' ', strip=True) for li in soup.select('ul li')]

    def paragraphs(self, min_length: int = 40) -> List[str]:
        if not self.html:
            return []
        soup = BeautifulSoup(self.html, 'lxml')
        texts = (p.get_text(' ', strip=True) for p in soup.find_all('p'))
        return [text for text in texts if len(text) > min_length]


def extract_readable(html: str) -> ReadableContent:
    """Run readability over raw HTML; an unparseable page yields empty content."""
    if not html or not html.strip():
        return ReadableContent()
    try:
        doc = Document(html)
        summary = doc.summary()
        title = doc.short_title()
    except (Unparseable, ParserError, ValueError, TypeError) as e:
        logger.debug(f"[readability] Could not isolate main content: {e}")
        return ReadableContent()

    text = BeautifulSoup(summary, 'lxml').get_text('\n', strip=True)
    title = ' '.join(title.split()) if title else None
    # readability falls back to "[no-title]" when the page has none
    if title and title.lower() == '[no-title]':
        title = None
    return ReadableContent(title=title, html=summary, text=text)
