"""
Narrative section heuristics: qualifications, roles and benefits.

List items following recognized headings are grouped into buckets. Empty
buckets fall back to readability list items, then to long paragraphs.
"""
import logging
from typing import Dict, List, Optional

from bs4 import Tag

from jobsift.models import MAX_SECTION_ITEMS
from .context import PageContext
from .sanitizer import collapse_whitespace, sanitize_list

logger = logging.getLogger(__name__)

QUALIFICATION_HEADINGS = [
    'qualifications', 'requirements', 'what you bring', 'must have', 'skills',
    'profile', 'you have', 'your toolkit', 'who you are', 'about you',
]
ROLE_HEADINGS = [
    'responsibilities', "what you'll do", 'what you will do', "what you'll be doing",
    'your impact', 'day to day', 'your tasks', 'mission', 'role',
]
BENEFIT_HEADINGS = [
    'benefits', 'what we offer', 'perks', 'why us', 'why join', 'compensation',
    'fringe', 'culture', 'we offer',
]

HEADING_TAGS = ['h2', 'h3', 'h4', 'strong', 'b']
EMPHASIS_TAGS = {'strong', 'b'}
SECTION_BREAK_TAGS = ['h1', 'h2', 'h3', 'h4']
MIN_PARAGRAPH_LENGTH = 40
MAX_FALLBACK_PARAGRAPHS = 6

BUCKETS = ('qualifications', 'roles', 'benefits')


class Sections:
    """Three narrative buckets, each capped at MAX_SECTION_ITEMS."""

    def __init__(self, qualifications: Optional[List[str]] = None,
                 roles: Optional[List[str]] = None,
                 benefits: Optional[List[str]] = None,
                 source: str = 'heuristic'):
        self.qualifications = sanitize_list(qualifications or [], MAX_SECTION_ITEMS)
        self.roles = sanitize_list(roles or [], MAX_SECTION_ITEMS)
        self.benefits = sanitize_list(benefits or [], MAX_SECTION_ITEMS)
        self.source = source

    def is_empty(self) -> bool:
        return not (self.qualifications or self.roles or self.benefits)

    def all_items(self) -> List[str]:
        return [*self.qualifications, *self.roles, *self.benefits]


def classify_heading(text: str) -> Optional[str]:
    """Map a heading to its bucket name, or None if it is not a section heading."""
    normalized = collapse_whitespace(text).lower().replace('’', "'")
    if not normalized or len(normalized) > 80:
        return None
    for bucket, keywords in (
        ('qualifications', QUALIFICATION_HEADINGS),
        ('roles', ROLE_HEADINGS),
        ('benefits', BENEFIT_HEADINGS),
    ):
        if any(keyword in normalized for keyword in keywords):
            return bucket
    return None


def _next_list_sibling(element: Tag) -> Optional[Tag]:
    for sibling in element.find_next_siblings(True):
        if sibling.name in ('ul', 'ol'):
            return sibling
        if sibling.name in SECTION_BREAK_TAGS or sibling.find(SECTION_BREAK_TAGS):
            return None
    return None


def _following_list(heading: Tag) -> Optional[Tag]:
    """The list that belongs to a heading: a later sibling, or for inline emphasis, its parent's."""
    found = _next_list_sibling(heading)
    if found is None and heading.name in EMPHASIS_TAGS and heading.parent is not None:
        found = _next_list_sibling(heading.parent)
    return found


def extract_sections(ctx: PageContext) -> Sections:
    buckets: Dict[str, List[str]] = {name: [] for name in BUCKETS}

    for heading in ctx.soup.find_all(HEADING_TAGS):
        bucket = classify_heading(heading.get_text(' ', strip=True))
        if bucket is None:
            continue
        items = _following_list(heading)
        if items is None:
            continue
        for li in items.find_all('li'):
            text = collapse_whitespace(li.get_text(' ', strip=True))
            if text:
                buckets[bucket].append(text)

    if any(not values for values in buckets.values()):
        readable_items = ctx.readable.list_items()
        for name in BUCKETS:
            if not buckets[name] and readable_items:
                buckets[name] = list(readable_items)

    if any(not values for values in buckets.values()):
        paragraphs = ctx.readable.paragraphs(MIN_PARAGRAPH_LENGTH)[:MAX_FALLBACK_PARAGRAPHS]
        for name in BUCKETS:
            if not buckets[name] and paragraphs:
                buckets[name] = list(paragraphs)

    sections = Sections(**buckets)
    logger.debug(
        f"[sections] {len(sections.qualifications)} qualifications, "
        f"{len(sections.roles)} roles, {len(sections.benefits)} benefits"
    )
    return sections
