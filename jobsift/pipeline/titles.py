"""
Title and company strategies.

Each strategy takes a PageContext and returns a FieldResult or None; the
extractor walks them in order and keeps the first sanitized value.
"""
import re
import logging
from typing import Callable, List, Optional
from urllib.parse import urljoin

from jobsift.core.extraction_heuristics import guess_company_from_url
from .context import FieldResult, PageContext
from .jsonld import posting_company, posting_company_url, posting_title
from .sanitizer import collapse_whitespace

logger = logging.getLogger(__name__)

Strategy = Callable[[PageContext], Optional[FieldResult]]

# "Senior Engineer at Acme AG - jobs.ch" / "Engineer at Acme | Careers"
TITLE_COMPANY_PATTERN = re.compile(r'\bat\s+(.+?)\s*(?:[-|–]\s*[^-|–]+)?$', re.IGNORECASE)

COMPANY_SELECTORS = [
    '[data-cy="company-link"] span',
    '[data-cy="company-link"]',
    '[itemprop="hiringOrganization"] [itemprop="name"]',
    '[data-company]',
    '.company-name',
    '.company',
]

COMPANY_LINK_SELECTORS = [
    '[data-cy="company-url"]',
    '[data-cy="company-link"]',
    '.company a[href]',
    '.company-name a[href]',
    '[itemprop="hiringOrganization"] a[href]',
    'a.company-link',
]


def _text_of(ctx: PageContext, selector: str) -> Optional[str]:
    element = ctx.soup.select_one(selector)
    if element is None:
        return None
    if element.name != 'span' and element.get('data-company'):
        return collapse_whitespace(element['data-company'])
    text = collapse_whitespace(element.get_text(' ', strip=True))
    return text or None


# Title strategies

def title_from_meta(ctx: PageContext) -> Optional[FieldResult]:
    value = ctx.meta_content('og:title', 'twitter:title', 'title')
    return FieldResult(value, 'meta') if value else None


def title_from_jsonld(ctx: PageContext) -> Optional[FieldResult]:
    for posting in ctx.job_postings:
        value = posting_title(posting)
        if value:
            return FieldResult(value, 'jsonld')
    return None


def title_from_heading(ctx: PageContext) -> Optional[FieldResult]:
    value = _text_of(ctx, 'h1')
    return FieldResult(value, 'dom:h1') if value else None


def title_from_readability(ctx: PageContext) -> Optional[FieldResult]:
    value = ctx.readable.title
    return FieldResult(value, 'readability') if value else None


def title_from_title_tag(ctx: PageContext) -> Optional[FieldResult]:
    if ctx.soup.title is None:
        return None
    value = collapse_whitespace(ctx.soup.title.get_text())
    return FieldResult(value, 'dom:title') if value else None


TITLE_STRATEGIES: List[Strategy] = [
    title_from_meta,
    title_from_jsonld,
    title_from_heading,
    title_from_readability,
    title_from_title_tag,
]


# Company strategies

def company_from_board_markup(ctx: PageContext) -> Optional[FieldResult]:
    value = _text_of(ctx, COMPANY_SELECTORS[0]) or _text_of(ctx, COMPANY_SELECTORS[1])
    return FieldResult(value, 'structured:company-link') if value else None


def company_from_meta(ctx: PageContext) -> Optional[FieldResult]:
    value = ctx.meta_content('og:site_name', 'twitter:data1', 'company')
    return FieldResult(value, 'meta') if value else None


def company_from_jsonld(ctx: PageContext) -> Optional[FieldResult]:
    for posting in ctx.job_postings:
        value = posting_company(posting)
        if value:
            return FieldResult(value, 'jsonld')
    return None


def company_from_markup(ctx: PageContext) -> Optional[FieldResult]:
    for selector in COMPANY_SELECTORS[2:]:
        value = _text_of(ctx, selector)
        if value:
            return FieldResult(value, f'dom:{selector}')
    return None


def company_from_title_pattern(ctx: PageContext) -> Optional[FieldResult]:
    titles = [ctx.meta_content('og:title')]
    if ctx.soup.title is not None:
        titles.append(ctx.soup.title.get_text())
    for title in titles:
        if not title:
            continue
        match = TITLE_COMPANY_PATTERN.search(collapse_whitespace(title))
        if match:
            return FieldResult(match.group(1).strip(), 'regex:title')
    return None


def company_from_url(ctx: PageContext) -> Optional[FieldResult]:
    value = guess_company_from_url(ctx.source_url)
    return FieldResult(value, 'url') if value else None


COMPANY_STRATEGIES: List[Strategy] = [
    company_from_board_markup,
    company_from_meta,
    company_from_jsonld,
    company_from_markup,
    company_from_title_pattern,
    company_from_url,
]


def extract_company_url(ctx: PageContext) -> Optional[str]:
    """Link to the hiring company's own page, absolute when a base URL is known."""
    for posting in ctx.job_postings:
        url = posting_company_url(posting)
        if url:
            return url
    for selector in COMPANY_LINK_SELECTORS:
        element = ctx.soup.select_one(selector)
        if element is None or not element.get('href'):
            continue
        href = element['href'].strip()
        if href.startswith('#') or href.lower().startswith(('javascript:', 'mailto:')):
            continue
        return urljoin(ctx.source_url, href) if ctx.source_url else href
    return None
