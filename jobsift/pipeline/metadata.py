"""
Structured metadata extraction.

Per field, an ordered list of strategies: structured anchors first (job board
data attributes, JSON-LD, microdata, meta tags), then label-keyed text
patterns. The first candidate surviving the sanitizer and the field's
normalizer wins.
"""
import re
import logging
from typing import Callable, Dict, List, Optional, Pattern, Sequence

from .context import FieldResult, PageContext
from .jsonld import (
    normalize_date,
    posting_duration,
    posting_location,
    posting_published_at,
    posting_salary,
    posting_workload,
)
from .sanitizer import (
    collapse_whitespace,
    normalize_duration,
    normalize_location,
    sanitize_value,
)

logger = logging.getLogger(__name__)

Strategy = Callable[[PageContext], Optional[FieldResult]]

METADATA_FIELDS = ('workload', 'duration', 'language', 'location', 'published_at', 'salary', 'company_size')

# Labels that end a value when text runs on without line breaks
KNOWN_METADATA_LABELS = [
    'workload', 'pensum', 'employment rate', 'contract type', 'contract',
    'employment type', 'duration', 'start date', 'place of work', 'workplace',
    'location', 'work location', 'office', 'company', 'department', 'team',
    'language', 'salary', 'publication date',
]

PERCENT = r'([0-9]{1,3}\s?(?:[-–]\s?[0-9]{1,3}\s?)?%)'
WORKLOAD_VALUE = re.compile(r'\d|full[- ]time|part[- ]time', re.IGNORECASE)

WORKLOAD_PATTERNS = [
    re.compile(rf'\bworkload[:\s-]*{PERCENT}', re.IGNORECASE),
    re.compile(rf'\bpensum[:\s-]*{PERCENT}', re.IGNORECASE),
    re.compile(rf'\bemployment rate[:\s-]*{PERCENT}', re.IGNORECASE),
]

CONTRACT_PATTERNS = [
    re.compile(r'\b(?:contract type|employment type)[:\s-]*([^.\n]+)', re.IGNORECASE),
]

# (pattern, group renderer) in priority order
DURATION_PATTERNS = [
    (re.compile(r'\b(unlimited|permanent)(?:\s+(?:employment|contract))?\b', re.IGNORECASE),
     lambda m: m.group(1)),
    (re.compile(r'\b(contract|assignment)\s+for\s+(\d+\s*(?:months?|years?))', re.IGNORECASE),
     lambda m: f"{m.group(1)} for {m.group(2)}"),
    (re.compile(r'\b(\d+\s*(?:months?|years?))\s+(?:contract|mission)', re.IGNORECASE),
     lambda m: m.group(0)),
    (re.compile(r'\b(temporary|fixed[- ]term)(?:\s+(?:position|contract))?\b', re.IGNORECASE),
     lambda m: m.group(1)),
]

LANGUAGE_PATTERNS = [
    re.compile(r'\blanguage requirements[:\s-]*([^.\n]+)', re.IGNORECASE),
    re.compile(r'\brequired languages[:\s-]*([^.\n]+)', re.IGNORECASE),
    re.compile(r'\blanguages?[:\s-]*([^.\n]+)', re.IGNORECASE),
]

LANGUAGE_KEYWORDS = [
    'english', 'german', 'french', 'spanish', 'italian', 'portuguese', 'dutch',
    'swedish', 'norwegian', 'danish', 'finnish', 'polish', 'russian', 'chinese',
    'japanese', 'korean', 'arabic', 'hindi', 'fluent', 'native', 'intermediate',
    'beginner', 'advanced', 'conversational', 'business', 'technical',
]

LOCATION_PATTERNS = [
    re.compile(r'\bplace of work[:\s-]*([^.\n]+)', re.IGNORECASE),
    re.compile(r'\bwork location[:\s-]*([^.\n]+)', re.IGNORECASE),
    re.compile(r'\blocation[:\s-]+([^.\n]+)', re.IGNORECASE),
    re.compile(r'\bworkplace[:\s-]+([^.\n]+)', re.IGNORECASE),
]

COMPANY_SIZE_PATTERNS = [
    re.compile(r'\b(?:company|team)\s*(?:size|größe)[:\s-]*(\d[\d\s\-–+]*)', re.IGNORECASE),
    re.compile(r'\b(\d{1,5}\+?\s*(?:people|members|developers|engineers|team members|employees|staff))\b', re.IGNORECASE),
    re.compile(r'\b((?:team|gruppe)\s*(?:von|of)\s*\d+)', re.IGNORECASE),
]

SMALL_AGILE_PATTERNS = [
    re.compile(r'\b(?:klein|small|wenig)\w*[,\s]+(?:agil|agile)\w*\s*team', re.IGNORECASE),
    re.compile(r'\b(?:agil|agile)\w*[,\s]+(?:klein|small|wenig)\w*\s*team', re.IGNORECASE),
    re.compile(r'\b(?:klein|small)\w*\s+team', re.IGNORECASE),
]

PUBLISHED_AT_META = ['article:published_time', 'date', 'publication_date', 'datePosted']


# Helpers

def trim_at_known_label(value: str, own_label: Optional[str] = None) -> str:
    """Cut a value at the next metadata label or sentence break."""
    if not value:
        return ''
    end = len(value)
    lower = value.lower()
    for label in KNOWN_METADATA_LABELS:
        if own_label and label == own_label.lower():
            continue
        idx = lower.find(label)
        if idx > 0:
            end = min(end, idx)
    for stop in ('\n', '\r', ';', '. '):
        idx = value.find(stop)
        if idx != -1:
            end = min(end, idx)
    return collapse_whitespace(value[:end]).rstrip('.')


def extract_line_by_label(text: str, labels: Sequence[str]) -> Optional[str]:
    """Value following "Label:" on the same line, longest label first."""
    for label in sorted(set(labels), key=len, reverse=True):
        match = re.search(rf'\b{re.escape(label)}\b\s*[:\-–—]?\s*', text, re.IGNORECASE)
        if not match:
            continue
        value = trim_at_known_label(text[match.end():], own_label=label)
        value = re.sub(r'^(?:type|kind)\s*[:\-–—]?\s*', '', value, flags=re.IGNORECASE)
        value = sanitize_value(value.lstrip(':-–— '))
        if value:
            return value
    return None


def match_patterns(text: str, patterns: Sequence[Pattern]) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            value = sanitize_value(trim_at_known_label(match.group(1)))
            if value:
                return value
    return None


def anchor_value(ctx: PageContext, data_cy: Sequence[str], labels: Optional[Sequence[str]] = None) -> Optional[str]:
    """
    Value from a job-board metadata block such as

        <li data-cy="info-workload"><span>Workload:</span><span>80%</span></li>

    With labels, the element following the label span is read; without, the
    whole block's text.
    """
    for key in data_cy:
        element = ctx.soup.find(attrs={'data-cy': key})
        if element is None:
            continue
        if not labels:
            return collapse_whitespace(element.get_text(' ', strip=True)) or None
        for span in element.find_all(['span', 'dt', 'strong']):
            text = span.get_text(' ', strip=True)
            if any(label.lower() in text.lower() for label in labels):
                value_element = span.find_next_sibling()
                if value_element is not None:
                    return collapse_whitespace(value_element.get_text(' ', strip=True)) or None
    return None


def _from_postings(ctx: PageContext, reader: Callable[[Dict], Optional[str]]) -> Optional[FieldResult]:
    for posting in ctx.job_postings:
        value = reader(posting)
        if value:
            return FieldResult(value, 'jsonld')
    return None


def _structured(value: Optional[str], anchor: str) -> Optional[FieldResult]:
    return FieldResult(value, f'structured:{anchor}') if value else None


def _regex(value: Optional[str], name: str) -> Optional[FieldResult]:
    return FieldResult(value, f'regex:{name}') if value else None


def _heuristic(value: Optional[str], name: str) -> Optional[FieldResult]:
    return FieldResult(value, f'heuristic:{name}') if value else None


# Workload

def workload_from_anchor(ctx: PageContext) -> Optional[FieldResult]:
    return _structured(anchor_value(ctx, ['info-workload'], ['Workload']), 'info-workload')


def workload_from_jsonld(ctx: PageContext) -> Optional[FieldResult]:
    return _from_postings(ctx, posting_workload)


def workload_from_markup(ctx: PageContext) -> Optional[FieldResult]:
    element = ctx.soup.select_one("[data-field='workload'], [data-testid='workload'], .job-workload")
    if element is None:
        return None
    value = trim_at_known_label(element.get_text(' ', strip=True))
    return FieldResult(value, 'dom:workload') if value else None


def workload_from_label(ctx: PageContext) -> Optional[FieldResult]:
    value = extract_line_by_label(ctx.visible_text, ['workload', 'pensum', 'employment rate'])
    # Prose such as "manage your workload" is not a workload value
    if value and WORKLOAD_VALUE.search(value):
        return FieldResult(value, 'heuristic:label')
    return None


def workload_from_pattern(ctx: PageContext) -> Optional[FieldResult]:
    return _regex(match_patterns(ctx.visible_text, WORKLOAD_PATTERNS), 'workload')


# Duration

def duration_from_anchor(ctx: PageContext) -> Optional[FieldResult]:
    return _structured(anchor_value(ctx, ['info-contract'], ['Contract type']), 'info-contract')


def duration_from_jsonld(ctx: PageContext) -> Optional[FieldResult]:
    return _from_postings(ctx, posting_duration)


def duration_from_contract_label(ctx: PageContext) -> Optional[FieldResult]:
    return _regex(match_patterns(ctx.visible_text, CONTRACT_PATTERNS), 'contract')


def duration_from_pattern(ctx: PageContext) -> Optional[FieldResult]:
    for pattern, render in DURATION_PATTERNS:
        match = pattern.search(ctx.visible_text)
        if match:
            value = sanitize_value(render(match))
            if value:
                return FieldResult(value, 'regex:duration')
    return None


def duration_from_label(ctx: PageContext) -> Optional[FieldResult]:
    return _heuristic(extract_line_by_label(ctx.visible_text, ['duration', 'contract type', 'employment type']), 'label')


# Language

def _is_language(value: str) -> bool:
    lower = value.lower()
    return 0 < len(value) <= 100 and any(keyword in lower for keyword in LANGUAGE_KEYWORDS)


def language_from_anchor(ctx: PageContext) -> Optional[FieldResult]:
    return _structured(anchor_value(ctx, ['info-language'], ['Language']), 'info-language')


def language_from_pattern(ctx: PageContext) -> Optional[FieldResult]:
    for pattern in LANGUAGE_PATTERNS:
        for match in pattern.finditer(ctx.visible_text):
            value = sanitize_value(trim_at_known_label(match.group(1), own_label='language'))
            if value and _is_language(value):
                return FieldResult(value, 'regex:language')
    return None


# Location

def location_from_anchor(ctx: PageContext) -> Optional[FieldResult]:
    return _structured(anchor_value(ctx, ['info-location-link', 'info-location']), 'info-location')


def location_from_jsonld(ctx: PageContext) -> Optional[FieldResult]:
    return _from_postings(ctx, posting_location)


def location_from_microdata(ctx: PageContext) -> Optional[FieldResult]:
    element = ctx.soup.select_one('[itemprop="jobLocation"] [itemprop="addressLocality"], [itemprop="addressLocality"]')
    if element is None:
        return None
    value = collapse_whitespace(element.get('content') or element.get_text(' ', strip=True))
    return FieldResult(value, 'dom:microdata') if value else None


def location_from_pattern(ctx: PageContext) -> Optional[FieldResult]:
    for pattern in LOCATION_PATTERNS:
        match = pattern.search(ctx.visible_text)
        if match:
            value = sanitize_value(trim_at_known_label(match.group(1), own_label='location'))
            if value:
                return FieldResult(value, 'regex:location')
    return None


# Publication date

def published_from_anchor(ctx: PageContext) -> Optional[FieldResult]:
    value = anchor_value(ctx, ['info-publication'], ['Publication date'])
    return _structured(normalize_date(value) if value else None, 'info-publication')


def published_from_jsonld(ctx: PageContext) -> Optional[FieldResult]:
    return _from_postings(ctx, posting_published_at)


def published_from_meta(ctx: PageContext) -> Optional[FieldResult]:
    value = ctx.meta_content(*PUBLISHED_AT_META)
    if not value:
        element = ctx.soup.find(attrs={'itemprop': 'datePosted'})
        if element is not None:
            value = element.get('content') or element.get_text(' ', strip=True)
    return FieldResult(normalize_date(value), 'meta') if value else None


def published_from_time(ctx: PageContext) -> Optional[FieldResult]:
    element = ctx.soup.find('time', attrs={'datetime': True}) or ctx.soup.find('time')
    if element is None:
        return None
    value = (element.get('datetime') or '').strip() or element.get_text(' ', strip=True)
    return FieldResult(normalize_date(value), 'dom:time') if value else None


# Salary

def salary_from_anchor(ctx: PageContext) -> Optional[FieldResult]:
    return _structured(anchor_value(ctx, ['info-salary_estimate', 'info-salary'], ['Salary']), 'info-salary')


def salary_from_jsonld(ctx: PageContext) -> Optional[FieldResult]:
    return _from_postings(ctx, posting_salary)


def salary_from_label(ctx: PageContext) -> Optional[FieldResult]:
    value = extract_line_by_label(ctx.visible_text, ['salary range', 'salary', 'compensation'])
    if value and any(ch.isdigit() for ch in value):
        return FieldResult(value, 'heuristic:label')
    return None


# Company size

def company_size_from_anchor(ctx: PageContext) -> Optional[FieldResult]:
    value = anchor_value(ctx, ['info-company_size', 'info-team_size'], ['Company size', 'Team size'])
    return _structured(value, 'info-company_size')


def company_size_from_pattern(ctx: PageContext) -> Optional[FieldResult]:
    text = ctx.visible_text
    for pattern in SMALL_AGILE_PATTERNS:
        match = pattern.search(text)
        if match:
            lower = match.group(0).lower()
            if 'klein' in lower:
                value = 'klein'
            elif 'small' in lower:
                value = 'small'
            else:
                value = 'agil'
            return FieldResult(value, 'regex:company_size')
    value = match_patterns(text, COMPANY_SIZE_PATTERNS)
    return FieldResult(value, 'regex:company_size') if value else None


FIELD_STRATEGIES: Dict[str, List[Strategy]] = {
    'workload': [workload_from_anchor, workload_from_jsonld, workload_from_markup,
                 workload_from_label, workload_from_pattern],
    'duration': [duration_from_anchor, duration_from_jsonld, duration_from_contract_label,
                 duration_from_pattern, duration_from_label],
    'language': [language_from_anchor, language_from_pattern],
    'location': [location_from_anchor, location_from_jsonld, location_from_microdata,
                 location_from_pattern],
    'published_at': [published_from_anchor, published_from_jsonld, published_from_meta,
                     published_from_time],
    'salary': [salary_from_anchor, salary_from_jsonld, salary_from_label],
    'company_size': [company_size_from_anchor, company_size_from_pattern],
}

FIELD_NORMALIZERS: Dict[str, Callable[[Optional[str]], Optional[str]]] = {
    'duration': normalize_duration,
    'location': normalize_location,
}


def run_cascade(ctx: PageContext, strategies: Sequence[Strategy],
                normalizer: Callable[[Optional[str]], Optional[str]] = sanitize_value) -> Optional[FieldResult]:
    """First strategy whose value survives sanitizing and normalizing."""
    for strategy in strategies:
        result = strategy(ctx)
        if result is None or not result.is_valid():
            continue
        value = normalizer(result.value)
        if value:
            result.value = value
            return result
    return None


def extract_metadata(ctx: PageContext) -> Dict[str, FieldResult]:
    fields: Dict[str, FieldResult] = {}
    for name in METADATA_FIELDS:
        result = run_cascade(ctx, FIELD_STRATEGIES[name], FIELD_NORMALIZERS.get(name, sanitize_value))
        if result is not None:
            fields[name] = result
    logger.debug(f"[metadata] Extracted {sorted(fields)} from {ctx.source_url or 'raw html'}")
    return fields
