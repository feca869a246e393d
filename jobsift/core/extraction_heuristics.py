"""
URL heuristics for job link identification.
Normalization, job-detail markers and the skip denylist applied before fetching.
"""
import re
import logging
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from jobsift.config import DEFAULT_DETAIL_MARKERS

logger = logging.getLogger(__name__)

# Tracking parameters to strip
TRACKING_PARAMS = ['utm_source', 'utm_medium', 'utm_campaign', 'utm_term',
                   'utm_content', 'fbclid', 'gclid', '_ga', 'ref', 'source']

# Whole path segments that never lead to a job posting
SKIP_SEGMENT_PATTERN = re.compile(
    r"/(login|logout|register|signin|signup|account|profile|settings|"
    r"privacy|terms|imprint|impressum|cookies?)(?=/|$)",
    re.IGNORECASE,
)

# Downloads, never HTML postings
SKIP_EXTENSION_PATTERN = re.compile(r"\.(pdf|docx?|zip|png|jpe?g|gif|svg)$", re.IGNORECASE)

# Hosts whose name says nothing about the hiring company
JOB_BOARD_HOSTS = {
    'jobs', 'careers', 'career', 'indeed', 'linkedin', 'glassdoor', 'stepstone',
    'monster', 'jobup', 'xing', 'greenhouse', 'lever', 'workday', 'myworkdayjobs',
    'smartrecruiters', 'personio', 'recruitee', 'join', 'workable', 'bamboohr',
}


def normalize_url(url: str) -> str:
    """
    Normalize URL for deduplication:
    - Strip tracking parameters
    - Remove trailing slashes
    - Lowercase host
    """
    try:
        parsed = urlparse(url)

        netloc = parsed.netloc.lower()

        query_params = parse_qs(parsed.query, keep_blank_values=True)
        tracking = {p.lower() for p in TRACKING_PARAMS}
        filtered_params = {k: v for k, v in query_params.items() if k.lower() not in tracking}

        new_query = urlencode(filtered_params, doseq=True) if filtered_params else ''

        path = parsed.path.rstrip('/')

        return urlunparse((
            parsed.scheme.lower(),
            netloc,
            path,
            parsed.params,
            new_query,
            ''  # Remove fragment
        ))
    except ValueError as e:
        logger.warning(f"Error normalizing URL {url}: {e}")
        return url


def is_mailto_link(href: str) -> bool:
    """Check if href is a mailto link."""
    return href.strip().lower().startswith('mailto:')


def is_non_navigational(href: str) -> bool:
    """Anchors, javascript: and mailto: links never lead to a posting."""
    href = href.strip().lower()
    return not href or href.startswith('#') or href.startswith('javascript:') or is_mailto_link(href)


def matches_detail_marker(href: str, markers: Optional[Iterable[str]] = None) -> bool:
    """True when the href contains one of the job-detail path markers."""
    markers = DEFAULT_DETAIL_MARKERS if markers is None else markers
    href_lower = href.lower()
    return any(marker.lower() in href_lower for marker in markers)


def should_skip_url(url: str, markers: Optional[Iterable[str]] = None) -> Tuple[bool, Optional[str]]:
    """
    Decide whether a link should be skipped before it is fetched.

    Returns:
        (skip, reason) where reason is None for links worth fetching
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return True, 'invalid_url'

    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return True, 'invalid_url'

    path = parsed.path or '/'
    if SKIP_EXTENSION_PATTERN.search(path):
        return True, 'denylisted_path'

    # The slug after a detail marker is the posting itself ("account-manager-123")
    if SKIP_SEGMENT_PATTERN.search(_path_before_marker(path, markers)):
        return True, 'denylisted_path'

    if markers is not None and not matches_detail_marker(path, markers):
        return True, 'not_a_detail_page'

    # A detail marker must be followed by an identifier
    path_lower = path.lower().rstrip('/')
    for marker in (markers if markers is not None else DEFAULT_DETAIL_MARKERS):
        marker = marker.lower().rstrip('/')
        if path_lower.endswith(marker):
            return True, 'missing_job_id'

    return False, None


def _path_before_marker(path: str, markers: Optional[Iterable[str]]) -> str:
    path_lower = path.lower()
    cut = len(path)
    for marker in (markers if markers is not None else DEFAULT_DETAIL_MARKERS):
        index = path_lower.find(marker.lower().rstrip('/'))
        if 0 <= index < cut:
            cut = index
    return path[:cut]


def source_domain(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    if not host:
        return None
    return host[4:] if host.startswith('www.') else host


def guess_company_from_url(url: Optional[str]) -> Optional[str]:
    """
    Derive a company name from the page host, e.g. careers.acme.com -> "Acme".
    Returns None for job boards and hosts without a usable label.
    """
    host = source_domain(url)
    if not host:
        return None
    labels = [label for label in host.split('.') if label]
    if len(labels) < 2:
        return None
    name = labels[-2]
    if name in JOB_BOARD_HOSTS or len(name) < 2 or name.isdigit():
        return None
    words = re.split(r'[-_]+', name)
    return ' '.join(word.capitalize() for word in words if word) or None


def unique_normalized(urls: Iterable[str]) -> List[str]:
    """Normalize and de-duplicate, preserving first occurrence order."""
    seen = set()
    result = []
    for url in urls:
        normalized = normalize_url(url)
        if normalized in seen:
            continue
        seen.add(normalized)
        result.append(normalized)
    return result
