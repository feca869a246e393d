"""
Metadata value sanitizer.

Two stages: structural filtering (empty values, dangling labels, punctuation
and comma artifacts) followed by placeholder-token rejection. Field-specific
normalizers for duration and location live here too.
"""
import re
from typing import Iterable, List, Optional

# Stage (a): structural artifacts left behind by label/value scraping
_COMMA_ONLY = re.compile(r'^[\s,]*$')
_LABEL_ONLY = re.compile(
    r'^(location|workload|language|duration|team|salary|published|contract type|company size)[:\s]+$',
    re.IGNORECASE,
)
_TRAILING_COLON = re.compile(r'^[^:]*:\s*[,]*\s*$')
_PUNCTUATION_ONLY = re.compile(r'^[^\w\s]+$')
_DIGIT_COMMA_LIST = re.compile(r'^[\d\s,]+$')
_EDGE_COMMA = re.compile(r'^\s*,|,\s*$')

# Stage (b): placeholder tokens meaning "no value"
PLACEHOLDER_TOKENS = {
    'n/a', 'na', 'tbd', 'tba', 'null', 'undefined', 'none', 'unknown', 'unclear',
    'not specified', 'not available', 'not provided', 'not mentioned', 'not stated',
}

DURATION_SUFFIXES = (' employment', ' contract', ' position')
REMOTE_KEYWORDS = ('remote', 'hybrid', 'anywhere', 'distributed')


def collapse_whitespace(value: str) -> str:
    return ' '.join(value.split())


def is_structural_artifact(value: str) -> bool:
    """Stage (a): reject values that are scraping debris rather than data."""
    if _COMMA_ONLY.match(value):
        return True
    if _LABEL_ONLY.match(value):
        return True
    if _TRAILING_COLON.match(value):
        return True
    if _PUNCTUATION_ONLY.match(value):
        return True
    # Short comma-separated digit runs, e.g. "1, 2, 3" from rating widgets
    if ',' in value and len(value) <= 10 and _DIGIT_COMMA_LIST.match(value):
        return True
    if _EDGE_COMMA.search(value):
        return True
    return False


def is_placeholder(value: str) -> bool:
    """Stage (b): reject tokens that stand for a missing value."""
    return value.strip().lower().rstrip('.') in PLACEHOLDER_TOKENS


def sanitize_value(value: Optional[str]) -> Optional[str]:
    """Return a cleaned value, or None when nothing meaningful is left."""
    if value is None:
        return None
    cleaned = collapse_whitespace(str(value))
    if not cleaned:
        return None
    if is_structural_artifact(cleaned):
        return None
    if is_placeholder(cleaned):
        return None
    return cleaned


def normalize_duration(value: Optional[str]) -> Optional[str]:
    """Strip a trailing "employment"/"contract"/"position" suffix."""
    cleaned = sanitize_value(value)
    if cleaned is None:
        return None
    lower = cleaned.lower()
    for suffix in DURATION_SUFFIXES:
        if lower.endswith(suffix):
            cleaned = cleaned[:-len(suffix)].strip()
            break
    return sanitize_value(cleaned)


def normalize_location(value: Optional[str]) -> Optional[str]:
    """
    Reduce an address-like value to its most useful segment.

    Remote-style values pass through untouched. Otherwise, for comma-separated
    values, the right-most segment containing a digit (usually "8001 Zürich")
    wins, else the first segment.
    """
    cleaned = sanitize_value(value)
    if cleaned is None:
        return None
    lower = cleaned.lower()
    if any(keyword in lower for keyword in REMOTE_KEYWORDS):
        return cleaned

    segments = [segment.strip() for segment in cleaned.split(',') if segment.strip()]
    if len(segments) <= 1:
        return cleaned

    for segment in reversed(segments):
        if any(ch.isdigit() for ch in segment):
            return sanitize_value(segment)
    return sanitize_value(segments[0])


def sanitize_list(items: Iterable[str], limit: int = 8) -> List[str]:
    """Whitespace-normalize, drop empties and case-insensitive duplicates, cap length."""
    seen = set()
    result = []
    for item in items:
        if not isinstance(item, str):
            continue
        cleaned = collapse_whitespace(item)
        key = cleaned.lower()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        result.append(cleaned)
        if len(result) >= limit:
            break
    return result
