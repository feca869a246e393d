"""
JSON-LD extractor.

Reads job information from structured JSON-LD data (Schema.org JobPosting).
"""

import json
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}')

# Two distinct fallbacks reveal which date parts the text left out
_PARSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2004, 2, 2))

# Schema.org employmentType values grouped by the field they describe
WORKLOAD_TYPES = {
    'FULL_TIME': 'Full-time',
    'PART_TIME': 'Part-time',
}
DURATION_TYPES = {
    'PERMANENT': 'Permanent',
    'TEMPORARY': 'Temporary',
    'CONTRACTOR': 'Contract',
    'INTERN': 'Internship',
    'PER_DIEM': 'Per diem',
}


def find_job_postings(soup: BeautifulSoup) -> List[Dict]:
    """Return every JobPosting object found in JSON-LD script blocks."""
    postings = []
    for script in soup.find_all('script', type='application/ld+json'):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.debug(f"Failed to parse JSON-LD: {e}")
            continue
        postings.extend(item for item in _flatten_jsonld(data) if _is_job_posting(item))
    return postings


def _flatten_jsonld(data: Any) -> List[Dict]:
    """Flatten JSON-LD structure to list of items."""
    items = []

    if isinstance(data, dict):
        if _is_job_posting(data):
            items.append(data)
        elif '@graph' in data and isinstance(data['@graph'], list):
            items.extend([item for item in data['@graph'] if isinstance(item, dict)])
        elif 'itemListElement' in data and isinstance(data['itemListElement'], list):
            for element in data['itemListElement']:
                if isinstance(element, dict) and isinstance(element.get('item'), dict):
                    items.append(element['item'])
    elif isinstance(data, list):
        for item in data:
            items.extend(_flatten_jsonld(item))

    return items


def _is_job_posting(item: Dict) -> bool:
    """Check if JSON-LD item is a JobPosting."""
    item_type = item.get('@type', '')
    if isinstance(item_type, str):
        return 'JobPosting' in item_type
    elif isinstance(item_type, list):
        return any('JobPosting' in str(t) for t in item_type)
    return False


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = ' '.join(str(value).split())
    return text or None


def posting_title(posting: Dict) -> Optional[str]:
    return _text(posting.get('title'))


def posting_company(posting: Dict) -> Optional[str]:
    org = posting.get('hiringOrganization') or posting.get('employer')
    if isinstance(org, dict):
        return _text(org.get('name') or org.get('legalName'))
    return _text(org)


def posting_company_url(posting: Dict) -> Optional[str]:
    org = posting.get('hiringOrganization')
    if not isinstance(org, dict):
        return None
    url = org.get('sameAs') or org.get('url')
    if isinstance(url, list):
        url = url[0] if url else None
    return _text(url)


def posting_location(posting: Dict) -> Optional[str]:
    if str(posting.get('jobLocationType', '')).upper() == 'TELECOMMUTE':
        return 'Remote'

    loc = posting.get('jobLocation')
    if isinstance(loc, list):
        loc = loc[0] if loc else None
    if isinstance(loc, str):
        return _text(loc)
    if not isinstance(loc, dict):
        return None

    addr = loc.get('address')
    if isinstance(addr, str):
        return _text(addr)
    if isinstance(addr, dict):
        # Postal code and locality read as one segment: "8001 Zürich"
        town = ' '.join(p for p in (_text(addr.get('postalCode')), _text(addr.get('addressLocality'))) if p)
        parts = [p for p in (_text(addr.get('streetAddress')), town, _text(addr.get('addressRegion'))) if p]
        country = addr.get('addressCountry')
        if isinstance(country, dict):
            country = country.get('name')
        if not parts and country:
            parts.append(str(country))
        return ', '.join(parts) if parts else None
    return _text(loc.get('name'))


def normalize_date(value: Any) -> Optional[str]:
    """
    Parse a date-ish value to YYYY-MM-DD.

    Unparseable text, and dates missing a year, month or day ("March 2024"),
    are returned as-is.
    """
    text = _text(value)
    if not text:
        return None
    if ISO_DATE_PATTERN.match(text):
        try:
            return date_parser.isoparse(text).strftime('%Y-%m-%d')
        except (ValueError, OverflowError):
            pass
    try:
        parsed = [date_parser.parse(text, dayfirst=True, default=default) for default in _PARSE_DEFAULTS]
    except (ValueError, OverflowError):
        return text
    if parsed[0].date() != parsed[1].date():
        return text
    return parsed[0].strftime('%Y-%m-%d')


def posting_published_at(posting: Dict) -> Optional[str]:
    return normalize_date(posting.get('datePosted'))


def _employment_types(posting: Dict) -> List[str]:
    raw = posting.get('employmentType')
    if isinstance(raw, str):
        raw = [part.strip() for part in raw.split(',')]
    if not isinstance(raw, list):
        return []
    return [str(value).strip().upper().replace('-', '_').replace(' ', '_') for value in raw if value]


def posting_workload(posting: Dict) -> Optional[str]:
    labels = [WORKLOAD_TYPES[t] for t in _employment_types(posting) if t in WORKLOAD_TYPES]
    return ', '.join(labels) if labels else None


def posting_duration(posting: Dict) -> Optional[str]:
    for value in _employment_types(posting):
        if value in DURATION_TYPES:
            return DURATION_TYPES[value]
    return None


def posting_salary(posting: Dict) -> Optional[str]:
    salary = posting.get('baseSalary') or posting.get('estimatedSalary')
    if isinstance(salary, list):
        salary = salary[0] if salary else None
    if not isinstance(salary, dict):
        return _text(salary)

    currency = _text(salary.get('currency'))
    value = salary.get('value')
    unit = None
    if isinstance(value, dict):
        unit = _text(value.get('unitText'))
        low = value.get('minValue')
        high = value.get('maxValue')
        single = value.get('value')
        if low is not None and high is not None:
            amount = f"{_format_amount(low)} - {_format_amount(high)}"
        elif single is not None:
            amount = _format_amount(single)
        else:
            amount = _format_amount(low if low is not None else high) if (low or high) else None
    else:
        amount = _format_amount(value) if value is not None else None

    if not amount:
        return None
    parts = [p for p in (currency, amount) if p]
    text = ' '.join(parts)
    if unit:
        text += f" / {unit.lower()}"
    return text


def _format_amount(value: Any) -> Optional[str]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return _text(value)
    if number.is_integer():
        return f"{int(number):,}".replace(',', "'")
    return f"{number:,.2f}".replace(',', "'")
