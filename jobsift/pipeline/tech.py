"""
Technology stack detection against a canonical term list plus aliases.
"""
import re
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

CANONICAL_TECH = [
    'TypeScript', 'JavaScript', 'Node.js', 'React', 'Next.js', 'Vue', 'Angular',
    'Svelte', 'Python', 'Django', 'Flask', 'FastAPI', 'Ruby', 'Rails', 'Java',
    'Spring', 'Kotlin', 'Swift', 'Go', 'Rust', 'C#', '.NET', 'PHP', 'AWS', 'GCP',
    'Azure', 'PostgreSQL', 'MySQL', 'MongoDB', 'Redis', 'GraphQL', 'REST',
    'Docker', 'Kubernetes', 'Terraform', 'CI/CD', 'Jest', 'Vitest', 'Playwright',
]

ALIASES: Dict[str, str] = {
    'ts': 'TypeScript',
    'js': 'JavaScript',
    'node': 'Node.js',
    'nodejs': 'Node.js',
    'reactjs': 'React',
    'react.js': 'React',
    'nextjs': 'Next.js',
    'vuejs': 'Vue',
    'vue.js': 'Vue',
    'angularjs': 'Angular',
    'golang': 'Go',
    'ruby on rails': 'Rails',
    'spring boot': 'Spring',
    'google cloud': 'GCP',
    'amazon web services': 'AWS',
    'postgres': 'PostgreSQL',
    'mongo': 'MongoDB',
    'k8s': 'Kubernetes',
    'cicd': 'CI/CD',
    'ci / cd': 'CI/CD',
    'restful': 'REST',
    'dotnet': '.NET',
    'csharp': 'C#',
}

# Characters that may surround a term; "." and "/" included so "Node.js," and "AWS/GCP" match
BOUNDARY = r'[\s,.;:()\[\]{}<>\-_/\\!?"\'|]'


# Everyday words that only count as technologies when written as such
CASE_SENSITIVE_TERMS = {'Go', 'REST'}


def _term_pattern(term: str, ignore_case: bool = True) -> Pattern:
    flags = re.IGNORECASE if ignore_case else 0
    return re.compile(rf'(?:^|{BOUNDARY}){re.escape(term)}(?={BOUNDARY}|$)', flags)


def _build_patterns() -> List[Tuple[Pattern, str]]:
    patterns = [(_term_pattern(term, term not in CASE_SENSITIVE_TERMS), term) for term in CANONICAL_TECH]
    patterns.extend((_term_pattern(alias), canonical) for alias, canonical in ALIASES.items())
    return patterns


_PATTERNS = _build_patterns()


def extract_tech(texts: Iterable[Optional[str]]) -> List[str]:
    """
    Find canonical technology names mentioned in the given texts.

    Matching is case-insensitive (except for CASE_SENSITIVE_TERMS) and bounded
    by whitespace or punctuation, so "Go" is not found inside "Google".
    Returns sorted, unique canonical names.
    """
    haystack = '\n'.join(text for text in texts if text)
    if not haystack:
        return []
    found = {canonical for pattern, canonical in _PATTERNS if pattern.search(haystack)}
    return sorted(found, key=str.lower)
