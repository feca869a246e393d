"""
Heuristic fit scoring of a job posting against a candidate profile.

Four weighted dimensions summing to at most 100:
- stack coverage    50
- keyword coverage  15
- experience        15
- environment       20
The total is rounded up to the next multiple of 5.
"""
import math
import re
import logging
from typing import List, Optional, Set

from jobsift.errors import ScoringError
from jobsift.models import CandidateProfile, FitAssessment, JobPosting

logger = logging.getLogger(__name__)

STACK_WEIGHT = 50
KEYWORD_WEIGHT = 15
EXPERIENCE_WEIGHT = 15
ENVIRONMENT_CAP = 20

# Neutral stack score when the posting names no technologies
EMPTY_STACK_SCORE = 25

SMALL_TEAM_BONUS = 6
REMOTE_BONUS = 4
DESIGN_BONUS = 4
AI_BONUS = 4
MOTTO_BONUS = 2

SMALL_TEAM_MAX_HEADCOUNT = 50
SMALL_TEAM_WORDS = ('klein', 'small', 'agil', 'agile', 'startup')
REMOTE_WORDS = ('hybrid', 'remote')
DESIGN_PATTERN = re.compile(r'\b(design|ui|ux|figma)\b', re.IGNORECASE)
AI_PATTERN = re.compile(r'\b(ai|ml|machine learning)\b', re.IGNORECASE)
MOTTO_WORDS = ('innovation', 'startup', 'growth')

MAX_LISTED_GAPS = 3


def round_score(value: float) -> int:
    """
    Clamp to [0, 100] and round up to the next multiple of 5.
    Non-finite input maps to 0. Idempotent.
    """
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(value):
        return 0
    bounded = min(100.0, max(0.0, value))
    # Absorb float noise such as 25.000000000000004 before rounding up
    bounded = round(bounded, 6)
    return int(min(100, math.ceil(bounded / 5) * 5))


def _normalize_term(term: str) -> str:
    return term.strip().lower()


def _normalize_text(text: str) -> str:
    return ' '.join(re.sub(r'[^a-z0-9 ]', ' ', text.lower()).split())


def stack_coverage(job_stack: List[str], candidate_terms: Set[str]) -> float:
    """Fraction of the job's stack the candidate covers."""
    required = {_normalize_term(term) for term in job_stack if term.strip()}
    if not required:
        return 0.0
    return len(required & candidate_terms) / len(required)


def keyword_coverage(keywords: List[str], signals: List[str]) -> float:
    """Fraction of candidate keywords found in the posting's narrative text."""
    normalized_keywords = [k for k in (_normalize_text(kw) for kw in keywords) if k]
    if not normalized_keywords or not signals:
        return 0.0
    items = [item for item in (_normalize_text(signal) for signal in signals) if item]
    if not items:
        return 0.0
    matches = sum(1 for keyword in normalized_keywords if any(keyword in item for item in items))
    return matches / len(normalized_keywords)


def average_years(candidate: CandidateProfile) -> Optional[float]:
    if not candidate.roles:
        return None
    return sum(role.years or 0 for role in candidate.roles) / len(candidate.roles)


def experience_score(avg_years: Optional[float]) -> float:
    if avg_years is None:
        return 0.0
    if avg_years >= 5:
        return 15.0
    if avg_years >= 3:
        return 12.0
    if avg_years >= 1:
        return 9.0
    return 4.5


def is_small_team(company_size: Optional[str]) -> bool:
    if not company_size:
        return False
    lower = company_size.lower()
    if any(word in lower for word in SMALL_TEAM_WORDS):
        return True
    numbers = re.findall(r'\d+', lower)
    return bool(numbers) and int(numbers[0]) < SMALL_TEAM_MAX_HEADCOUNT


def environment_score(job: JobPosting) -> float:
    score = 0
    if is_small_team(job.company_size):
        score += SMALL_TEAM_BONUS
    workload = (job.workload or '').lower()
    if any(word in workload for word in REMOTE_WORDS):
        score += REMOTE_BONUS
    narrative = ' '.join(job.narrative_items())
    if DESIGN_PATTERN.search(narrative):
        score += DESIGN_BONUS
    if AI_PATTERN.search(narrative):
        score += AI_BONUS
    motto = (job.motto or '').lower()
    if any(word in motto for word in MOTTO_WORDS):
        score += MOTTO_BONUS
    return float(min(ENVIRONMENT_CAP, score))


def _stack_bullet(coverage: float, has_stack: bool) -> str:
    if not has_stack:
        return "⚠ No tech stack listed in the posting"
    percent = round(coverage * 100)
    if coverage >= 0.8:
        return f"✓ Strong tech stack match ({percent}%)"
    if coverage >= 0.5:
        return f"⚠ Partial tech stack match ({percent}%)"
    return f"✗ Limited tech stack overlap ({percent}%)"


def _keyword_bullet(coverage: float, has_keywords: bool) -> str:
    if not has_keywords:
        return "⚠ No candidate keywords to compare"
    percent = round(coverage * 100)
    if coverage >= 0.6:
        return f"✓ Strong keyword alignment ({percent}%)"
    if coverage >= 0.3:
        return f"⚠ Some keyword alignment ({percent}%)"
    return f"✗ Few keywords found in the posting ({percent}%)"


def _experience_bullet(candidate: CandidateProfile) -> str:
    total = sum(role.years or 0 for role in candidate.roles)
    years = f"{total:g}"
    if not candidate.roles:
        return "✗ No prior roles listed"
    if total >= 5:
        return f"✓ {years}+ years of relevant experience"
    if total >= 2:
        return f"⚠ {years} years of experience"
    return f"✗ Limited experience ({years} years)"


def _environment_bullet(score: float) -> str:
    if score >= 14:
        return "✓ Excellent environment fit"
    if score >= 8:
        return "⚠ Good environment fit"
    return "✗ Environment fit unclear"


def _gaps_bullet(gaps: List[str]) -> Optional[str]:
    if not gaps:
        return None
    listed = ', '.join(gaps[:MAX_LISTED_GAPS])
    suffix = '…' if len(gaps) > MAX_LISTED_GAPS else ''
    return f"✗ Missing: {listed}{suffix}"


class FitScorer:
    """Pure, deterministic fit scoring."""

    def score(self, job: JobPosting, candidate: CandidateProfile) -> FitAssessment:
        if job is None or candidate is None:
            raise ScoringError("Both a job posting and a candidate profile are required")

        candidate_terms = {_normalize_term(term) for term in candidate.all_technologies()}
        has_stack = any(term.strip() for term in job.stack)

        stack_ratio = stack_coverage(job.stack, candidate_terms)
        stack_points = stack_ratio * STACK_WEIGHT if has_stack else float(EMPTY_STACK_SCORE)

        keyword_ratio = keyword_coverage(candidate.keywords, job.narrative_items())
        keyword_points = min(float(KEYWORD_WEIGHT), keyword_ratio * KEYWORD_WEIGHT)

        experience_points = experience_score(average_years(candidate))
        environment_points = environment_score(job)

        total = stack_points + keyword_points + experience_points + environment_points
        match_score = round_score(total)

        gaps = [term for term in job.stack if _normalize_term(term) not in candidate_terms]

        reasoning = [
            _stack_bullet(stack_ratio, has_stack),
            _keyword_bullet(keyword_ratio, bool(candidate.keywords)),
            _experience_bullet(candidate),
            _environment_bullet(environment_points),
        ]
        if is_small_team(job.company_size):
            reasoning.append(f"✓ Small team environment ({job.company_size})")
        gaps_bullet = _gaps_bullet(gaps)
        if gaps_bullet:
            reasoning.append(gaps_bullet)

        logger.debug(
            f"[fit] {job.title}: stack={stack_points:.1f} keywords={keyword_points:.1f} "
            f"experience={experience_points:.1f} environment={environment_points:.1f} -> {match_score}"
        )
        return FitAssessment(match_score=match_score, gaps=gaps, reasoning=reasoning)
