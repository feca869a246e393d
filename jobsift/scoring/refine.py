"""
Remote refinement of the heuristic fit score.

The refiner asks the text-scoring service for a second opinion. Whatever
goes wrong, it falls back to the heuristic assessment unchanged.
"""
import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from jobsift.core.ai_client import AIClient
from jobsift.errors import RefinementUnavailable
from jobsift.models import CandidateProfile, FitAssessment, JobPosting, Ranking
from .fit import round_score

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a meticulous hiring manager. Score how well the candidate fits the job "
    "from 0 to 100 based strictly on provided facts. Never invent experience. If "
    "evidence is missing, penalize the score and mention the missing proof."
)

TASK = (
    "Return compact JSON with keys matchScore (0-100 number) and reasoning (one "
    "paragraph). Justify the score referencing only verifiable facts."
)


class RankingResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    match_score: float = Field(alias='matchScore')
    reasoning: str = Field(min_length=1)


def _summarize(values: List[str], limit: int) -> str:
    if not values:
        return ''
    suffix = '…' if len(values) > limit else ''
    return '; '.join(values[:limit]) + suffix


def format_job(job: JobPosting) -> str:
    stack = ', '.join(job.stack[:12]) or '(stack unspecified)'
    lines = [f"Title: {job.title}", f"Company: {job.company}", f"Stack: {stack}"]
    qualifications = _summarize(job.qualifications, 8)
    if qualifications:
        lines.append(f"Qualifications: {qualifications}")
    roles = _summarize(job.roles, 6)
    if roles:
        lines.append(f"Responsibilities: {roles}")
    if job.motto:
        lines.append(f"Values: {job.motto}")
    return '\n'.join(lines)


def format_candidate(candidate: CandidateProfile) -> str:
    lines = []
    roles = []
    for role in candidate.roles[:4]:
        stack = ', '.join(role.stack[:8]) or '(no stack listed)'
        years = f" ({role.years:g}y)" if role.years is not None else ''
        roles.append(f"{role.title}, stack: {stack}{years}")
    if roles:
        lines.append(f"Roles: {'; '.join(roles)}")
    if candidate.skills:
        lines.append(f"Skills: {', '.join(candidate.skills[:12])}")
    projects = []
    for project in candidate.projects[:3]:
        stack = ', '.join(project.stack[:6]) or '(no stack listed)'
        impact = f", {project.impact}" if project.impact else ''
        projects.append(f"{project.name}: {stack}{impact}")
    if projects:
        lines.append(f"Projects: {'; '.join(projects)}")
    if candidate.keywords:
        lines.append(f"Keywords: {', '.join(candidate.keywords[:12])}")
    return '\n'.join(lines) or '(empty profile)'


def format_heuristics(heuristic: FitAssessment, job: JobPosting) -> str:
    if heuristic.gaps:
        missing = f"Missing stack evidence: {', '.join(heuristic.gaps)}"
    else:
        missing = "No missing stack according to heuristics."
    return f"Heuristic score: {heuristic.match_score}\n{missing}\nJob stack count: {len(job.stack)}"


class RankRefiner:
    """Optional LLM re-ranking with a guaranteed heuristic fallback."""

    def __init__(self, client: Optional[AIClient] = None, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout

    @staticmethod
    def _fallback(heuristic: FitAssessment) -> Ranking:
        return Ranking(score=heuristic.match_score, reasoning=list(heuristic.reasoning), source='heuristic')

    async def _remote_rank(self, job: JobPosting, candidate: CandidateProfile,
                           heuristic: FitAssessment) -> Ranking:
        if self.client is None or not self.client.enabled:
            raise RefinementUnavailable('no credential configured')

        user = (
            f"JOB AD SUMMARY\n{format_job(job)}\n\n"
            f"CANDIDATE PROFILE\n{format_candidate(candidate)}\n\n"
            f"HEURISTIC SIGNALS\n{format_heuristics(heuristic, job)}\n\n"
            f"TASK\n{TASK}"
        )
        result = await self.client.complete_json(
            SYSTEM_PROMPT, user, RankingResponse, temperature=0.1, timeout=self.timeout,
        )
        if not result.ok:
            raise RefinementUnavailable(result.reason.value)

        response: RankingResponse = result.value
        if not response.reasoning.strip():
            raise RefinementUnavailable('empty reasoning')
        return Ranking(
            score=round_score(response.match_score),
            reasoning=[response.reasoning.strip()],
            source='llm',
        )

    async def rank(self, job: JobPosting, candidate: CandidateProfile,
                   heuristic: FitAssessment) -> Ranking:
        """Refined ranking, or the heuristic's own score and reasoning. Never raises."""
        try:
            ranking = await self._remote_rank(job, candidate, heuristic)
        except RefinementUnavailable as e:
            logger.info(f"[refine] {job.title}: using heuristic score {heuristic.match_score} ({e.reason})")
            return self._fallback(heuristic)
        except Exception as e:
            logger.warning(f"[refine] {job.title}: refinement failed, using heuristic score: {e}")
            return self._fallback(heuristic)

        logger.info(f"[refine] {job.title}: heuristic {heuristic.match_score} -> llm {ranking.score}")
        return ranking
