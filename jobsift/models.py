"""
Data models shared across the pipeline.

Job postings, candidate profiles and assessments are immutable once built;
refinement and storage produce new values instead of mutating them.
"""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_SECTION_ITEMS = 8


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def dedupe_preserving_order(values: Iterable[str]) -> List[str]:
    """Drop blanks and case-insensitive duplicates, keeping the first spelling."""
    seen = set()
    result = []
    for value in values:
        if not isinstance(value, str):
            continue
        cleaned = value.strip()
        key = cleaned.lower()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        result.append(cleaned)
    return result


class MottoOrigin(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Literal["job_ad", "company_page", "fallback", "api_error"]
    confidence: Literal["high", "medium", "low"]
    extracted_from: Optional[str] = None
    source_url: Optional[str] = None


class JobPosting(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1)
    company: str = Field(min_length=1)
    stack: List[str] = Field(default_factory=list)
    qualifications: List[str] = Field(default_factory=list, max_length=MAX_SECTION_ITEMS)
    roles: List[str] = Field(default_factory=list, max_length=MAX_SECTION_ITEMS)
    benefits: List[str] = Field(default_factory=list, max_length=MAX_SECTION_ITEMS)
    workload: Optional[str] = None
    duration: Optional[str] = None
    language: Optional[str] = None
    location: Optional[str] = None
    published_at: Optional[str] = None
    salary: Optional[str] = None
    company_size: Optional[str] = None
    company_url: Optional[str] = None
    motto: Optional[str] = None
    motto_origin: Optional[MottoOrigin] = None
    source_url: Optional[str] = None
    source_domain: Optional[str] = None
    fetched_at: datetime = Field(default_factory=utcnow)
    field_sources: Dict[str, str] = Field(default_factory=dict)
    field_confidence: Dict[str, float] = Field(default_factory=dict)

    @field_validator("title", "company")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = " ".join(value.split())
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("stack")
    @classmethod
    def _unique_stack(cls, value: List[str]) -> List[str]:
        return dedupe_preserving_order(value)

    def narrative_items(self) -> List[str]:
        return [*self.qualifications, *self.roles, *self.benefits]


class Role(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    stack: List[str] = Field(default_factory=list)
    years: Optional[float] = Field(default=None, ge=0)

    @field_validator("stack")
    @classmethod
    def _unique_stack(cls, value: List[str]) -> List[str]:
        return dedupe_preserving_order(value)


class Project(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    stack: List[str] = Field(default_factory=list)
    impact: Optional[str] = None

    @field_validator("stack")
    @classmethod
    def _unique_stack(cls, value: List[str]) -> List[str]:
        return dedupe_preserving_order(value)


class Education(BaseModel):
    model_config = ConfigDict(frozen=True)

    degree: str
    institution: Optional[str] = None


class CandidateProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    roles: List[Role] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    projects: List[Project] = Field(default_factory=list)
    education: List[Education] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)

    def all_technologies(self) -> List[str]:
        """Union of role stacks, project stacks and skills."""
        terms: List[str] = []
        for role in self.roles:
            terms.extend(role.stack)
        for project in self.projects:
            terms.extend(project.stack)
        terms.extend(self.skills)
        return dedupe_preserving_order(terms)


class FitAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    match_score: int = Field(ge=0, le=100)
    gaps: List[str] = Field(default_factory=list)
    reasoning: List[str] = Field(default_factory=list)

    @field_validator("match_score")
    @classmethod
    def _multiple_of_five(cls, value: int) -> int:
        if value % 5 != 0:
            raise ValueError("match_score must be a multiple of 5")
        return value


class Ranking(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    reasoning: List[str] = Field(default_factory=list)
    source: Literal["llm", "heuristic"]


class FinalAssessment(FitAssessment):
    source: Literal["llm", "heuristic"] = "heuristic"

    @classmethod
    def combine(cls, heuristic: FitAssessment, ranking: Ranking) -> "FinalAssessment":
        return cls(
            match_score=ranking.score,
            gaps=list(heuristic.gaps),
            reasoning=list(ranking.reasoning),
            source=ranking.source,
        )


InteractionStatus = Literal["interested", "applied"]

LetterLanguage = Literal["en", "de"]


class MotivationLetter(BaseModel):
    model_config = ConfigDict(frozen=True)

    language: LetterLanguage
    content: str = Field(min_length=1)
    source: Literal["llm", "template", "cache"]
    generated_at: datetime = Field(default_factory=utcnow)


class AnalysisRecord(BaseModel):
    """Persisted result of analyzing one job against one candidate.

    Everything except the user-state fields (status, notes) and drafted
    letters is fixed at creation; storage backends build updated copies with
    model_copy.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    job: JobPosting
    candidate: CandidateProfile
    assessment: FinalAssessment
    analyzed_at: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    status: Optional[InteractionStatus] = None
    notes: Optional[str] = None
    letters: Dict[str, MotivationLetter] = Field(default_factory=dict)


class LinkError(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    message: str


class SkippedLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    reason: str


class BatchResult(BaseModel):
    records: List[AnalysisRecord] = Field(default_factory=list)
    errors: List[LinkError] = Field(default_factory=list)
    skipped: List[SkippedLink] = Field(default_factory=list)
    cancelled: bool = False


class DiscoveryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    links: List[str] = Field(default_factory=list)
    pages_fetched: int = 0


class Progress(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    total: Optional[int] = None
    completed: Optional[int] = None


class FetchOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    timeout_ms: int = Field(default=8000, gt=0)
    retry_count: int = Field(default=2, ge=0)
