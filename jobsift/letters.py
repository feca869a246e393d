"""
Motivation letter drafting.

LetterWriter asks the text-scoring service for a letter grounded in the job,
the candidate profile and the heuristic stack gaps. Whenever the remote draft
is unavailable a template letter is built from the same facts, so drafting
never fails.
"""
import logging
from typing import Dict, List, Optional

from jobsift.core.ai_client import AIClient
from jobsift.models import CandidateProfile, FitAssessment, JobPosting, LetterLanguage, MotivationLetter

logger = logging.getLogger(__name__)

LANGUAGES = ('en', 'de')

MAX_LETTER_WORDS = 320

SYSTEM_PROMPT = (
    "You are a precise hiring expert. Draft authentic motivation letters that rely "
    "strictly on provided evidence. Do not fabricate achievements or technologies."
)

TEMPERATURES = {'en': 0.2, 'de': 0.3}

PHRASES: Dict[str, Dict[str, str]] = {
    'en': {
        'locale': "English",
        'greeting': "Dear Hiring Team,",
        'closing': "Kind regards\n[Your Name]",
        'intro': 'Your role "{title}" at {company} resonates with me because it demands '
                 'hands-on collaboration and measurable outcomes.',
        'role': "In my role as {title}, I worked daily with {stack}.",
        'project': "For example, {name} ({stack}){impact}.",
        'learning': "Where I lack evidence ({gaps}), I outline a concrete learning plan "
                    "and document progress transparently.",
        'no_stack': "No stack extracted from the job description.",
        'matched': "Proven stack coverage: {stack}.",
        'no_match': "No proven stack coverage detected yet.",
        'missing': "Missing evidence: {stack}.",
        'all_covered': "All requested technologies covered by experience.",
    },
    'de': {
        'locale': "German",
        'greeting': "Sehr geehrtes Recruiting-Team,",
        'closing': "Mit freundlichen Grüßen\n[Ihr Name]",
        'intro': 'Ihre Position "{title}" bei {company} spricht mich an, weil sie praxisnahe '
                 'Zusammenarbeit und messbare Wirkung fordert.',
        'role': "In meiner Rolle als {title} arbeitete ich täglich mit {stack}.",
        'project': "Ein Beispiel: {name} ({stack}){impact}.",
        'learning': "Wo mir Erfahrung fehlt ({gaps}), plane ich einen konkreten Lernpfad "
                    "und dokumentiere Fortschritte transparent.",
        'no_stack': "Es wurde kein Tech-Stack aus der Ausschreibung extrahiert.",
        'matched': "Abgedeckter Stack: {stack}.",
        'no_match': "Noch keine nachgewiesene Stack-Überschneidung.",
        'missing': "Fehlende Nachweise: {stack}.",
        'all_covered': "Alle gewünschten Technologien sind belegt.",
    },
}

# Openings that already count as a salutation
SALUTATIONS = {
    'en': ('Dear',),
    'de': ('Dear', 'Sehr'),
}


def _check_language(language: str) -> None:
    if language not in LANGUAGES:
        raise ValueError(f"Unsupported letter language {language!r}, expected one of {', '.join(LANGUAGES)}")


def stack_match_summary(job: JobPosting, heuristic: FitAssessment, language: LetterLanguage) -> str:
    """Two lines: stack the candidate covers, then stack without evidence."""
    phrases = PHRASES[language]
    if not job.stack:
        return phrases['no_stack']
    gaps = {gap.lower() for gap in heuristic.gaps}
    matched = [tech for tech in job.stack if tech.lower() not in gaps]
    matched_line = phrases['matched'].format(stack=', '.join(matched)) if matched else phrases['no_match']
    if heuristic.gaps:
        missing_line = phrases['missing'].format(stack=', '.join(heuristic.gaps))
    else:
        missing_line = phrases['all_covered']
    return f"{matched_line}\n{missing_line}"


def _joined(values: List[str], limit: int, empty: str, separator: str = ', ') -> str:
    return separator.join(values[:limit]) or empty


def build_prompt(job: JobPosting, candidate: CandidateProfile, heuristic: FitAssessment,
                 language: LetterLanguage) -> str:
    roles = []
    for role in candidate.roles[:4]:
        parts = [role.title, ', '.join(role.stack[:6])]
        if role.years is not None:
            parts.append(f"{role.years:g} years")
        roles.append(' | '.join(part for part in parts if part))
    projects = []
    for project in candidate.projects[:3]:
        parts = [project.name, ', '.join(project.stack[:6]), project.impact or '']
        projects.append(' | '.join(part for part in parts if part))

    return (
        f"Write a {PHRASES[language]['locale']} motivation letter tailored to the following job.\n"
        f"- Keep it under {MAX_LETTER_WORDS} words.\n"
        "- Highlight only the candidate's strengths that are explicitly listed.\n"
        "- Reference concrete achievements or technologies from the CV when claiming alignment.\n"
        "- If a requested skill is missing, acknowledge the learning plan instead of faking experience.\n"
        "\n"
        "JOB SNAPSHOT\n"
        f"Title: {job.title}\n"
        f"Company: {job.company}\n"
        f"Stack focus: {_joined(job.stack, 12, 'unspecified')}\n"
        f"Key requirements: {_joined(job.qualifications, 6, '(none extracted)', '; ')}\n"
        f"Role focus: {_joined(job.roles, 4, '(none extracted)', '; ')}\n"
        f"Values: {job.motto or '(not provided)'}\n"
        "\n"
        "CANDIDATE SNAPSHOT\n"
        f"Roles: {_joined(roles, 4, '(no roles provided)', '; ')}\n"
        f"Skills: {_joined(candidate.skills, 12, '(no skills provided)')}\n"
        f"Projects: {_joined(projects, 3, '(no projects provided)', '; ')}\n"
        f"Keywords: {_joined(candidate.keywords, 12, '(no keywords provided)')}\n"
        "\n"
        "STACK MATCH SUMMARY\n"
        f"{stack_match_summary(job, heuristic, language)}\n"
    )


def ensure_salutation(content: str, language: LetterLanguage) -> str:
    """Prefix the greeting unless the draft already opens with one."""
    trimmed = content.strip()
    if trimmed.startswith(SALUTATIONS[language]):
        return trimmed
    return f"{PHRASES[language]['greeting']}\n\n{trimmed}"


def build_template_letter(job: JobPosting, candidate: CandidateProfile, heuristic: FitAssessment,
                          language: LetterLanguage) -> str:
    phrases = PHRASES[language]
    lines = [phrases['intro'].format(title=job.title, company=job.company)]

    if candidate.roles and candidate.roles[0].stack:
        role = candidate.roles[0]
        lines.append(phrases['role'].format(title=role.title, stack=', '.join(role.stack)))

    if candidate.projects:
        project = candidate.projects[0]
        lines.append(phrases['project'].format(
            name=project.name,
            stack=', '.join(project.stack),
            impact=f": {project.impact}" if project.impact else '',
        ))

    lines.append(stack_match_summary(job, heuristic, language))

    if heuristic.gaps:
        lines.append(phrases['learning'].format(gaps=', '.join(heuristic.gaps)))

    body = '\n\n'.join(line.strip() for line in lines if line.strip())
    return f"{phrases['greeting']}\n\n{body}\n\n{phrases['closing']}"


class LetterWriter:
    """Drafts motivation letters, remotely when possible."""

    def __init__(self, client: Optional[AIClient] = None, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout

    def template(self, job: JobPosting, candidate: CandidateProfile, heuristic: FitAssessment,
                 language: LetterLanguage) -> MotivationLetter:
        return MotivationLetter(
            language=language,
            content=build_template_letter(job, candidate, heuristic, language),
            source='template',
        )

    async def write(self, job: JobPosting, candidate: CandidateProfile, heuristic: FitAssessment,
                    language: LetterLanguage = 'en') -> MotivationLetter:
        """
        Draft a letter in the requested language.

        Remote failures fall back to the template letter.

        Raises:
            ValueError: for a language other than en or de
        """
        _check_language(language)

        if self.client is None or not self.client.enabled:
            logger.info(f"[letter] {job.title}: no remote client, using template ({language})")
            return self.template(job, candidate, heuristic, language)

        try:
            result = await self.client.complete_text(
                SYSTEM_PROMPT,
                build_prompt(job, candidate, heuristic, language),
                temperature=TEMPERATURES[language],
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning(f"[letter] {job.title}: remote draft failed, using template: {e}")
            return self.template(job, candidate, heuristic, language)

        if not result.ok:
            logger.warning(f"[letter] {job.title}: remote draft unavailable ({result.reason.value}), using template")
            return self.template(job, candidate, heuristic, language)

        logger.info(f"[letter] {job.title}: drafted {language} letter via llm")
        return MotivationLetter(language=language, content=ensure_salutation(result.value, language), source='llm')
