"""
Command line entry point.

    jobsift search "https://www.jobs.ch/en/vacancies/?term=python" --candidate cv.json
    jobsift analyze "https://www.jobs.ch/en/vacancies/detail/<id>/" --candidate cv.json
    jobsift letter record.json --language de
    jobsift letter "https://www.jobs.ch/en/vacancies/detail/<id>/" --candidate cv.json
"""
import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from jobsift.config import Settings
from jobsift.errors import JobSiftError
from jobsift.letters import LANGUAGES
from jobsift.models import AnalysisRecord, BatchResult, CandidateProfile, MotivationLetter, Progress
from jobsift.orchestrator import BatchOrchestrator

logger = logging.getLogger(__name__)


def _print_progress(progress: Progress) -> None:
    print(f"  {progress.message}", file=sys.stderr)


def _load_candidate(path: str) -> CandidateProfile:
    return CandidateProfile.model_validate_json(Path(path).read_text(encoding='utf-8'))


def _load_record(path: str) -> AnalysisRecord:
    """Analysis record as written by `jobsift --json analyze`."""
    return AnalysisRecord.model_validate_json(Path(path).read_text(encoding='utf-8'))


def _summary_line(record: AnalysisRecord) -> str:
    job = record.job
    where = f" ({job.location})" if job.location else ''
    return f"{record.assessment.match_score:>3}  {job.title} at {job.company}{where}  {job.source_url or ''}"


def _print_batch(result: BatchResult, as_json: bool) -> None:
    if as_json:
        print(result.model_dump_json(indent=2))
        return
    for record in sorted(result.records, key=lambda r: r.assessment.match_score, reverse=True):
        print(_summary_line(record))
    for error in result.errors:
        print(f"ERR  {error.url}: {error.message}")
    print(f"\n{len(result.records)} analyzed, {len(result.errors)} errors, {len(result.skipped)} skipped"
          f"{' (cancelled)' if result.cancelled else ''}")


def _print_record(record: AnalysisRecord, as_json: bool) -> None:
    if as_json:
        print(record.model_dump_json(indent=2))
        return
    print(_summary_line(record))
    for bullet in record.assessment.reasoning:
        print(f"     {bullet}")


def _print_letter(letter: MotivationLetter, as_json: bool) -> None:
    if as_json:
        print(letter.model_dump_json(indent=2))
        return
    print(letter.content)
    print(f"\n({letter.language}, {letter.source})", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='jobsift', description='Discover job postings and score candidate fit')
    parser.add_argument('--json', action='store_true', help='Print machine-readable JSON')
    parser.add_argument('--log-level', default=os.getenv('LOG_LEVEL', 'WARNING'))
    subparsers = parser.add_subparsers(dest='command', required=True)

    search = subparsers.add_parser('search', help='Collect job links from a search page and analyze them')
    search.add_argument('url')
    search.add_argument('--candidate', required=True, help='Candidate profile JSON file')
    search.add_argument('--max-pages', type=int, default=None)
    search.add_argument('--batch-size', type=int, default=None)

    analyze = subparsers.add_parser('analyze', help='Analyze a single job posting')
    analyze.add_argument('url')
    analyze.add_argument('--candidate', required=True, help='Candidate profile JSON file')

    letter = subparsers.add_parser('letter', help='Draft a motivation letter for an analyzed job')
    letter.add_argument('target', help='Analysis record JSON file, or a job posting URL to analyze first')
    letter.add_argument('--candidate', help='Candidate profile JSON file (required for a URL)')
    letter.add_argument('--language', choices=LANGUAGES, default='en')
    letter.add_argument('--refresh', action='store_true', help='Redraft even if the record holds a letter')

    return parser


async def _run(args: argparse.Namespace, settings: Settings, candidate: Optional[CandidateProfile],
               record: Optional[AnalysisRecord] = None) -> int:
    if getattr(args, 'batch_size', None):
        settings = settings.model_copy(update={'batch_size': args.batch_size})
    orchestrator = BatchOrchestrator.from_settings(
        settings, on_progress=None if args.json else _print_progress,
    )

    if args.command == 'letter':
        if record is None:
            record = await orchestrator.analyze_job(args.target, candidate)
        letter = await orchestrator.write_letter(record, language=args.language, refresh=args.refresh)
        _print_letter(letter, args.json)
        return 0

    if args.command == 'analyze':
        record = await orchestrator.analyze_job(args.url, candidate)
        _print_record(record, args.json)
        return 0

    result = await orchestrator.run_search(
        args.url, candidate,
        max_pages=args.max_pages,
    )
    _print_batch(result, args.json)
    return 0


def _fail(message: str, code: int) -> int:
    logger.error(f"[cli] {message}")
    print(f"error: {message}", file=sys.stderr)
    return code


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    settings = Settings.from_env()

    record = None
    if args.command == 'letter' and Path(args.target).is_file():
        try:
            record = _load_record(args.target)
        except (OSError, ValidationError) as e:
            return _fail(f"Could not load analysis record: {e}", 2)

    candidate = None
    if args.candidate:
        try:
            candidate = _load_candidate(args.candidate)
        except (OSError, ValidationError) as e:
            return _fail(f"Could not load candidate profile: {e}", 2)
    elif record is None:
        return _fail("--candidate is required to analyze a job URL", 2)

    try:
        return asyncio.run(_run(args, settings, candidate, record))
    except JobSiftError as e:
        return _fail(str(e), 1)


if __name__ == '__main__':
    sys.exit(main())
