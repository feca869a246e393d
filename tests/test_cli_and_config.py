"""
Tests for environment configuration and the command line entry point.
"""
import pytest

from jobsift import cli
from jobsift.config import DEFAULT_BATCH_SIZE, DEFAULT_DETAIL_MARKERS, Settings
from jobsift.models import AnalysisRecord, CandidateProfile, FinalAssessment, JobPosting, MotivationLetter


class TestSettings:
    """Environment-driven settings."""

    def test_defaults(self, monkeypatch):
        for name in ("OPENROUTER_API_KEY", "OPENAI_API_KEY", "JOBSIFT_BATCH_SIZE", "JOBSIFT_DETAIL_MARKERS",
                     "JOBSIFT_ENABLE_AI"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.ai_api_key is None
        assert not settings.ai_available
        assert settings.batch_size == DEFAULT_BATCH_SIZE
        assert settings.detail_markers == DEFAULT_DETAIL_MARKERS

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        monkeypatch.setenv("JOBSIFT_FETCH_TIMEOUT_MS", "2500")
        monkeypatch.setenv("JOBSIFT_DETAIL_MARKERS", "/careers/posting, /stellen/")
        monkeypatch.setenv("JOBSIFT_ENABLE_AI", "yes")

        settings = Settings.from_env()

        assert settings.ai_api_key == "sk-test"
        assert settings.ai_available
        assert settings.fetch_timeout_ms == 2500
        assert settings.detail_markers == ["/careers/posting", "/stellen/"]

    def test_invalid_numbers_fall_back(self, monkeypatch):
        monkeypatch.setenv("JOBSIFT_BATCH_SIZE", "three")
        assert Settings.from_env().batch_size == DEFAULT_BATCH_SIZE

    def test_kill_switch(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
        monkeypatch.setenv("JOBSIFT_ENABLE_AI", "0")
        assert not Settings.from_env().ai_available


class TestCli:
    """Argument parsing and early failures."""

    def test_parser(self):
        args = cli.build_parser().parse_args(
            ["--json", "search", "https://www.jobs.ch/en/vacancies/?term=go", "--candidate", "cv.json",
             "--max-pages", "3"]
        )
        assert args.command == "search"
        assert args.json
        assert args.max_pages == 3
        assert args.batch_size is None

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_missing_candidate_file(self, tmp_path, capsys):
        code = cli.main(["analyze", "https://www.jobs.ch/en/vacancies/detail/1", "--candidate",
                         str(tmp_path / "missing.json")])
        assert code == 2
        assert "error:" in capsys.readouterr().err

    def test_invalid_candidate_file(self, tmp_path):
        path = tmp_path / "cv.json"
        path.write_text('{"roles": [{"years": 3}]}', encoding="utf-8")
        assert cli.main(["analyze", "https://example.com/jobs/job/1", "--candidate", str(path)]) == 2

    def test_candidate_file_round_trip(self, tmp_path, candidate):
        path = tmp_path / "cv.json"
        path.write_text(candidate.model_dump_json(), encoding="utf-8")
        assert cli._load_candidate(str(path)) == CandidateProfile.model_validate(candidate.model_dump())

    def test_letter_from_record_file(self, tmp_path, capsys, monkeypatch, candidate):
        monkeypatch.setenv("JOBSIFT_ENABLE_AI", "0")
        record = AnalysisRecord(
            id="abc",
            job=JobPosting(title="Backend Engineer", company="Acme AG", stack=["Python", "Go"]),
            candidate=candidate,
            assessment=FinalAssessment(match_score=50, gaps=["Go"], reasoning=[]),
        )
        path = tmp_path / "record.json"
        path.write_text(record.model_dump_json(), encoding="utf-8")

        code = cli.main(["--json", "letter", str(path), "--language", "de"])

        letter = MotivationLetter.model_validate_json(capsys.readouterr().out)
        assert code == 0
        assert letter.language == "de"
        assert letter.source == "template"
        assert "Fehlende Nachweise: Go." in letter.content

    def test_letter_for_url_needs_candidate(self, capsys):
        code = cli.main(["letter", "https://www.jobs.ch/en/vacancies/detail/abc-123"])
        assert code == 2
        assert "--candidate" in capsys.readouterr().err

    def test_letter_language_choices(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["letter", "record.json", "--language", "fr"])
