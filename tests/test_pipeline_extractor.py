"""
Unit tests for the extraction pipeline.
"""
import json

import pytest

from jobsift.errors import ExtractionError, ExtractionErrorKind
from jobsift.pipeline import FieldResult, JobExtractor
from jobsift.pipeline.context import PageContext
from jobsift.pipeline.jsonld import normalize_date
from jobsift.pipeline.metadata import extract_metadata, run_cascade, trim_at_known_label
from jobsift.pipeline.titles import COMPANY_STRATEGIES, TITLE_STRATEGIES

SOURCE_URL = "https://www.jobs.ch/en/vacancies/detail/abc-123/"


def jsonld_page(posting, extra_body=""):
    return f"""
    <html>
    <head>
        <script type="application/ld+json">{json.dumps(posting)}</script>
    </head>
    <body>
        <h1>Heading Title</h1>
        {extra_body}
    </body>
    </html>
    """


@pytest.fixture
def jsonld_posting():
    """Schema.org JobPosting as embedded by most applicant tracking systems."""
    return {
        "@context": "https://schema.org",
        "@type": "JobPosting",
        "title": "Data Engineer",
        "hiringOrganization": {"@type": "Organization", "name": "Globex AG", "sameAs": "https://globex.example"},
        "jobLocation": {
            "@type": "Place",
            "address": {"@type": "PostalAddress", "postalCode": "8001", "addressLocality": "Zürich"},
        },
        "datePosted": "2025-01-15T09:00:00Z",
        "employmentType": ["FULL_TIME", "PERMANENT"],
        "baseSalary": {
            "@type": "MonetaryAmount",
            "currency": "CHF",
            "value": {"@type": "QuantitativeValue", "minValue": 100000, "maxValue": 120000, "unitText": "YEAR"},
        },
    }


class TestFieldResult:
    """Test FieldResult class."""

    def test_confidence_from_source_prefix(self):
        assert FieldResult("x", "jsonld").confidence == 0.90
        assert FieldResult("x", "structured:info-workload").confidence == 0.85
        assert FieldResult("x", "regex:location").confidence == 0.50
        assert FieldResult("x", "made-up").confidence == 0.0

    def test_is_valid(self):
        assert FieldResult("Engineer", "meta").is_valid()
        assert not FieldResult(None, "meta").is_valid()
        assert not FieldResult("   ", "meta").is_valid()
        assert not FieldResult([], "meta").is_valid()


class TestTitleAndCompany:
    """Title and company cascades."""

    def test_meta_title_and_board_company(self, job_page_html):
        ctx = PageContext(job_page_html, SOURCE_URL)

        title = run_cascade(ctx, TITLE_STRATEGIES)
        company = run_cascade(ctx, COMPANY_STRATEGIES)

        assert (title.value, title.source) == ("Senior Python Engineer", "meta")
        assert (company.value, company.source) == ("Acme AG", "structured:company-link")

    def test_jsonld_title_beats_heading(self, jsonld_posting):
        ctx = PageContext(jsonld_page(jsonld_posting))
        assert run_cascade(ctx, TITLE_STRATEGIES).value == "Data Engineer"
        assert run_cascade(ctx, COMPANY_STRATEGIES).value == "Globex AG"

    def test_company_from_title_pattern(self):
        html = "<html><head><title>Data Analyst at Globex - Careers</title></head><body><h1>Data Analyst</h1></body></html>"
        company = run_cascade(PageContext(html), COMPANY_STRATEGIES)
        assert (company.value, company.source) == ("Globex", "regex:title")

    def test_company_from_url_host(self):
        html = "<html><head><title>Backend Developer</title></head><body><h1>Backend Developer</h1></body></html>"
        ctx = PageContext(html, "https://careers.acme-robotics.com/jobs/job/12345")
        company = run_cascade(ctx, COMPANY_STRATEGIES)
        assert (company.value, company.source) == ("Acme Robotics", "url")

    def test_placeholder_title_is_skipped(self):
        html = '<html><head><meta property="og:title" content="N/A"></head><body><h1>Platform Engineer</h1></body></html>'
        assert run_cascade(PageContext(html), TITLE_STRATEGIES).value == "Platform Engineer"


class TestMetadata:
    """Structured anchors first, sanitized text patterns after."""

    def test_board_anchors(self, job_page_html):
        fields = extract_metadata(PageContext(job_page_html, SOURCE_URL))

        assert fields['workload'].value == "80 – 100%"
        assert fields['duration'].value == "Unlimited"
        assert fields['language'].value == "German (Fluent), English (Fluent)"
        assert fields['location'].value == "8001 Zürich"
        assert fields['company_size'].value == "small"
        # "n/a" publication date is rejected by the sanitizer
        assert 'published_at' not in fields
        assert 'salary' not in fields

    def test_jsonld_metadata(self, jsonld_posting):
        fields = extract_metadata(PageContext(jsonld_page(jsonld_posting)))

        assert fields['workload'].value == "Full-time"
        assert fields['duration'].value == "Permanent"
        assert fields['location'].value == "8001 Zürich"
        assert fields['published_at'].value == "2025-01-15"
        assert fields['salary'].value == "CHF 100'000 - 120'000 / year"
        assert all(fields[name].source == 'jsonld' for name in ('workload', 'duration', 'salary'))

    def test_remote_jsonld_location(self, jsonld_posting):
        jsonld_posting['jobLocationType'] = 'TELECOMMUTE'
        fields = extract_metadata(PageContext(jsonld_page(jsonld_posting)))
        assert fields['location'].value == "Remote"

    def test_label_patterns_in_plain_text(self):
        html = """
        <html><body>
          <h1>QA Engineer</h1>
          <p>Workload: 60-80%</p>
          <p>Place of work: Solothurnerstrasse 235, 4600 Olten</p>
          <p>Language requirements: English (fluent), German (intermediate)</p>
          <p>This is a 12 months contract with option to extend.</p>
          <p>Company size: 25 employees</p>
          <p>Salary: CHF 90'000 - 110'000</p>
        </body></html>
        """
        fields = extract_metadata(PageContext(html))

        assert fields['workload'].value == "60-80%"
        assert fields['location'].value == "4600 Olten"
        assert fields['language'].value == "English (fluent), German (intermediate)"
        assert fields['duration'].value == "12 months"
        assert fields['company_size'].value == "25"
        assert fields['salary'].value == "CHF 90'000 - 110'000"

    def test_workload_prose_is_not_a_value(self):
        html = "<html><body><p>Workload: manageable and well planned</p></body></html>"
        assert 'workload' not in extract_metadata(PageContext(html))

    def test_published_date_from_time_element(self):
        html = '<html><body><time datetime="2025-03-02">2 March</time></body></html>'
        assert extract_metadata(PageContext(html))['published_at'].value == "2025-03-02"

    def test_trim_at_known_label(self):
        assert trim_at_known_label("80% Contract type: Permanent") == "80%"
        assert trim_at_known_label("Zurich; hybrid possible") == "Zurich"


class TestJobExtractor:
    """End-to-end extraction without a remote client."""

    @pytest.mark.asyncio
    async def test_extracts_full_posting(self, job_page_html):
        job = await JobExtractor().extract(job_page_html, SOURCE_URL)

        assert job.title == "Senior Python Engineer"
        assert job.company == "Acme AG"
        assert job.company_url == "https://www.jobs.ch/en/companies/acme/"
        assert job.source_domain == "jobs.ch"
        assert job.stack == ["Django", "Docker", "PostgreSQL", "Python", "REST"]
        assert job.roles == ["Build data pipelines in Python and Django", "Design REST APIs with our UX team"]
        assert job.qualifications[0] == "5+ years with Python"
        assert job.benefits == ["Hybrid work", "Small agile team of 8 people"]
        assert job.location == "8001 Zürich"
        assert job.published_at is None
        assert job.motto == "Our values: innovation, ownership and growth."
        assert job.motto_origin.source == "fallback"
        assert job.field_sources['title'] == "meta"
        assert job.field_sources['sections'] == "heuristic"
        assert job.field_confidence['title'] == 0.80
        assert set(job.field_confidence) == set(job.field_sources) - {'sections', 'motto'}
        assert all(0 < value <= 1 for value in job.field_confidence.values())

    @pytest.mark.asyncio
    async def test_empty_input(self):
        with pytest.raises(ExtractionError) as exc_info:
            await JobExtractor().extract("   ", SOURCE_URL)
        assert exc_info.value.kind == ExtractionErrorKind.EMPTY_INPUT

    @pytest.mark.asyncio
    async def test_missing_title(self):
        with pytest.raises(ExtractionError) as exc_info:
            await JobExtractor().extract("<html><body><p>Just some text</p></body></html>")
        assert exc_info.value.kind == ExtractionErrorKind.MISSING_TITLE

    @pytest.mark.asyncio
    async def test_missing_company(self):
        """Job board URLs never stand in for the hiring company."""
        html = "<html><body><h1>Engineer</h1><p>Nothing else here.</p></body></html>"
        with pytest.raises(ExtractionError) as exc_info:
            await JobExtractor().extract(html, SOURCE_URL)
        assert exc_info.value.kind == ExtractionErrorKind.MISSING_COMPANY

    @pytest.mark.asyncio
    async def test_company_url_from_jsonld(self, jsonld_posting):
        job = await JobExtractor().extract(jsonld_page(jsonld_posting))
        assert job.company_url == "https://globex.example"
        assert job.source_url is None

    @pytest.mark.asyncio
    async def test_company_url_anchor_takes_precedence_over_company_link(self):
        html = """
        <html><body>
          <h1>Data Engineer</h1>
          <a data-cy="company-link" href="/en/companies/acme/"><span>Acme AG</span></a>
          <a data-cy="company-url" href="https://acme.example/">acme.example</a>
        </body></html>
        """
        job = await JobExtractor().extract(html, SOURCE_URL)
        assert job.company_url == "https://acme.example/"


class TestNormalizeDate:
    """Published dates become ISO dates only when fully specified."""

    @pytest.mark.parametrize("raw,expected", [
        ("2024-03-15", "2024-03-15"),
        ("2024-03-15T09:30:00+01:00", "2024-03-15"),
        ("15.03.2024", "2024-03-15"),
        ("05.04.2024", "2024-04-05"),
        ("March 2024", "March 2024"),
        ("15 March", "15 March"),
        ("2024-03", "2024-03"),
        ("Published 3 days ago", "Published 3 days ago"),
        ("", None),
        (None, None),
    ])
    def test_values(self, raw, expected):
        assert normalize_date(raw) == expected
