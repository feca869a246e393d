"""
Tests for the metadata sanitizer and field normalizers.
"""
import pytest

from jobsift.pipeline.sanitizer import (
    is_placeholder,
    is_structural_artifact,
    normalize_duration,
    normalize_location,
    sanitize_list,
    sanitize_value,
)


class TestSanitizeValue:
    """Structural filtering followed by placeholder rejection."""

    @pytest.mark.parametrize("value", [
        None, "", "   ", ",", " , , ", "Location:", "Workload: ", "Salary:",
        "...", "–", "1, 2, 3", ", Zurich", "Zurich,",
    ])
    def test_rejects_structural_artifacts(self, value):
        assert sanitize_value(value) is None

    @pytest.mark.parametrize("value", [
        "n/a", "N/A", "TBD", "null", "undefined", "Not specified", "unknown.",
    ])
    def test_rejects_placeholders(self, value):
        assert is_placeholder(value)
        assert sanitize_value(value) is None

    def test_keeps_real_values(self):
        assert sanitize_value("80%") == "80%"
        assert sanitize_value("  Full   time ") == "Full time"
        assert sanitize_value("German (Fluent), English (Fluent)") == "German (Fluent), English (Fluent)"

    def test_long_digit_lists_are_not_artifacts(self):
        """Only short comma-separated digit runs are widget debris."""
        assert not is_structural_artifact("100, 200, 300, 400")


class TestNormalizers:
    """Field-specific normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("Unlimited employment", "Unlimited"),
        ("Fixed-term contract", "Fixed-term"),
        ("Permanent position", "Permanent"),
        ("Temporary", "Temporary"),
        ("n/a", None),
    ])
    def test_duration(self, raw, expected):
        assert normalize_duration(raw) == expected

    @pytest.mark.parametrize("raw,expected", [
        ("Bahnhofstrasse 1, 8001 Zürich", "8001 Zürich"),
        ("Solothurnerstrasse 235, 4600 Olten", "4600 Olten"),
        ("Zurich, Switzerland", "Zurich"),
        ("Basel", "Basel"),
        ("Remote, Europe", "Remote, Europe"),
        ("Hybrid (Zurich, 2 days)", "Hybrid (Zurich, 2 days)"),
        ("Location:", None),
    ])
    def test_location(self, raw, expected):
        assert normalize_location(raw) == expected


def test_sanitize_list_dedupes_and_caps():
    items = ["Python", " python ", "", "Docker"] + [f"item {i}" for i in range(20)]
    result = sanitize_list(items)
    assert result[:2] == ["Python", "Docker"]
    assert len(result) == 8
