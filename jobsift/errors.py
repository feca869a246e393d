"""
Exception hierarchy.

Only OrchestrationError is fatal for a batch run; everything raised while
processing a single link is caught at the per-link boundary.
"""
from enum import Enum
from typing import Optional


class JobSiftError(Exception):
    """Base class for pipeline errors."""


class FetchErrorKind(str, Enum):
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    BAD_CONTENT_TYPE = "bad_content_type"
    NETWORK = "network"


class FetchError(JobSiftError):
    def __init__(self, kind: FetchErrorKind, url: str, message: str,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.url = url
        self.status_code = status_code


class ExtractionErrorKind(str, Enum):
    EMPTY_INPUT = "empty_input"
    MISSING_TITLE = "missing_title"
    MISSING_COMPANY = "missing_company"


class ExtractionError(JobSiftError):
    def __init__(self, kind: ExtractionErrorKind, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.url = url


class ScoringError(JobSiftError):
    """Raised when a fit assessment cannot be produced from the given inputs."""


class RefinementUnavailable(JobSiftError):
    """Remote refinement could not produce a usable ranking."""

    def __init__(self, reason: str):
        super().__init__(f"Refinement unavailable: {reason}")
        self.reason = reason


class OrchestrationErrorKind(str, Enum):
    NO_LINKS_FOUND = "no_links_found"
    RECORD_NOT_FOUND = "record_not_found"


class OrchestrationError(JobSiftError):
    def __init__(self, kind: OrchestrationErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class RunCancelled(JobSiftError):
    """The run's cancellation signal was observed."""
