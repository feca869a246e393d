"""
Runtime configuration.

Values come from environment variables (optionally loaded from a .env file by
the entry point). Components take explicit arguments and fall back to these.
"""
import os
import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_AI_MODEL = "openai/gpt-4o-mini"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

DEFAULT_FETCH_TIMEOUT_MS = 8000
DEFAULT_FETCH_RETRY_COUNT = 2
DEFAULT_MAX_SEARCH_PAGES = 12
DEFAULT_BATCH_SIZE = 3

# Path fragments that identify a job detail page on supported boards
DEFAULT_DETAIL_MARKERS = ["/vacancies/detail", "/jobs/job"]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"[config] Invalid integer for {name}={raw!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"[config] Invalid number for {name}={raw!r}, using {default}")
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings(BaseModel):
    """Immutable settings snapshot."""

    model_config = ConfigDict(frozen=True)

    ai_api_key: Optional[str] = None
    ai_model: str = DEFAULT_AI_MODEL
    ai_base_url: str = OPENROUTER_BASE_URL
    ai_timeout_seconds: float = 30.0
    ai_enabled: bool = True
    fetch_timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS
    fetch_retry_count: int = DEFAULT_FETCH_RETRY_COUNT
    max_search_pages: int = DEFAULT_MAX_SEARCH_PAGES
    batch_size: int = DEFAULT_BATCH_SIZE
    user_agent: str = DEFAULT_USER_AGENT
    detail_markers: List[str] = list(DEFAULT_DETAIL_MARKERS)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            ai_api_key=os.getenv("OPENROUTER_API_KEY") or os.getenv("OPENAI_API_KEY") or None,
            ai_model=os.getenv("OPENROUTER_MODEL", DEFAULT_AI_MODEL),
            ai_base_url=os.getenv("JOBSIFT_AI_BASE_URL", OPENROUTER_BASE_URL),
            ai_timeout_seconds=_env_float("JOBSIFT_AI_TIMEOUT_SECONDS", 30.0),
            ai_enabled=_env_bool("JOBSIFT_ENABLE_AI", True),
            fetch_timeout_ms=_env_int("JOBSIFT_FETCH_TIMEOUT_MS", DEFAULT_FETCH_TIMEOUT_MS),
            fetch_retry_count=_env_int("JOBSIFT_FETCH_RETRY_COUNT", DEFAULT_FETCH_RETRY_COUNT),
            max_search_pages=_env_int("JOBSIFT_MAX_SEARCH_PAGES", DEFAULT_MAX_SEARCH_PAGES),
            batch_size=_env_int("JOBSIFT_BATCH_SIZE", DEFAULT_BATCH_SIZE),
            user_agent=os.getenv("JOBSIFT_USER_AGENT", DEFAULT_USER_AGENT),
            detail_markers=_env_list("JOBSIFT_DETAIL_MARKERS", DEFAULT_DETAIL_MARKERS),
        )

    @property
    def ai_available(self) -> bool:
        return self.ai_enabled and bool(self.ai_api_key)
