"""
Remote text-scoring client for an OpenAI-compatible chat completions API (OpenRouter by default).

Every failure is reported as an AIResult with a reason; callers decide how to
degrade. A circuit breaker stops calling after a burst of failures.
"""
import json
import logging
import re
import time
from collections import deque
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from jobsift.config import Settings

logger = logging.getLogger(__name__)

# Circuit breaker configuration
CIRCUIT_BREAKER_ERROR_THRESHOLD = 0.5
CIRCUIT_BREAKER_MIN_CALLS = 4
CIRCUIT_BREAKER_WINDOW_SECONDS = 300
CIRCUIT_BREAKER_RESET_SECONDS = 60

T = TypeVar("T", bound=BaseModel)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_BARE_JSON = re.compile(r"\{.*\}", re.DOTALL)


class AIFailure(str, Enum):
    DISABLED = "disabled"
    CIRCUIT_OPEN = "circuit_open"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    TRANSPORT = "transport"
    EMPTY_CONTENT = "empty_content"
    MALFORMED_JSON = "malformed_json"
    SCHEMA_MISMATCH = "schema_mismatch"


class AIResult(Generic[T]):
    """Either a parsed value or the reason there is none."""

    def __init__(self, value: Optional[Any] = None, reason: Optional[AIFailure] = None,
                 detail: Optional[str] = None):
        self.value = value
        self.reason = reason
        self.detail = detail

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, value: Any) -> "AIResult":
        return cls(value=value)

    @classmethod
    def failure(cls, reason: AIFailure, detail: Optional[str] = None) -> "AIResult":
        return cls(reason=reason, detail=detail)

    def __repr__(self) -> str:
        if self.ok:
            return f"AIResult(ok, {self.value!r})"
        return f"AIResult({self.reason.value}, {self.detail!r})"


class CircuitBreaker:
    """Simple circuit breaker pattern for API resilience."""

    def __init__(self, error_threshold: float = CIRCUIT_BREAKER_ERROR_THRESHOLD,
                 window_seconds: int = CIRCUIT_BREAKER_WINDOW_SECONDS,
                 reset_seconds: int = CIRCUIT_BREAKER_RESET_SECONDS,
                 min_calls: int = CIRCUIT_BREAKER_MIN_CALLS):
        self.error_threshold = error_threshold
        self.window_seconds = window_seconds
        self.reset_seconds = reset_seconds
        self.min_calls = min_calls
        self.error_history = deque()  # (timestamp, is_error)
        self.circuit_open = False
        self.circuit_open_since: Optional[float] = None

    def record_call(self, is_error: bool):
        now = time.time()
        self.error_history.append((now, is_error))

        cutoff = now - self.window_seconds
        while self.error_history and self.error_history[0][0] < cutoff:
            self.error_history.popleft()

        if not is_error and self.circuit_open:
            self.circuit_open = False
            self.circuit_open_since = None
            logger.info("[ai_client] Circuit breaker CLOSED after successful call")
            return

        if len(self.error_history) >= self.min_calls:
            errors = sum(1 for _, is_err in self.error_history if is_err)
            error_rate = errors / len(self.error_history)
            if error_rate >= self.error_threshold and not self.circuit_open:
                self.circuit_open = True
                self.circuit_open_since = now
                logger.warning(f"[ai_client] Circuit breaker OPENED: error rate {error_rate:.1%}")

    def can_make_call(self) -> bool:
        if not self.circuit_open:
            return True
        if self.circuit_open_since and time.time() - self.circuit_open_since >= self.reset_seconds:
            # Half-open: let one call through
            self.circuit_open = False
            self.circuit_open_since = None
            logger.info("[ai_client] Circuit breaker half-open, allowing a call")
            return True
        return False


def extract_json_object(content: str) -> Optional[Dict[str, Any]]:
    """Parse a JSON object from raw, fenced or prose-wrapped model output."""
    content = content.strip()
    candidates = [content]
    fenced = _FENCED_JSON.search(content)
    if fenced:
        candidates.append(fenced.group(1))
    bare = _BARE_JSON.search(content)
    if bare:
        candidates.append(bare.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


class AIClient:
    """Chat completions client shared by the classifier, motto finder and refiner."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or Settings()
        self.api_key = api_key if api_key is not None else settings.ai_api_key
        self.model = model or settings.ai_model
        self.base_url = (base_url or settings.ai_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.ai_timeout_seconds
        self._client = client
        self._kill_switch = not settings.ai_enabled
        self.circuit_breaker = CircuitBreaker()

        if not self.enabled:
            logger.info("[ai_client] No API key configured. Remote AI features disabled.")

    @classmethod
    def from_settings(cls, settings: Settings) -> "AIClient":
        return cls(settings=settings)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key) and not self._kill_switch

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": "jobsift",
        }

    async def _post(self, payload: Dict[str, Any], timeout: float) -> httpx.Response:
        url = f"{self.base_url}/chat/completions"
        if self._client is not None:
            return await self._client.post(url, headers=self._headers(), json=payload, timeout=timeout)
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.post(url, headers=self._headers(), json=payload)

    async def complete_text(
        self,
        system: str,
        user: str,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        timeout: Optional[float] = None,
    ) -> AIResult:
        """Run one chat completion and return the assistant message content."""
        if not self.enabled:
            return AIResult.failure(AIFailure.DISABLED)

        if not self.circuit_breaker.can_make_call():
            logger.warning("[ai_client] Circuit breaker is OPEN, skipping call")
            return AIResult.failure(AIFailure.CIRCUIT_OPEN)

        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            response = await self._post(payload, timeout if timeout is not None else self.timeout)
        except httpx.TimeoutException as e:
            logger.warning(f"[ai_client] Timeout calling {self.model}: {e}")
            self.circuit_breaker.record_call(True)
            return AIResult.failure(AIFailure.TIMEOUT, str(e))
        except httpx.HTTPError as e:
            logger.warning(f"[ai_client] Network error calling {self.model}: {e}")
            self.circuit_breaker.record_call(True)
            return AIResult.failure(AIFailure.TRANSPORT, str(e))

        if response.status_code >= 400:
            logger.warning(f"[ai_client] HTTP {response.status_code} from {self.model}: {response.text[:200]}")
            self.circuit_breaker.record_call(True)
            return AIResult.failure(AIFailure.HTTP_STATUS, f"HTTP {response.status_code}")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning(f"[ai_client] Unexpected response format: {e}")
            self.circuit_breaker.record_call(True)
            return AIResult.failure(AIFailure.EMPTY_CONTENT, str(e))

        if not isinstance(content, str) or not content.strip():
            logger.warning("[ai_client] Empty completion content")
            self.circuit_breaker.record_call(True)
            return AIResult.failure(AIFailure.EMPTY_CONTENT)

        self.circuit_breaker.record_call(False)
        return AIResult.success(content)

    async def complete_json(
        self,
        system: str,
        user: str,
        schema: Type[T],
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> AIResult:
        """Run a JSON-mode completion and validate it against a pydantic schema."""
        result = await self.complete_text(
            system, user, temperature=temperature, max_tokens=max_tokens,
            json_mode=True, timeout=timeout,
        )
        if not result.ok:
            return result

        parsed = extract_json_object(result.value)
        if parsed is None:
            logger.warning(f"[ai_client] Could not parse JSON from response: {result.value[:200]}")
            return AIResult.failure(AIFailure.MALFORMED_JSON, result.value[:200])

        try:
            return AIResult.success(schema.model_validate(parsed))
        except ValidationError as e:
            logger.warning(f"[ai_client] Response did not match {schema.__name__}: {e.error_count()} errors")
            return AIResult.failure(AIFailure.SCHEMA_MISMATCH, str(e))
