"""AI Resilience Layer — Retry, Circuit Breaker, Cache, Fallback.

``get_suggestion()`` is the single entry point for classroom activity
suggestions. It consults the stored suggestion cache first, then calls the
DeepSeek chat-completion API (OpenAI-compatible) with retry and circuit
breaking, and finally falls back to canned suggestions. Provider errors are
logged and never propagate to the caller.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Mapping

import openai
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from storage import Storage
from suggestions import fallback_suggestion

logger = logging.getLogger(__name__)

PROVIDER = "deepseek"

SYSTEM_PROMPT = (
    "You are a helpful assistant for pre-primary teachers in Nepal. You suggest "
    "classroom activities for Nursery (about 3 years), LKG (about 4 years) and "
    "UKG (about 5 years) children following Nepal's Early Childhood Education "
    "and Development (ECED) framework. Focus on practical, low-cost activities "
    "that build social skills, pre-literacy, pre-numeracy, motor skills and "
    "emotional development."
)


# ── Circuit Breaker ─────────────────────────────────────────

@dataclass
class _ProviderState:
    failures: int = 0
    state: str = "closed"  # closed | open | half_open
    last_failure_time: float = 0.0


class CircuitBreaker:
    """Per-provider state machine: closed -> open -> half_open -> closed."""

    FAILURE_THRESHOLD = 3
    RECOVERY_TIMEOUT = 60  # seconds

    def __init__(self) -> None:
        self._providers: dict[str, _ProviderState] = {}
        self._lock = threading.Lock()

    def _get_state(self, provider: str) -> _ProviderState:
        if provider not in self._providers:
            self._providers[provider] = _ProviderState()
        return self._providers[provider]

    def record_success(self, provider: str) -> None:
        with self._lock:
            state = self._get_state(provider)
            state.failures = 0
            state.state = "closed"

    def record_failure(self, provider: str) -> None:
        with self._lock:
            state = self._get_state(provider)
            state.failures += 1
            state.last_failure_time = time.time()
            if state.failures >= self.FAILURE_THRESHOLD:
                state.state = "open"

    def is_open(self, provider: str) -> bool:
        with self._lock:
            state = self._get_state(provider)
            if state.state == "closed":
                return False
            if state.state == "open":
                elapsed = time.time() - state.last_failure_time
                if elapsed >= self.RECOVERY_TIMEOUT:
                    state.state = "half_open"
                    return False  # allow one attempt
                return True
            # half_open: allow one attempt
            return False

    def get_state(self, provider: str) -> str:
        with self._lock:
            return self._get_state(provider).state

    def reset(self) -> None:
        with self._lock:
            self._providers.clear()


_circuit_breaker = CircuitBreaker()


# ── Transient error detection ───────────────────────────────

_TRANSIENT_ERRORS = (
    ConnectionError,
    TimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


def _is_transient(exc: BaseException) -> bool:
    """Check if an exception is transient (worth retrying)."""
    if isinstance(exc, _TRANSIENT_ERRORS):
        return True
    msg = str(exc).lower()
    transient_patterns = [
        "rate limit",
        "429",
        "503",
        "502",
        "overloaded",
        "temporarily unavailable",
        "timeout",
        "timed out",
    ]
    return any(p in msg for p in transient_patterns)


class TransientLLMError(Exception):
    """Wrapper for transient provider errors that should be retried."""


# ── Provider call ───────────────────────────────────────────

def _do_call(prompt: str, config: Mapping[str, Any], timeout: float) -> str:
    """Execute one chat-completion request (no retry, no cache)."""
    client = openai.OpenAI(
        api_key=config["DEEPSEEK_API_KEY"],
        base_url=config.get("DEEPSEEK_BASE_URL") or "https://api.deepseek.com/v1",
        timeout=timeout,
        max_retries=0,
    )
    response = client.chat.completions.create(
        model=config.get("DEEPSEEK_MODEL") or "deepseek-chat",
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        temperature=0.7,
        max_tokens=500,
    )
    return response.choices[0].message.content or ""


def _call_with_retry(prompt: str, config: Mapping[str, Any]) -> str:
    """Call the provider with tenacity retry on transient errors.

    All attempts share one ``EXTERNAL_TIMEOUT_SECONDS`` budget: each attempt
    gets only the time left, and no attempt starts once it is spent.
    """
    budget = float(config.get("EXTERNAL_TIMEOUT_SECONDS", 5))
    deadline = time.monotonic() + budget
    retryer = Retrying(
        retry=retry_if_exception_type(TransientLLMError),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        stop=stop_after_attempt(3) | stop_after_delay(budget),
        reraise=True,
    )
    for attempt in retryer:
        with attempt:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError(f"AI request exceeded {budget:g}s budget")
            try:
                return _do_call(prompt, config, timeout=remaining)
            except Exception as exc:
                if _is_transient(exc):
                    raise TransientLLMError(str(exc)) from exc
                raise
    raise TimeoutError(f"AI request exceeded {budget:g}s budget")


# ── Main entry point ────────────────────────────────────────

def get_suggestion(
    store: Storage,
    prompt: str,
    config: Mapping[str, Any],
    class_level: str | None = None,
) -> tuple[str, str]:
    """Return ``(suggestion, source)`` for a teacher's prompt.

    ``source`` is ``"cache"``, ``"deepseek"`` or ``"fallback"``. Only provider
    answers are written to the cache.
    """
    cached = store.get_ai_suggestion(prompt)
    if cached is not None:
        return cached.response, "cache"

    if not config.get("DEEPSEEK_API_KEY"):
        logger.info("DeepSeek API key not configured; using fallback suggestion")
        return fallback_suggestion(prompt, class_level), "fallback"

    if _circuit_breaker.is_open(PROVIDER):
        logger.warning("Circuit breaker open for %s; using fallback suggestion", PROVIDER)
        return fallback_suggestion(prompt, class_level), "fallback"

    start = time.time()
    try:
        text = _call_with_retry(prompt, config)
    except Exception as exc:
        _circuit_breaker.record_failure(PROVIDER)
        logger.warning("DeepSeek call failed, using fallback suggestion: %s", exc)
        return fallback_suggestion(prompt, class_level), "fallback"

    _circuit_breaker.record_success(PROVIDER)
    if not text.strip():
        logger.warning("DeepSeek returned an empty suggestion; using fallback")
        return fallback_suggestion(prompt, class_level), "fallback"

    logger.info("DeepSeek suggestion in %d ms", int((time.time() - start) * 1000))
    store.save_ai_suggestion(prompt, text)
    return text, PROVIDER


def get_circuit_breaker() -> CircuitBreaker:
    """Access the module-level circuit breaker singleton."""
    return _circuit_breaker
