"""Tests for the AI resilience layer and the suggestions endpoint."""

from __future__ import annotations

import time
from unittest.mock import MagicMock, patch

import pytest

from ai_resilience import (
    CircuitBreaker,
    PROVIDER,
    _is_transient,
    get_circuit_breaker,
    get_suggestion,
)
from storage import MemStorage
from suggestions import detect_activity_type, detect_class_level, fallback_suggestion

CONFIG = {
    "DEEPSEEK_API_KEY": "sk-test",
    "DEEPSEEK_BASE_URL": "https://api.deepseek.com/v1",
    "DEEPSEEK_MODEL": "deepseek-chat",
    "EXTERNAL_TIMEOUT_SECONDS": 5,
}


@pytest.fixture(autouse=True)
def reset_breaker():
    get_circuit_breaker().reset()
    yield
    get_circuit_breaker().reset()


def _completion(text: str) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=text))]
    return response


@pytest.fixture
def mock_openai():
    with patch("ai_resilience.openai.OpenAI") as client_cls:
        yield client_cls


# ── CircuitBreaker Tests ────────────────────────────────────


class TestCircuitBreaker:
    def test_starts_closed(self):
        cb = CircuitBreaker()
        assert cb.get_state("deepseek") == "closed"
        assert not cb.is_open("deepseek")

    def test_opens_after_threshold(self):
        cb = CircuitBreaker()
        for _ in range(cb.FAILURE_THRESHOLD):
            cb.record_failure("deepseek")
        assert cb.is_open("deepseek")

    def test_half_open_after_recovery(self):
        cb = CircuitBreaker()
        for _ in range(cb.FAILURE_THRESHOLD):
            cb.record_failure("deepseek")
        cb._providers["deepseek"].last_failure_time = time.time() - cb.RECOVERY_TIMEOUT - 1
        assert not cb.is_open("deepseek")
        assert cb.get_state("deepseek") == "half_open"

    def test_success_closes(self):
        cb = CircuitBreaker()
        cb.record_failure("deepseek")
        cb.record_success("deepseek")
        assert cb.get_state("deepseek") == "closed"


class TestTransientDetection:
    def test_connection_errors_are_transient(self):
        assert _is_transient(ConnectionError("reset"))
        assert _is_transient(TimeoutError())

    def test_message_patterns(self):
        assert _is_transient(Exception("HTTP 503 Service Unavailable"))
        assert _is_transient(Exception("Rate limit exceeded"))

    def test_client_errors_are_not_transient(self):
        assert not _is_transient(ValueError("invalid api key"))


# ── Fallback suggestions ────────────────────────────────────


class TestFallback:
    def test_detects_class_and_activity(self):
        assert detect_class_level("Ideas for my UKG class") == "UKG"
        assert detect_class_level("general ideas") is None
        assert detect_activity_type("counting games") == "numeracy"
        assert detect_activity_type("reading corner") == "literacy"
        assert detect_activity_type("outdoor play") == "general"

    def test_class_specific_text(self):
        text = fallback_suggestion("number games for nursery")
        assert text.startswith("Here are some pre-numeracy activities for Nursery students (age 3):")
        assert "5. " in text

    def test_explicit_class_level_wins(self):
        assert "LKG students (age 4)" in fallback_suggestion("story time", class_level="LKG")

    def test_generic_without_class(self):
        assert "general teaching activities" in fallback_suggestion("something fun")


# ── get_suggestion ──────────────────────────────────────────


class TestGetSuggestion:
    def test_cache_hit_skips_provider(self, mock_openai):
        store = MemStorage()
        store.save_ai_suggestion("rainy day ideas", "Puddle jumping")
        text, source = get_suggestion(store, "rainy day ideas", CONFIG)
        assert (text, source) == ("Puddle jumping", "cache")
        mock_openai.assert_not_called()

    def test_no_key_uses_fallback(self, mock_openai):
        store = MemStorage()
        text, source = get_suggestion(store, "LKG literacy", {**CONFIG, "DEEPSEEK_API_KEY": ""})
        assert source == "fallback"
        assert "LKG" in text
        mock_openai.assert_not_called()
        assert store.get_ai_suggestion("LKG literacy") is None

    def test_provider_success_is_cached(self, mock_openai):
        mock_openai.return_value.chat.completions.create.return_value = _completion("1. Leaf printing")
        store = MemStorage()

        text, source = get_suggestion(store, "art for UKG", CONFIG)
        assert (text, source) == ("1. Leaf printing", "deepseek")
        assert store.get_ai_suggestion("art for UKG").response == "1. Leaf printing"

        kwargs = mock_openai.return_value.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "deepseek-chat"
        assert kwargs["messages"][0]["role"] == "system"
        assert kwargs["messages"][1] == {"role": "user", "content": "art for UKG"}
        assert 0 < mock_openai.call_args.kwargs["timeout"] <= 5

        # Second call is served from the cache
        assert get_suggestion(store, "art for UKG", CONFIG)[1] == "cache"
        assert mock_openai.return_value.chat.completions.create.call_count == 1

    def test_provider_error_falls_back_and_is_not_cached(self, mock_openai):
        mock_openai.return_value.chat.completions.create.side_effect = ValueError("invalid api key")
        store = MemStorage()
        text, source = get_suggestion(store, "motor skills for nursery", CONFIG)
        assert source == "fallback"
        assert "Nursery" in text
        assert store.get_ai_suggestion("motor skills for nursery") is None
        assert get_circuit_breaker().get_state(PROVIDER) == "closed"

    def test_transient_errors_are_retried(self, mock_openai, monkeypatch):
        monkeypatch.setattr(time, "sleep", lambda s: None)
        create = mock_openai.return_value.chat.completions.create
        create.side_effect = [ConnectionError("reset"), _completion("Retried answer")]
        text, source = get_suggestion(MemStorage(), "songs", CONFIG)
        assert (text, source) == ("Retried answer", "deepseek")
        assert create.call_count == 2

    def test_retries_share_one_time_budget(self, mock_openai):
        def slow_failure(**kwargs):
            time.sleep(0.2)
            raise ConnectionError("reset")

        create = mock_openai.return_value.chat.completions.create
        create.side_effect = slow_failure
        started = time.monotonic()
        text, source = get_suggestion(MemStorage(), "songs", {**CONFIG, "EXTERNAL_TIMEOUT_SECONDS": 0.3})
        elapsed = time.monotonic() - started

        assert source == "fallback"
        # The first backoff outlasts the budget, so no second attempt starts
        assert create.call_count == 1
        assert elapsed < 1.5

    def test_attempt_timeout_never_exceeds_budget(self, mock_openai, monkeypatch):
        monkeypatch.setattr(time, "sleep", lambda s: None)
        create = mock_openai.return_value.chat.completions.create
        create.side_effect = [ConnectionError("reset"), ConnectionError("reset"), _completion("Third time")]
        assert get_suggestion(MemStorage(), "songs", CONFIG) == ("Third time", "deepseek")
        timeouts = [c.kwargs["timeout"] for c in mock_openai.call_args_list]
        assert len(timeouts) == 3
        assert all(0 < t <= CONFIG["EXTERNAL_TIMEOUT_SECONDS"] for t in timeouts)
        assert timeouts == sorted(timeouts, reverse=True)

    def test_open_breaker_skips_provider(self, mock_openai):
        for _ in range(CircuitBreaker.FAILURE_THRESHOLD):
            get_circuit_breaker().record_failure(PROVIDER)
        text, source = get_suggestion(MemStorage(), "songs", CONFIG)
        assert source == "fallback"
        mock_openai.assert_not_called()

    def test_empty_answer_falls_back(self, mock_openai):
        mock_openai.return_value.chat.completions.create.return_value = _completion("  ")
        assert get_suggestion(MemStorage(), "songs", CONFIG)[1] == "fallback"


class TestSuggestionEndpoint:
    def test_requires_login(self, client):
        assert client.post("/api/ai-suggestions", json={"prompt": "ideas"}).status_code == 401

    def test_fallback_without_key(self, teacher_client):
        resp = teacher_client.post("/api/ai-suggestions", json={"prompt": "counting games", "classLevel": "UKG"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["source"] == "fallback"
        assert "UKG students (age 5)" in data["suggestion"]

    def test_cached_answer(self, teacher_client, store):
        store.save_ai_suggestion("clay ideas", "Make clay animals")
        resp = teacher_client.post("/api/ai-suggestions", json={"prompt": "clay ideas"})
        assert resp.get_json() == {"suggestion": "Make clay animals", "source": "cache"}

    def test_empty_prompt_is_400(self, teacher_client):
        assert teacher_client.post("/api/ai-suggestions", json={"prompt": ""}).status_code == 400
