"""Tests for remote validation, local fallback and the HTTP classifier."""

import http.client
import io
import json
import urllib.error
import urllib.request

import pytest

from quickjot.backends.base import RemoteClassifier, RemoteClassifierError, SaveError
from quickjot.backends.http import HttpClassifier, HttpSaveBackend
from quickjot.config import PipelineConfig, RemoteConfig
from quickjot.nlp.fallback import (
    FALLBACK_WARNING_PREFIX,
    RULE_LOCAL_FALLBACK,
    classify_text,
    validate_canonical,
    validate_or_fallback,
)


def remote_item(title: str, **overrides) -> dict:
    item = {
        "type": "To-do",
        "title": title,
        "details": None,
        "due_iso": None,
        "duration_min": None,
        "location": None,
        "subtasks": [],
    }
    item.update(overrides)
    return item


def remote_result(*items: dict, **overrides) -> dict:
    result = {
        "items": list(items),
        "suggested_overall_category": "To-do",
        "forced_rules_applied": ["remote_model"],
        "warnings": [],
        "confidence": 0.9,
    }
    result.update(overrides)
    return result


class FakeClassifier(RemoteClassifier):
    def __init__(self, response=None, error: Exception | None = None, available: bool = True):
        self.response = response
        self.error = error
        self.available = available
        self.calls = []

    @property
    def name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return self.available

    def classify(self, text, timezone, user_id, max_items):
        self.calls.append((text, timezone, user_id, max_items))
        if self.error:
            raise self.error
        return self.response


def assert_fell_back(result, reason: str):
    assert RULE_LOCAL_FALLBACK in result.forced_rules_applied
    assert f"{FALLBACK_WARNING_PREFIX} ({reason})" in result.warnings


# =============================================================================
# validate_or_fallback
# =============================================================================

def test_invalid_payload_falls_back(today):
    result = validate_or_fallback({"invalid": "data"}, "call mom", today=today)

    assert_fell_back(result, "schema_invalid")
    assert [item.title for item in result.items] == ["call mom"]
    assert result.items[0].type == "To-do"


def test_missing_payload_falls_back(today):
    result = validate_or_fallback(None, "call mom", today=today)
    assert_fell_back(result, "missing_payload")


def test_valid_dict_accepted(today):
    result = validate_or_fallback(remote_result(remote_item("buy milk")), "buy milk", today=today)

    assert RULE_LOCAL_FALLBACK not in result.forced_rules_applied
    assert result.forced_rules_applied == ["remote_model"]
    assert [item.title for item in result.items] == ["buy milk"]


def test_valid_json_string_accepted(today):
    payload = json.dumps(remote_result(remote_item("buy milk")))
    result = validate_or_fallback(payload, "buy milk", today=today)
    assert result.items[0].title == "buy milk"


def test_malformed_json_string_falls_back(today):
    result = validate_or_fallback("{not json", "call mom", today=today)
    assert_fell_back(result, "schema_invalid")


def test_bare_date_due_is_rejected(today):
    payload = remote_result(remote_item("buy milk", due_iso="2025-01-16"))
    result = validate_or_fallback(payload, "buy milk tomorrow", today=today)

    assert_fell_back(result, "schema_invalid")
    assert result.items[0].due_iso == "2025-01-16T00:00:00Z"


def test_too_many_items_rejected(today):
    payload = remote_result(*[remote_item(f"call person {n}") for n in range(16)])
    result = validate_or_fallback(payload, "call mom", today=today)
    assert_fell_back(result, "schema_invalid")


def test_configured_cap_applies_to_remote(today):
    payload = remote_result(remote_item("call alice"), remote_item("call bob"), remote_item("call carol"))
    result = validate_or_fallback(
        payload, "call mom", today=today, pipeline_config=PipelineConfig(max_items=2)
    )
    assert_fell_back(result, "schema_invalid")


def test_remote_items_are_post_filtered(today):
    payload = remote_result(remote_item("buy milk"), remote_item("buy milk today"), remote_item("milk"))
    result = validate_or_fallback(payload, "buy milk", today=today)
    assert [item.title for item in result.items] == ["buy milk"]


def test_validate_canonical_rejects_unknown_type():
    with pytest.raises(ValueError):
        validate_canonical(remote_result(remote_item("x y z", type="Reminder")), 15)


# =============================================================================
# classify_text
# =============================================================================

def test_no_classifier_is_local(today):
    result = classify_text("call mom", today=today)

    assert_fell_back(result, "remote_unavailable")
    assert result.items[0].title == "call mom"


def test_unavailable_classifier_not_called(today):
    classifier = FakeClassifier(available=False)
    result = classify_text("call mom", classifier, today=today)

    assert classifier.calls == []
    assert_fell_back(result, "remote_unavailable")


def test_remote_error_falls_back(today):
    classifier = FakeClassifier(error=RemoteClassifierError("timed out"))
    result = classify_text("call mom", classifier, today=today)
    assert_fell_back(result, "remote_error")


def test_unexpected_classifier_exception_falls_back(today):
    classifier = FakeClassifier(error=ValueError("unexpected payload shape"))
    result = classify_text("call mom", classifier, today=today)

    assert_fell_back(result, "remote_error")
    assert result.items[0].title == "call mom"


def test_remote_invalid_data_falls_back(today):
    classifier = FakeClassifier(response={"invalid": "data"})
    result = classify_text("call mom", classifier, today=today)
    assert_fell_back(result, "schema_invalid")


def test_remote_options_passed(today):
    classifier = FakeClassifier(response=remote_result(remote_item("call mom")))
    result = classify_text(
        "call mom",
        classifier,
        timezone="America/Chicago",
        user_id="u-1",
        today=today,
        pipeline_config=PipelineConfig(max_items=7),
    )

    assert classifier.calls == [("call mom", "America/Chicago", "u-1", 7)]
    assert result.forced_rules_applied == ["remote_model"]


# =============================================================================
# HTTP backends
# =============================================================================

@pytest.fixture
def captured(monkeypatch):
    """Replace urlopen; responses are popped in order, exceptions raised."""
    state = {"requests": [], "responses": []}

    def fake_urlopen(request, timeout=None):
        state["requests"].append(request)
        response = state["responses"].pop(0)
        if isinstance(response, Exception):
            raise response
        return io.BytesIO(response)

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    monkeypatch.delenv("QUICKJOT_API_KEY", raising=False)
    return state


def http_error(code: int) -> urllib.error.HTTPError:
    return urllib.error.HTTPError("http://example.test", code, "error", {}, None)


def test_http_classifier_request_body(captured):
    captured["responses"].append(json.dumps(remote_result(remote_item("call mom"))).encode())
    classifier = HttpClassifier("http://example.test/classify", api_key="secret")

    payload = classifier.classify("call mom", "UTC", "u-1", 15)

    request = captured["requests"][0]
    assert json.loads(request.data) == {
        "input": "call mom",
        "options": {"timezone": "UTC", "userId": "u-1", "maxItems": 15},
    }
    assert request.get_header("Authorization") == "Bearer secret"
    assert payload["items"][0]["title"] == "call mom"


def test_http_classifier_invalid_data_falls_back(captured, today):
    captured["responses"].append(b'{"invalid": "data"}')
    classifier = HttpClassifier("http://example.test/classify")

    result = classify_text("call mom", classifier, today=today)

    assert_fell_back(result, "schema_invalid")


def test_http_error_not_retried(captured):
    captured["responses"].extend([http_error(500), b"{}"])
    classifier = HttpClassifier("http://example.test/classify", RemoteConfig(max_retries=2))

    with pytest.raises(RemoteClassifierError, match="HTTP 500"):
        classifier.classify("call mom", "UTC", "u-1", 15)
    assert len(captured["requests"]) == 1


def test_connection_error_retried(captured):
    captured["responses"].extend([
        urllib.error.URLError("connection refused"),
        json.dumps(remote_result(remote_item("call mom"))).encode(),
    ])
    config = RemoteConfig(max_retries=2, retry_delay_seconds=0)
    classifier = HttpClassifier("http://example.test/classify", config)

    payload = classifier.classify("call mom", "UTC", "u-1", 15)

    assert len(captured["requests"]) == 2
    assert payload["confidence"] == 0.9


def test_connection_error_exhausted(captured):
    captured["responses"].extend([urllib.error.URLError("down"), urllib.error.URLError("down")])
    config = RemoteConfig(max_retries=2, retry_delay_seconds=0)
    classifier = HttpClassifier("http://example.test/classify", config)

    with pytest.raises(RemoteClassifierError, match="unreachable"):
        classifier.classify("call mom", "UTC", "u-1", 15)


def test_undecodable_response(captured):
    captured["responses"].append(b"<html>")
    classifier = HttpClassifier("http://example.test/classify")

    with pytest.raises(RemoteClassifierError, match="Undecodable"):
        classifier.classify("call mom", "UTC", "u-1", 15)


def test_http_classifier_without_url():
    classifier = HttpClassifier(None)
    assert not classifier.is_available()
    with pytest.raises(RemoteClassifierError):
        classifier.classify("call mom", "UTC", "u-1", 15)


def test_save_backend_posts_items(captured):
    captured["responses"].append(b"{}")
    backend = HttpSaveBackend("http://example.test/save")

    backend([{"title": "call mom"}])

    assert json.loads(captured["requests"][0].data) == {"items": [{"title": "call mom"}]}


def test_save_backend_error(captured):
    captured["responses"].append(http_error(503))
    backend = HttpSaveBackend("http://example.test/save")

    with pytest.raises(SaveError, match="HTTP 503"):
        backend.save([{"title": "call mom"}])


def test_malformed_http_response_falls_back(captured, today):
    captured["responses"].append(http.client.BadStatusLine("GARBAGE"))
    classifier = HttpClassifier("http://example.test/classify")

    with pytest.raises(RemoteClassifierError, match="Malformed"):
        classifier.classify("call mom", "UTC", "u-1", 15)

    captured["responses"].append(http.client.BadStatusLine("GARBAGE"))
    result = classify_text("call mom", classifier, today=today)
    assert_fell_back(result, "remote_error")


def test_save_backend_malformed_response(captured):
    captured["responses"].append(http.client.IncompleteRead(b"{"))
    backend = HttpSaveBackend("http://example.test/save")

    with pytest.raises(SaveError, match="Malformed"):
        backend.save([{"title": "call mom"}])
