"""Tests for sanitized request/response logging."""

import json

from council.core import request_log
from council.core.request_log import log_request_response, sanitize


def test_sanitize_redacts_secrets_and_text():
    payload = {
        "model": "openai/gpt-4o",
        "api_key": "sk-123",
        "max_tokens": 256,
        "messages": [{"role": "user", "content": "secret plans"}],
        "usage": {"prompt_tokens": 3, "total_tokens": 5},
    }
    clean = sanitize(payload)
    assert clean["model"] == "openai/gpt-4o"
    assert clean["api_key"] == "[REDACTED_SECRET]"
    assert clean["max_tokens"] == 256
    assert clean["messages"][0]["content"] == "[REDACTED_TEXT length=12]"
    assert clean["usage"] == {"prompt_tokens": 3, "total_tokens": 5}


def test_long_strings_truncated():
    assert sanitize({"id": "x" * 300})["id"].endswith("...[truncated]")


def test_log_file_written(tmp_path, monkeypatch):
    monkeypatch.setattr(request_log, "get_logs_dir", lambda: tmp_path)
    log_request_response(
        {"model": "openai/gpt-4o", "messages": [{"role": "user", "content": "hi"}]},
        {"choices": [{"message": {"content": "hello"}}]},
        provider_id="openai/gpt-4o",
        domain="tec.pi",
    )
    files = list(tmp_path.glob("*_openai_gpt-4o.json"))
    assert len(files) == 1
    data = json.loads(files[0].read_text())
    assert data["domain"] == "tec.pi"
    assert data["request"]["messages"][0]["content"] == "[REDACTED_TEXT length=2]"
    assert data["usage"]["total_tokens"] == 0


def test_usage_kept_for_reconciliation(tmp_path, monkeypatch):
    monkeypatch.setattr(request_log, "get_logs_dir", lambda: tmp_path)
    log_request_response(
        {"model": "openai/gpt-4o"},
        {"usage": {"prompt_tokens": 12, "completion_tokens": 8}},
        provider_id="openai/gpt-4o",
        latency_s=1.23456,
    )
    data = json.loads(next(tmp_path.glob("*.json")).read_text())
    assert data["usage"] == {"prompt_tokens": 12, "completion_tokens": 8, "total_tokens": 20}
    assert data["latency_s"] == 1.235
