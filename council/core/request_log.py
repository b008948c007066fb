"""Sanitized request/response debug logs for outbound provider calls."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from .models import TokenUsage

logger = logging.getLogger(__name__)

_SECRET_KEY_MARKERS = ("api_key", "authorization", "token", "secret", "password")
_TOKEN_COUNT_KEYS = {"prompt_tokens", "completion_tokens", "total_tokens", "max_tokens"}
_TEXT_KEY_MARKERS = ("prompt", "content", "message", "text", "reasoning")


def get_logs_dir() -> Path:
    """Get logs directory, create if needed."""
    logs_dir = Path("./logs")
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def sanitize(value: Any, key_hint: str = "") -> Any:
    """Recursively redact secrets and prompt text, keep token counts."""
    key = key_hint.lower()
    if key in _TOKEN_COUNT_KEYS:
        return value
    if any(marker in key for marker in _SECRET_KEY_MARKERS):
        return "[REDACTED_SECRET]"

    if isinstance(value, dict):
        return {str(k): sanitize(v, key_hint=str(k)) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [sanitize(item, key_hint=key_hint) for item in value]

    if isinstance(value, str):
        if any(marker in key for marker in _TEXT_KEY_MARKERS):
            return f"[REDACTED_TEXT length={len(value)}]"
        if len(value) > 200:
            return value[:200] + "...[truncated]"

    return value


def _usage_of(response: Any) -> Any:
    if isinstance(response, dict):
        return response.get("usage")
    return getattr(response, "usage", None)


def _serialize_response(response: Any) -> Any:
    if isinstance(response, dict):
        return sanitize(response, key_hint="response")
    if hasattr(response, "model_dump"):
        return sanitize(response.model_dump(mode="json", warnings=False), key_hint="response")
    return {"type": type(response).__name__}


def log_request_response(
    request: dict,
    response: Any,
    provider_id: str = "",
    domain: str = "",
    latency_s: float | None = None,
) -> None:
    """Write a sanitized request/response pair to a JSON file in ./logs.

    Token usage is copied out of the response unredacted so spend can be
    reconciled against the ledger.
    """
    logs_dir = get_logs_dir()
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    label = provider_id.replace("/", "_").replace(":", "_") or "provider"
    log_file = logs_dir / f"{timestamp}_{label}.json"

    log_data = {
        "timestamp": datetime.now().isoformat(),
        "provider_id": provider_id,
        "domain": domain,
        "latency_s": round(latency_s, 3) if latency_s is not None else None,
        "usage": TokenUsage.coerce(_usage_of(response)).model_dump(),
        "request": sanitize(request, key_hint="request"),
        "response": _serialize_response(response),
    }

    try:
        with open(log_file, "w", encoding="utf-8") as f:
            json.dump(log_data, f, indent=2, default=str)
    except OSError as exc:
        logger.warning("Failed to write provider debug log %s: %s", log_file, exc)
