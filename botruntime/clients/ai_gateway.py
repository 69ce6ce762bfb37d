"""Text generation providers: an OpenAI-compatible gateway and Gemini REST.

Both return ``(text, err)``; ``err`` is a short machine-readable reason.
"""
from __future__ import annotations

import logging
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)

RETRIES = 1
BACKOFF_SECONDS = 0.5
RETRY_STATUSES = {429, 500, 502, 503, 504}

# gateway-specific statuses worth telling apart in logs
STATUS_ERRORS = {402: "payment_required", 429: "rate_limited"}


def _reason(exc: Exception) -> str:
    text = str(exc) or exc.__class__.__name__
    low = text.lower()
    if isinstance(exc, httpx.TimeoutException) or "timed out" in low:
        return "timeout"
    if "connection reset" in low or "errno 104" in low:
        return "connection_reset"
    if "certificate verify failed" in low:
        return "ssl_verify_failed"
    return text[:200]


def _post_json(
    url: str,
    body: dict[str, Any],
    *,
    headers: dict[str, str],
    timeout: float,
) -> tuple[int | None, dict, str | None]:
    """POST with a short retry on transport errors and retryable statuses."""
    status: int | None = None
    payload: dict = {}
    err: str | None = None
    for attempt in range(RETRIES + 1):
        try:
            r = httpx.post(url, json=body, headers=headers, timeout=timeout)
        except httpx.HTTPError as e:
            status, payload, err = None, {}, _reason(e)
        else:
            status, err = r.status_code, None
            try:
                payload = r.json() if r.content else {}
            except ValueError:
                payload = {}
            if status not in RETRY_STATUSES:
                return status, payload, None
        if attempt < RETRIES:
            time.sleep(BACKOFF_SECONDS * (attempt + 1))
    return status, payload, err


def _status_error(status: int, payload: dict) -> str:
    if status in STATUS_ERRORS:
        return STATUS_ERRORS[status]
    detail = payload.get("error")
    if isinstance(detail, dict):
        detail = detail.get("message")
    return (detail if isinstance(detail, str) and detail else f"http_{status}")[:200]


def chat_complete(
    url: str,
    api_key: str,
    model: str,
    messages: list[dict[str, Any]],
    *,
    timeout: float = 30,
) -> tuple[str | None, str | None]:
    if not api_key:
        return None, "missing_api_key"
    if not url:
        return None, "missing_url"
    logger.info("ai_chat_request model=%s messages=%s", model, len(messages))
    status, data, err = _post_json(
        url,
        {"model": model, "messages": messages},
        headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
        timeout=timeout,
    )
    if err:
        return None, err
    if status >= 400:
        return None, _status_error(status, data)
    for choice in data.get("choices") or []:
        content = ((choice or {}).get("message") or {}).get("content")
        if content:
            return str(content), None
    return None, "empty_response"


def _gemini_prompt(messages: list[dict[str, Any]]) -> str:
    system = "\n".join(str(m.get("content") or "") for m in messages if m.get("role") == "system")
    rest = "\n".join(str(m.get("content") or "") for m in messages if m.get("role") != "system")
    return f"{system}\n\n{rest}".strip()


def gemini_generate(
    api_base: str,
    api_key: str,
    model: str,
    messages: list[dict[str, Any]],
    *,
    timeout: float = 30,
) -> tuple[str | None, str | None]:
    """Single-turn generateContent: the system prompt and user turns go into one part."""
    if not api_key:
        return None, "missing_api_key"
    url = f"{(api_base or '').rstrip('/')}/models/{model}:generateContent?key={api_key}"
    logger.info("gemini_request model=%s", model)
    status, data, err = _post_json(
        url,
        {"contents": [{"parts": [{"text": _gemini_prompt(messages)}]}]},
        headers={"Content-Type": "application/json"},
        timeout=timeout,
    )
    if err:
        return None, err
    if status >= 400:
        return None, _status_error(status, data)
    for candidate in data.get("candidates") or []:
        parts = ((candidate or {}).get("content") or {}).get("parts") or []
        if parts and parts[0].get("text"):
            return str(parts[0]["text"]), None
    return None, "empty_response"
