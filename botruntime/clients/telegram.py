"""Telegram Bot API client."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from botruntime.config import get_settings

logger = logging.getLogger(__name__)

MESSAGE_LIMIT = 4096


def _api_url(token: str, method: str) -> str:
    base = (get_settings().telegram_api_base or "https://api.telegram.org").rstrip("/")
    return f"{base}/bot{token}/{method}"


def _split_message(text: str, limit: int = MESSAGE_LIMIT) -> list[str]:
    t = (text or "").strip()
    if not t:
        return []
    if len(t) <= limit:
        return [t]
    parts: list[str] = []
    buf: list[str] = []
    size = 0
    for para in t.split("\n"):
        chunk = para.strip()
        if not chunk:
            continue
        if size + len(chunk) + 1 > limit and buf:
            parts.append("\n".join(buf).strip())
            buf = []
            size = 0
        if len(chunk) > limit:
            for i in range(0, len(chunk), limit):
                parts.append(chunk[i:i + limit])
            continue
        buf.append(chunk)
        size += len(chunk) + 1
    if buf:
        parts.append("\n".join(buf).strip())
    return parts or [t[:limit]]


def _call(token: str, method: str, payload: dict[str, Any]) -> tuple[dict | None, str | None]:
    try:
        r = httpx.post(
            _api_url(token, method),
            json=payload,
            timeout=get_settings().telegram_timeout_seconds,
        )
        data = r.json()
        if not data.get("ok"):
            return None, data.get("description") or f"http_{r.status_code}"
        return data, None
    except (httpx.HTTPError, ValueError) as e:
        return None, str(e)[:200]


def telegram_send_message(
    token: str,
    chat_id: str | int,
    text: str,
    *,
    reply_markup: dict | None = None,
    parse_mode: str | None = None,
) -> tuple[bool, str | None]:
    """Send text, splitting past the Telegram size limit; the keyboard rides on the last part.

    Text is sent as-is unless ``parse_mode`` is given; HTML mode needs pre-escaped text.
    """
    parts = _split_message(text)
    if not parts:
        return False, "empty_text"
    for idx, part in enumerate(parts):
        payload: dict[str, Any] = {"chat_id": chat_id, "text": part}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if reply_markup and idx == len(parts) - 1:
            payload["reply_markup"] = reply_markup
        _data, err = _call(token, "sendMessage", payload)
        if err:
            logger.warning("telegram_send_failed chat_id=%s err=%s", chat_id, err)
            return False, err
    return True, None


def telegram_answer_callback_query(
    token: str,
    callback_query_id: str,
    text: str | None = None,
) -> tuple[bool, str | None]:
    payload: dict[str, Any] = {"callback_query_id": callback_query_id}
    if text:
        payload["text"] = text
    _data, err = _call(token, "answerCallbackQuery", payload)
    if err:
        logger.warning("telegram_answer_callback_failed id=%s err=%s", callback_query_id, err)
        return False, err
    return True, None


def telegram_answer_pre_checkout_query(
    token: str,
    pre_checkout_query_id: str,
    ok: bool = True,
    error_message: str | None = None,
) -> tuple[bool, str | None]:
    payload: dict[str, Any] = {"pre_checkout_query_id": pre_checkout_query_id, "ok": ok}
    if not ok and error_message:
        payload["error_message"] = error_message
    _data, err = _call(token, "answerPreCheckoutQuery", payload)
    if err:
        logger.warning("telegram_answer_pre_checkout_failed id=%s err=%s", pre_checkout_query_id, err)
        return False, err
    return True, None
