"""Outbound reply value and command response variants."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

PARSE_MODE_HTML = "HTML"


@dataclass
class BotReply:
    text: str
    reply_markup: dict | None = None
    # only dashboard-authored command text is sent as HTML; user, AI and API text goes out plain
    parse_mode: str | None = None


@dataclass
class TextResponse:
    text: str


@dataclass
class ButtonsResponse:
    text: str
    buttons: list[list[dict[str, Any]]] = field(default_factory=list)


@dataclass
class AIPromptResponse:
    prompt: str


CommandResponse = TextResponse | ButtonsResponse | AIPromptResponse


def _normalize_button(raw: Any) -> dict[str, Any] | None:
    if not isinstance(raw, dict):
        return None
    text = str(raw.get("text") or "").strip()
    if not text:
        return None
    if raw.get("url"):
        return {"text": text, "url": str(raw["url"])}
    data = raw.get("callback_data") or raw.get("callback") or raw.get("data") or text
    return {"text": text, "callback_data": str(data)[:64]}


def inline_keyboard(buttons: Any) -> dict | None:
    """Build reply_markup from either rows of buttons or a flat list (one button per row)."""
    if not buttons or not isinstance(buttons, list):
        return None
    rows: list[list[dict[str, Any]]] = []
    for item in buttons:
        if isinstance(item, list):
            row = [b for b in (_normalize_button(x) for x in item) if b]
            if row:
                rows.append(row)
        else:
            b = _normalize_button(item)
            if b:
                rows.append([b])
    if not rows:
        return None
    return {"inline_keyboard": rows}


def command_response(response_type: str | None, content: str | None, metadata: dict | None) -> CommandResponse:
    kind = (response_type or "text").strip().lower()
    text = content or ""
    if kind == "ai":
        return AIPromptResponse(prompt=text)
    if kind == "buttons":
        markup = inline_keyboard((metadata or {}).get("buttons"))
        if markup:
            return ButtonsResponse(text=text, buttons=markup["inline_keyboard"])
    return TextResponse(text=text)
