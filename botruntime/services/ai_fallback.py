"""AI-generated replies when nothing structured matched."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from botruntime.clients.ai_gateway import chat_complete, gemini_generate
from botruntime.config import get_settings
from botruntime.errors import UpstreamFailure
from botruntime.models.event import BotEvent
from botruntime.models.project import BotProject

logger = logging.getLogger(__name__)

MSG_AI_UNAVAILABLE = "Sorry, I couldn't process that request."


def _recent_history(db: Session, project_id: int, limit: int, current_text: str | None = None) -> str:
    # project-wide, not per user: every chat of the bot shares one history window;
    # kept as-is because existing bots were prompted this way
    rows = db.execute(
        select(BotEvent)
        .where(BotEvent.project_id == project_id, BotEvent.event_type == "message")
        .order_by(BotEvent.created_at.desc(), BotEvent.id.desc())
        .limit(limit + 1)
    ).scalars().all()
    # the inbound message is logged before dispatch; it is already the user turn
    if rows and current_text is not None and (rows[0].event_data or {}).get("text") == current_text:
        rows = rows[1:]
    rows = rows[:limit]
    lines = [str((r.event_data or {}).get("text") or "") for r in reversed(rows)]
    return "\n".join(x for x in lines if x)


def build_system_prompt(project: BotProject, history: str, extra: str | None = None) -> str:
    prompt = (
        f"You are a helpful Telegram bot assistant for: {project.name}\n\n"
        f"Bot Description: {project.description or 'General purpose bot'}\n"
        f"Bot Context: {project.context or 'No specific context'}\n\n"
        f"Recent conversation:\n{history or 'No recent messages'}\n\n"
        "Provide helpful, concise, and friendly responses. "
        "Keep answers under 200 characters unless more detail is needed."
    )
    if extra:
        prompt += f"\n\nAdditional instructions: {extra}"
    return prompt


def _generate(messages: list[dict]) -> str:
    s = get_settings()
    errors = []
    if s.ai_gateway_api_key:
        text, err = chat_complete(
            s.ai_gateway_url, s.ai_gateway_api_key, s.ai_model, messages, timeout=s.ai_timeout_seconds
        )
        if text:
            return text
        logger.warning("ai_gateway_failed err=%s, trying gemini", err)
        errors.append(f"gateway:{err}")
    text, err = gemini_generate(
        s.gemini_api_base, s.gemini_api_key, s.gemini_model, messages, timeout=s.ai_timeout_seconds
    )
    if text:
        return text
    errors.append(f"gemini:{err}")
    raise UpstreamFailure("ai_unavailable", detail=";".join(errors))


def generate_ai_reply(
    db: Session,
    project: BotProject,
    user_text: str,
    *,
    extra_prompt: str | None = None,
) -> str:
    history = _recent_history(db, project.id, get_settings().ai_history_limit, current_text=user_text)
    messages = [
        {"role": "system", "content": build_system_prompt(project, history, extra_prompt)},
        {"role": "user", "content": user_text},
    ]
    try:
        return _generate(messages)
    except UpstreamFailure as e:
        logger.warning("ai_fallback_failed project_id=%s detail=%s", project.id, e.detail)
        return MSG_AI_UNAVAILABLE
