"""Execution of individual flow steps."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from botruntime.services.api_executor import run_api_call
from botruntime.services.replies import BotReply, inline_keyboard

logger = logging.getLogger(__name__)

MSG_CONDITION_PLACEHOLDER = "Got it, let's continue."


def render_template(text: str, vars_map: dict[str, Any]) -> str:
    if not text:
        return text
    out = text
    for k, v in vars_map.items():
        out = out.replace("{{" + k + "}}", str(v))
    return out


def _api_config(step: dict[str, Any], vars_map: dict[str, Any]) -> dict[str, Any]:
    config = dict(step.get("config") or {})
    for key in ("integration_id", "integration", "method", "path", "query", "body"):
        if key not in config and step.get(key) is not None:
            config[key] = step.get(key)
    if isinstance(config.get("path"), str):
        config["path"] = render_template(config["path"], vars_map)
    return config


def execute_step(
    db: Session,
    project_id: int,
    step: dict[str, Any],
    vars_map: dict[str, Any] | None = None,
) -> BotReply | None:
    vars_map = vars_map or {}
    stype = (step.get("type") or "message").lower()
    content = render_template(str(step.get("content") or ""), vars_map)

    if stype == "message":
        if not content:
            return None
        return BotReply(text=content, reply_markup=inline_keyboard(step.get("buttons")))

    if stype == "api_call":
        text = run_api_call(db, project_id, _api_config(step, vars_map))
        if content:
            text = f"{content}\n\n{text}"
        return BotReply(text=text)

    if stype == "condition":
        # branching is not evaluated yet; acknowledge and move on
        return BotReply(text=content or MSG_CONDITION_PLACEHOLDER)

    logger.info("flow_step_unknown_type step_id=%s type=%s", step.get("id"), stype)
    return BotReply(text=content) if content else None
