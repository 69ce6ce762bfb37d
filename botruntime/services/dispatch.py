"""Dispatch of inbound text to exactly one handling path.

Precedence is fixed: active flow -> intent -> command -> flow trigger -> AI.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from botruntime.models.command import BotCommand
from botruntime.models.flow import ConversationFlow
from botruntime.models.intent import BotIntent
from botruntime.models.project import BotProject
from botruntime.services import config_store
from botruntime.services.ai_fallback import generate_ai_reply
from botruntime.services.api_executor import run_api_call
from botruntime.services.conversation import (
    CONFLICT,
    advance_flow,
    get_active_state,
    start_flow,
)
from botruntime.services.replies import (
    AIPromptResponse,
    PARSE_MODE_HTML,
    BotReply,
    ButtonsResponse,
    command_response,
)

logger = logging.getLogger(__name__)

ROUTE_FLOW_CONTINUE = "flow_continue"
ROUTE_INTENT = "intent"
ROUTE_COMMAND = "command"
ROUTE_FLOW_START = "flow_start"
ROUTE_AI_FALLBACK = "ai_fallback"


@dataclass
class DispatchResult:
    route: str
    reply: BotReply | None = None
    matched: str | None = None
    command: str | None = None
    outcome: str | None = None


def _phrases(raw: Any) -> list[str]:
    if not raw:
        return []
    if isinstance(raw, str):
        raw = re.split(r"[\n,;]+", raw)
    if not isinstance(raw, list):
        return []
    return [str(p).strip() for p in raw if str(p).strip()]


def match_intent(intents: list[BotIntent], text: str) -> BotIntent | None:
    t = (text or "").lower()
    if not t:
        return None
    for intent in intents:
        for phrase in _phrases(intent.training_phrases):
            if phrase.lower() in t:
                return intent
    return None


def command_token(text: str) -> str:
    """First whitespace-delimited token, without a Telegram ``@botname`` suffix."""
    parts = (text or "").strip().split()
    if not parts:
        return ""
    token = parts[0]
    if token.startswith("/") and "@" in token:
        token = token.split("@", 1)[0]
    return token


def match_command(commands: list[BotCommand], text: str) -> BotCommand | None:
    token = command_token(text)
    if not token.startswith("/"):
        return None
    for cmd in commands:
        if config_store.normalize_command(cmd.command) == token:
            return cmd
    return None


def flow_trigger_matches(flow: ConversationFlow, text: str) -> bool:
    trigger = flow.trigger_value or ""
    if not trigger or not text:
        return False
    ttype = (flow.trigger_type or "").lower()
    if ttype == "command":
        return text.strip().startswith(trigger.strip())
    if ttype == "keyword":
        return trigger.strip().lower() in text.lower()
    if ttype == "regex":
        try:
            return re.search(trigger, text) is not None
        except re.error:
            logger.warning("flow_trigger_bad_regex flow_id=%s", flow.id)
            return False
    return False


def match_flow_trigger(flows: list[ConversationFlow], text: str) -> ConversationFlow | None:
    for flow in flows:
        if flow_trigger_matches(flow, text):
            return flow
    return None


def _run_intent(db: Session, project: BotProject, user_id: str, intent: BotIntent, text: str) -> BotReply | None:
    action = (intent.action_type or "ai_response").lower()
    config = intent.action_config or {}
    if action == "flow":
        flow = config_store.find_flow(db, project.id, config)
        if flow:
            return start_flow(db, project.id, user_id, flow).reply
        logger.warning("intent_flow_missing intent_id=%s", intent.id)
        if config.get("response"):
            return BotReply(text=str(config["response"]))
    elif action == "api_call":
        return BotReply(text=run_api_call(db, project.id, config))
    return BotReply(text=generate_ai_reply(db, project, text, extra_prompt=config.get("prompt")))


def _run_command(db: Session, project: BotProject, cmd: BotCommand, text: str) -> BotReply:
    resp = command_response(cmd.response_type, cmd.response_content, cmd.response_metadata)
    if isinstance(resp, AIPromptResponse):
        return BotReply(text=generate_ai_reply(db, project, text, extra_prompt=resp.prompt or None))
    if isinstance(resp, ButtonsResponse):
        return BotReply(
            text=resp.text,
            reply_markup={"inline_keyboard": resp.buttons},
            parse_mode=PARSE_MODE_HTML,
        )
    return BotReply(text=resp.text, parse_mode=PARSE_MODE_HTML)


def dispatch_text(
    db: Session,
    project: BotProject,
    telegram_user_id: str,
    text: str,
    now: datetime | None = None,
) -> DispatchResult:
    state = get_active_state(db, project.id, telegram_user_id, now=now)
    if state is not None:
        tr = advance_flow(db, state, text, now=now)
        return DispatchResult(route=ROUTE_FLOW_CONTINUE, reply=tr.reply, outcome=tr.outcome)

    intent = match_intent(config_store.list_active_intents(db, project.id), text)
    if intent:
        return DispatchResult(
            route=ROUTE_INTENT,
            reply=_run_intent(db, project, telegram_user_id, intent, text),
            matched=intent.intent_name,
        )

    cmd = match_command(config_store.list_active_commands(db, project.id), text)
    if cmd:
        name = config_store.normalize_command(cmd.command)
        return DispatchResult(
            route=ROUTE_COMMAND,
            reply=_run_command(db, project, cmd, text),
            matched=name,
            command=name,
        )

    flow = match_flow_trigger(config_store.list_active_flows(db, project.id), text)
    if flow:
        tr = start_flow(db, project.id, telegram_user_id, flow, now=now)
        reply = None if tr.outcome == CONFLICT else tr.reply
        return DispatchResult(route=ROUTE_FLOW_START, reply=reply, matched=flow.name, outcome=tr.outcome)

    return DispatchResult(route=ROUTE_AI_FALLBACK, reply=BotReply(text=generate_ai_reply(db, project, text)))
