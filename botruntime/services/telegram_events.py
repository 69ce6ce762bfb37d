"""Telegram inbound updates."""
from __future__ import annotations

import logging
import time

from sqlalchemy.orm import Session

from botruntime.clients.telegram import (
    telegram_answer_callback_query,
    telegram_answer_pre_checkout_query,
    telegram_send_message,
)
from botruntime.models.project import BotProject
from botruntime.services.conversation_lock import conversation_lease
from botruntime.services.dispatch import ROUTE_COMMAND, dispatch_text
from botruntime.services.telemetry import log_event, record_command_usage, record_message

logger = logging.getLogger(__name__)

PAYMENT_CALLBACK_PREFIX = "pay_"


def classify_update(update: dict) -> str:
    if isinstance(update.get("message"), dict) or isinstance(update.get("edited_message"), dict):
        return "message"
    if isinstance(update.get("callback_query"), dict):
        return "callback_query"
    if isinstance(update.get("pre_checkout_query"), dict):
        return "pre_checkout_query"
    return "unknown"


def _handle_message(db: Session, project: BotProject, bot_token: str, update: dict) -> dict:
    started = time.perf_counter()
    message = update.get("message") or update.get("edited_message")
    chat_id = (message.get("chat") or {}).get("id")
    sender = message.get("from") or {}
    if not chat_id or sender.get("id") is None:
        return {"status": "ignored", "reason": "no_sender"}
    user_id = str(sender.get("id"))
    text = str(message.get("text") or "").strip()

    log_event(db, project.id, "message", user_id, {
        "text": text,
        "chat_id": chat_id,
        "username": sender.get("username"),
        "update_id": update.get("update_id"),
        "message_id": message.get("message_id"),
    })
    if not text:
        return {"status": "ignored", "reason": "no_text"}

    with conversation_lease(project.id, user_id):
        result = dispatch_text(db, project, user_id, text)

    sent = False
    reply_text = result.reply.text if result.reply else None
    if result.reply and result.reply.text:
        sent, err = telegram_send_message(
            bot_token,
            chat_id,
            result.reply.text,
            reply_markup=result.reply.reply_markup,
            parse_mode=result.reply.parse_mode,
        )
        if not sent:
            logger.warning("reply_dropped project_id=%s route=%s err=%s", project.id, result.route, err)

    if result.route == ROUTE_COMMAND and result.command:
        record_command_usage(db, project.id, user_id, result.command)

    record_message(
        db,
        project.id,
        telegram_user_id=user_id,
        username=sender.get("username"),
        first_name=sender.get("first_name"),
        last_name=sender.get("last_name"),
        text=text,
        bot_response=reply_text,
        response_time_ms=int((time.perf_counter() - started) * 1000),
    )
    logger.info(
        "message_dispatched project_id=%s user=%s route=%s matched=%s outcome=%s sent=%s",
        project.id, user_id, result.route, result.matched, result.outcome, sent,
    )
    return {"status": "ok", "route": result.route, "sent": sent}


def _handle_payment_callback(project: BotProject, user_id: str, data: str) -> dict:
    # payments are not processed by the runtime yet
    logger.info("payment_callback project_id=%s user=%s data=%s", project.id, user_id, data)
    return {"status": "ok", "route": "payment"}


def _handle_callback(db: Session, project: BotProject, bot_token: str, update: dict) -> dict:
    cq = update["callback_query"]
    cq_id = cq.get("id")
    if cq_id:
        telegram_answer_callback_query(bot_token, str(cq_id))
    user_id = str((cq.get("from") or {}).get("id") or "")
    data = str(cq.get("data") or "")
    log_event(db, project.id, "callback", user_id or None, {"data": data})
    if data.startswith(PAYMENT_CALLBACK_PREFIX):
        return _handle_payment_callback(project, user_id, data)
    return {"status": "ok", "route": "callback"}


def _handle_pre_checkout(bot_token: str, update: dict) -> dict:
    query_id = update["pre_checkout_query"].get("id")
    if not query_id:
        return {"status": "ignored", "reason": "no_query_id"}
    ok, _err = telegram_answer_pre_checkout_query(bot_token, str(query_id), ok=True)
    return {"status": "ok", "route": "pre_checkout", "answered": ok}


def process_telegram_update(
    db: Session,
    project: BotProject,
    bot_token: str,
    update: dict,
) -> dict:
    kind = classify_update(update)
    if kind == "message":
        return _handle_message(db, project, bot_token, update)
    if kind == "callback_query":
        return _handle_callback(db, project, bot_token, update)
    if kind == "pre_checkout_query":
        return _handle_pre_checkout(bot_token, update)
    return {"status": "ignored", "reason": "unknown_update"}
