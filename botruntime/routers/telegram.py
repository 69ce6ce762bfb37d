"""Telegram webhook endpoint.

Everything past request validation answers ``200 {"ok": true}``: Telegram
retries any non-2xx delivery, and sends/counters are not idempotent.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from botruntime.deps import get_db
from botruntime.errors import MalformedInput, NotFound
from botruntime.services.projects import find_project_by_token, is_project_live
from botruntime.services.telegram_events import process_telegram_update
from botruntime.services.token_crypto import mask_token
from botruntime.utils.api_errors import error_response

router = APIRouter()
logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Bot-Token"


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", "") or ""


async def _read_update(request: Request) -> dict:
    try:
        update = await request.json()
    except ValueError as e:
        raise MalformedInput("Invalid JSON body") from e
    if not isinstance(update, dict):
        raise MalformedInput("Update must be a JSON object")
    return update


def _process(db: Session, bot_token: str, update: dict, trace_id: str) -> JSONResponse:
    """Blocking part of the webhook (DB, Telegram, AI and API calls); runs in the threadpool."""
    try:
        project = find_project_by_token(db, bot_token)
    except NotFound:
        return error_response("not_found", "Bot not found", 404, trace_id)
    if not is_project_live(project):
        logger.info("bot_not_active project_id=%s status=%s trace_id=%s", project.id, project.bot_status, trace_id)
        return JSONResponse({"ok": True})
    try:
        result = process_telegram_update(db, project, bot_token, update)
        logger.info(
            "telegram_update project_id=%s update_id=%s status=%s trace_id=%s",
            project.id, update.get("update_id"), result.get("status"), trace_id,
        )
    except Exception:
        db.rollback()
        logger.exception(
            "telegram_update_failed project_id=%s token=%s trace_id=%s",
            project.id, mask_token(bot_token), trace_id,
        )
    return JSONResponse({"ok": True})


@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    token: str | None = Query(None),
    db: Session = Depends(get_db),
):
    trace_id = _trace_id(request)
    bot_token = (token or request.headers.get(TOKEN_HEADER) or "").strip()
    if not bot_token:
        return error_response("bad_request", "Bot token required", 400, trace_id)
    try:
        update = await _read_update(request)
    except MalformedInput as e:
        return error_response("bad_request", e.message, 400, trace_id)
    return await run_in_threadpool(_process, db, bot_token, update, trace_id)
