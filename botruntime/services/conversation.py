"""Conversation state machine: one active flow per (telegram user, project).

Transitions are written as compare-and-swap against ``current_step`` so that two
concurrent deliveries for the same user cannot both advance from the same step;
the loser sees ``conflict`` and sends nothing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from botruntime.config import get_settings
from botruntime.models.conversation_state import ConversationState
from botruntime.models.flow import ConversationFlow
from botruntime.services.config_store import flow_steps, get_flow
from botruntime.services.flow_steps import execute_step
from botruntime.services.replies import BotReply

logger = logging.getLogger(__name__)

MSG_FLOW_COMPLETE = "Thank you! Your responses have been recorded."

ADVANCED = "advanced"
COMPLETED = "completed"
RESET = "reset"
CONFLICT = "conflict"


@dataclass
class FlowTransition:
    outcome: str
    reply: BotReply | None = None
    step_id: str | None = None


def _ttl() -> timedelta:
    return timedelta(minutes=max(1, int(get_settings().conversation_ttl_minutes or 30)))


def _find_step_index(steps: list[dict[str, Any]], step_id: str) -> int | None:
    for idx, s in enumerate(steps):
        if s.get("id") == step_id:
            return idx
    return None


def _state_key(telegram_user_id: str, project_id: int) -> dict[str, Any]:
    return {"telegram_user_id": telegram_user_id, "project_id": project_id}


def _delete_state(db: Session, telegram_user_id: str, project_id: int, expected_step: str | None = None) -> bool:
    stmt = delete(ConversationState).where(
        ConversationState.telegram_user_id == telegram_user_id,
        ConversationState.project_id == project_id,
    )
    if expected_step is not None:
        stmt = stmt.where(ConversationState.current_step == expected_step)
    res = db.execute(stmt)
    db.commit()
    return bool(res.rowcount)


def get_active_state(
    db: Session,
    project_id: int,
    telegram_user_id: str,
    now: datetime | None = None,
) -> ConversationState | None:
    """Current state row, or None. An expired row counts as absent and is removed."""
    now = now or datetime.utcnow()
    row = db.get(ConversationState, _state_key(telegram_user_id, project_id))
    if not row:
        return None
    if row.expires_at and row.expires_at <= now:
        logger.info(
            "conversation_expired project_id=%s user=%s flow_id=%s step=%s",
            project_id, telegram_user_id, row.current_flow_id, row.current_step,
        )
        _delete_state(db, telegram_user_id, project_id, expected_step=row.current_step)
        return None
    return row


def start_flow(
    db: Session,
    project_id: int,
    telegram_user_id: str,
    flow: ConversationFlow,
    now: datetime | None = None,
) -> FlowTransition:
    """NoActiveFlow -> InFlow(flow, steps[0]); executes the first step."""
    steps = flow_steps(flow)
    if not steps:
        logger.warning("flow_without_steps flow_id=%s", flow.id)
        return FlowTransition(outcome=RESET)
    now = now or datetime.utcnow()
    first = steps[0]
    row = ConversationState(
        telegram_user_id=telegram_user_id,
        project_id=project_id,
        current_flow_id=flow.id,
        current_step=first["id"],
        state_data={},
        started_at=now,
        updated_at=now,
        expires_at=now + _ttl(),
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # another delivery for this user started a flow first
        db.rollback()
        logger.info("flow_start_conflict project_id=%s user=%s flow_id=%s", project_id, telegram_user_id, flow.id)
        return FlowTransition(outcome=CONFLICT)
    logger.info("flow_started project_id=%s user=%s flow_id=%s step=%s", project_id, telegram_user_id, flow.id, first["id"])
    reply = execute_step(db, project_id, first, {})
    return FlowTransition(outcome=ADVANCED, reply=reply, step_id=first["id"])


def advance_flow(
    db: Session,
    state: ConversationState,
    user_text: str,
    now: datetime | None = None,
) -> FlowTransition:
    """InFlow(f, s) -> InFlow(f, s') | NoActiveFlow, recording ``user_text`` under ``s``."""
    now = now or datetime.utcnow()
    project_id = state.project_id
    user_id = state.telegram_user_id
    read_step = state.current_step
    flow = get_flow(db, project_id, state.current_flow_id)
    steps = flow_steps(flow)
    idx = _find_step_index(steps, read_step)
    if flow is None or idx is None:
        logger.warning(
            "flow_state_reset project_id=%s user=%s flow_id=%s step=%s",
            project_id, user_id, state.current_flow_id, read_step,
        )
        _delete_state(db, user_id, project_id)
        return FlowTransition(outcome=RESET)

    context = dict(state.state_data or {})
    context[read_step] = user_text

    if idx + 1 >= len(steps):
        if not _delete_state(db, user_id, project_id, expected_step=read_step):
            logger.info("flow_advance_conflict project_id=%s user=%s step=%s", project_id, user_id, read_step)
            return FlowTransition(outcome=CONFLICT)
        logger.info("flow_completed project_id=%s user=%s flow_id=%s", project_id, user_id, flow.id)
        done = (flow.flow_definition or {}).get("completion_message") or MSG_FLOW_COMPLETE
        return FlowTransition(outcome=COMPLETED, reply=BotReply(text=str(done)))

    nxt = steps[idx + 1]
    res = db.execute(
        update(ConversationState)
        .where(
            ConversationState.telegram_user_id == user_id,
            ConversationState.project_id == project_id,
            ConversationState.current_step == read_step,
        )
        .values(
            current_step=nxt["id"],
            state_data=context,
            updated_at=now,
            expires_at=now + _ttl(),
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if not res.rowcount:
        logger.info("flow_advance_conflict project_id=%s user=%s step=%s", project_id, user_id, read_step)
        return FlowTransition(outcome=CONFLICT)
    reply = execute_step(db, project_id, nxt, context)
    return FlowTransition(outcome=ADVANCED, reply=reply, step_id=nxt["id"])
