"""Read access to the dashboard-owned bot configuration.

Evaluation order is part of the contract, not an accident of storage:

* intents: ``priority`` desc, then creation (``id``) asc
* commands: ``order_index`` asc, then ``id`` asc
* flows: ``priority`` desc, then ``id`` asc
"""
from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from botruntime.models.api_integration import ApiIntegration
from botruntime.models.command import BotCommand
from botruntime.models.flow import ConversationFlow
from botruntime.models.intent import BotIntent


def normalize_command(command: str | None) -> str:
    c = (command or "").strip()
    if not c:
        return ""
    if not c.startswith("/"):
        c = "/" + c
    return c


def list_active_intents(db: Session, project_id: int) -> list[BotIntent]:
    return list(db.execute(
        select(BotIntent)
        .where(BotIntent.project_id == project_id, BotIntent.is_active.is_(True))
        .order_by(BotIntent.priority.desc(), BotIntent.id.asc())
    ).scalars().all())


def list_active_commands(db: Session, project_id: int) -> list[BotCommand]:
    return list(db.execute(
        select(BotCommand)
        .where(BotCommand.project_id == project_id, BotCommand.is_active.is_(True))
        .order_by(BotCommand.order_index.asc(), BotCommand.id.asc())
    ).scalars().all())


def list_active_flows(db: Session, project_id: int) -> list[ConversationFlow]:
    return list(db.execute(
        select(ConversationFlow)
        .where(ConversationFlow.project_id == project_id, ConversationFlow.is_active.is_(True))
        .order_by(ConversationFlow.priority.desc(), ConversationFlow.id.asc())
    ).scalars().all())


def get_flow(db: Session, project_id: int, flow_id: int | None) -> ConversationFlow | None:
    if not flow_id:
        return None
    row = db.get(ConversationFlow, flow_id)
    if not row or row.project_id != project_id:
        return None
    return row


def find_flow(db: Session, project_id: int, ref: dict[str, Any]) -> ConversationFlow | None:
    """Resolve a flow reference from an intent action: ``flow_id`` or ``flow_name``."""
    flow_id = ref.get("flow_id")
    if flow_id:
        try:
            row = get_flow(db, project_id, int(flow_id))
        except (TypeError, ValueError):
            row = None
        if row and row.is_active:
            return row
    name = (ref.get("flow_name") or ref.get("flow") or "").strip()
    if not name:
        return None
    return db.execute(
        select(ConversationFlow)
        .where(
            ConversationFlow.project_id == project_id,
            ConversationFlow.name == name,
            ConversationFlow.is_active.is_(True),
        )
        .order_by(ConversationFlow.priority.desc(), ConversationFlow.id.asc())
        .limit(1)
    ).scalar_one_or_none()


def find_integration(db: Session, project_id: int, config: dict[str, Any]) -> ApiIntegration | None:
    integration_id = config.get("integration_id")
    if integration_id:
        try:
            row = db.get(ApiIntegration, int(integration_id))
        except (TypeError, ValueError):
            row = None
        if row and row.project_id == project_id and row.is_active:
            return row
    name = (config.get("integration") or config.get("integration_name") or "").strip()
    if not name:
        return None
    return db.execute(
        select(ApiIntegration)
        .where(
            ApiIntegration.project_id == project_id,
            ApiIntegration.name == name,
            ApiIntegration.is_active.is_(True),
        )
        .order_by(ApiIntegration.id.asc())
        .limit(1)
    ).scalar_one_or_none()


def flow_steps(flow: ConversationFlow | None) -> list[dict[str, Any]]:
    if not flow:
        return []
    definition = flow.flow_definition or {}
    steps = definition.get("steps") if isinstance(definition, dict) else None
    if not isinstance(steps, list):
        return []
    out = []
    for idx, s in enumerate(steps):
        if not isinstance(s, dict):
            continue
        step = dict(s)
        step["id"] = str(step.get("id") or f"step_{idx}")
        out.append(step)
    return out
