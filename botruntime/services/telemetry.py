"""Bot events, message log and daily counters.

Nothing here may break the reply path: write failures are rolled back, logged
and dropped by the ``record_*`` / ``log_event`` entry points.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from botruntime.errors import TelemetryFailure
from botruntime.models.analytics import BotMetric
from botruntime.models.event import BotEvent, BotMessage

logger = logging.getLogger(__name__)

METRIC_TOTAL_MESSAGES = "total_messages"
METRIC_TOTAL_USERS = "total_users"


def command_metric_name(command: str) -> str:
    return f"command_{command}"


def _upsert_stmt(db: Session, values: dict[str, Any]):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(BotMetric).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite.insert(BotMetric).values(**values)
    else:
        raise TelemetryFailure(f"unsupported dialect for metric upsert: {dialect}")
    return stmt.on_conflict_do_update(
        index_elements=[BotMetric.project_id, BotMetric.metric_name, BotMetric.metric_date],
        set_={"metric_value": BotMetric.metric_value + stmt.excluded.metric_value},
    )


def increment_metric(
    db: Session,
    project_id: int,
    metric_name: str,
    delta: int = 1,
    metric_date: date | None = None,
) -> None:
    """Atomic add on (project_id, metric_name, day); the row is created at ``delta`` if absent."""
    values = {
        "project_id": project_id,
        "metric_name": metric_name,
        "metric_date": metric_date or datetime.utcnow().date(),
        "metric_value": delta,
        "created_at": datetime.utcnow(),
    }
    try:
        db.execute(_upsert_stmt(db, values))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise TelemetryFailure("metric increment failed", detail=str(e)[:200]) from e


def get_metric_value(db: Session, project_id: int, metric_name: str, metric_date: date | None = None) -> int:
    row = db.execute(
        select(BotMetric.metric_value).where(
            BotMetric.project_id == project_id,
            BotMetric.metric_name == metric_name,
            BotMetric.metric_date == (metric_date or datetime.utcnow().date()),
        )
    ).scalar_one_or_none()
    return int(row or 0)


def log_event(
    db: Session,
    project_id: int,
    event_type: str,
    telegram_user_id: str | None,
    data: dict[str, Any] | None = None,
) -> bool:
    """Append a bot event; ``message`` events also bump ``total_messages``.

    Returns whether the event row was stored; a failed counter bump is logged only.
    """
    try:
        db.add(BotEvent(
            project_id=project_id,
            event_type=event_type,
            telegram_user_id=telegram_user_id,
            event_data=data or {},
            created_at=datetime.utcnow(),
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("telemetry_event_failed project_id=%s type=%s err=%s", project_id, event_type, str(e)[:200])
        return False
    if event_type == "message":
        try:
            increment_metric(db, project_id, METRIC_TOTAL_MESSAGES)
        except TelemetryFailure as e:
            logger.warning("telemetry_message_metric_failed project_id=%s err=%s", project_id, e.detail)
    return True


def record_command_usage(db: Session, project_id: int, telegram_user_id: str, command: str) -> None:
    log_event(db, project_id, "command_executed", telegram_user_id, {"command": command})
    try:
        increment_metric(db, project_id, command_metric_name(command))
    except TelemetryFailure as e:
        logger.warning("telemetry_command_metric_failed project_id=%s command=%s err=%s", project_id, command, e.detail)


def is_new_user(db: Session, project_id: int, telegram_user_id: str) -> bool:
    # check-then-act; concurrent first messages may both count, accepted skew
    found = db.execute(
        select(BotMessage.id)
        .where(BotMessage.project_id == project_id, BotMessage.telegram_user_id == telegram_user_id)
        .limit(1)
    ).first()
    return found is None


def record_message(
    db: Session,
    project_id: int,
    *,
    telegram_user_id: str,
    username: str | None,
    first_name: str | None,
    last_name: str | None,
    text: str,
    bot_response: str | None,
    response_time_ms: int | None,
) -> None:
    try:
        new_user = is_new_user(db, project_id, telegram_user_id)
        db.add(BotMessage(
            project_id=project_id,
            telegram_user_id=telegram_user_id,
            telegram_username=username or None,
            telegram_first_name=first_name or None,
            telegram_last_name=last_name or None,
            message_text=text,
            message_type="command" if text.startswith("/") else "text",
            bot_response=bot_response,
            response_time_ms=response_time_ms,
            created_at=datetime.utcnow(),
        ))
        db.commit()
        if new_user:
            increment_metric(db, project_id, METRIC_TOTAL_USERS)
    except (SQLAlchemyError, TelemetryFailure) as e:
        db.rollback()
        logger.warning("telemetry_message_failed project_id=%s err=%s", project_id, str(e)[:200])
