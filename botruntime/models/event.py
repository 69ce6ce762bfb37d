"""Append-only runtime telemetry: bot events and the message log."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Index
from sqlalchemy.dialects.postgresql import JSONB

from botruntime.database import Base


class BotEvent(Base):
    __tablename__ = "bot_events"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("bot_projects.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(String(32), nullable=False)  # message|command_executed|callback
    telegram_user_id = Column(String(64), nullable=True)
    event_data = Column(JSONB, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (Index("ix_bot_events_project_type_time", "project_id", "event_type", "created_at"),)


class BotMessage(Base):
    __tablename__ = "bot_messages"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("bot_projects.id", ondelete="CASCADE"), nullable=False, index=True)
    telegram_user_id = Column(String(64), nullable=False)
    telegram_username = Column(String(64), nullable=True)
    telegram_first_name = Column(String(128), nullable=True)
    telegram_last_name = Column(String(128), nullable=True)
    message_text = Column(Text, nullable=True)
    message_type = Column(String(16), nullable=True)  # command|text
    bot_response = Column(Text, nullable=True)
    response_time_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (Index("ix_bot_messages_project_user", "project_id", "telegram_user_id"),)
