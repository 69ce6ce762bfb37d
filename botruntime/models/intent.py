"""Phrase-matched intents."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import JSONB

from botruntime.database import Base


class BotIntent(Base):
    __tablename__ = "bot_intents"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("bot_projects.id", ondelete="CASCADE"), nullable=False, index=True)
    intent_name = Column(String(128), nullable=False)
    training_phrases = Column(JSONB, nullable=True)
    parameters = Column(JSONB, nullable=True)
    action_type = Column(String(16), nullable=False, default="ai_response")  # flow|api_call|ai_response
    action_config = Column(JSONB, nullable=True)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
