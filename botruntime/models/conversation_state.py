"""Per-user progress through an active flow."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import JSONB

from botruntime.database import Base


class ConversationState(Base):
    __tablename__ = "conversation_states"

    telegram_user_id = Column(String(64), primary_key=True)
    project_id = Column(Integer, ForeignKey("bot_projects.id", ondelete="CASCADE"), primary_key=True)
    current_flow_id = Column(Integer, ForeignKey("conversation_flows.id", ondelete="CASCADE"), nullable=False)
    current_step = Column(String(128), nullable=False)
    state_data = Column(JSONB, nullable=True)  # answers keyed by step id
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=True)
