"""Bot slash commands configured from the dashboard."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.dialects.postgresql import JSONB

from botruntime.database import Base


class BotCommand(Base):
    __tablename__ = "bot_commands"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("bot_projects.id", ondelete="CASCADE"), nullable=False, index=True)
    command = Column(String(64), nullable=False, index=True)
    description = Column(Text, nullable=True)
    response_type = Column(String(16), nullable=False, default="text")  # text|buttons|ai
    response_content = Column(Text, nullable=False, default="")
    response_metadata = Column(JSONB, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
