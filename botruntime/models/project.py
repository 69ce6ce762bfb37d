"""Bot project (the owning aggregate)."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text

from botruntime.database import Base


class BotProject(Base):
    __tablename__ = "bot_projects"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=True, index=True)  # dashboard owner
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    context = Column(Text, nullable=True)
    bot_username = Column(String(64), nullable=True)
    telegram_bot_token_enc = Column(Text, nullable=True)
    telegram_bot_token_hash = Column(String(64), nullable=True, index=True)  # sha256 hex
    is_active = Column(Boolean, nullable=False, default=True)
    bot_status = Column(String(16), nullable=False, default="draft")  # draft|active|paused
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
