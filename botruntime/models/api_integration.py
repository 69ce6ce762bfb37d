"""External HTTP APIs callable from flow steps."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.dialects.postgresql import JSONB

from botruntime.database import Base


class ApiIntegration(Base):
    __tablename__ = "api_integrations"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("bot_projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    api_type = Column(String(16), nullable=False, default="rest")
    endpoint_base_url = Column(Text, nullable=False)
    auth_type = Column(String(16), nullable=False, default="none")  # none|api_key|bearer|basic
    credentials = Column(JSONB, nullable=True)
    mapping_config = Column(JSONB, nullable=True)  # {"response_mapping": {key: "a.b.c"}}
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
