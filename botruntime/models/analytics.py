"""Daily per-project counters."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, UniqueConstraint

from botruntime.database import Base


class BotMetric(Base):
    __tablename__ = "bot_analytics"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("bot_projects.id", ondelete="CASCADE"), nullable=False, index=True)
    metric_name = Column(String(128), nullable=False)  # total_messages|total_users|command_<cmd>
    metric_date = Column(Date, nullable=False)
    metric_value = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("project_id", "metric_name", "metric_date", name="uq_bot_analytics_project_metric_date"),
    )
