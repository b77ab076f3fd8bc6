# pulse_analytics/models/tracker.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint, func

from pulse_analytics.db.base_class import Base


class Tracker(Base):
    """Question a dashboard user pinned to their home page."""
    __tablename__ = "trackers"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    questionable_type = Column(String, nullable=False)
    questionable_id = Column(Integer, nullable=False)
    module_type = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "questionable_type", "questionable_id", "module_type", name="uq_tracker_user_question_module"),
    )
