# pulse_analytics/models/answer.py
from sqlalchemy import Column, Integer, String, Text, SmallInteger, ForeignKey, DateTime, Index, func
from sqlalchemy.orm import relationship

from pulse_analytics.db.base_class import Base


class SurveyAnswer(Base):
    """
    One respondent's answer to one question instance. Written by ingestion,
    read-only for reports. `updated_at` is the canonical answer time.
    """
    __tablename__ = "survey_answers"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    survey_invite_id = Column(Integer, ForeignKey("survey_invites.id"), nullable=False, index=True)
    module_type = Column(String, nullable=False, index=True)

    questionable_type = Column(String, nullable=False)  # standard | custom
    questionable_id = Column(Integer, nullable=False)
    question_type = Column(String, nullable=False, index=True)

    value = Column(Text, nullable=True)          # raw answer; JSON array text for choice questions
    score = Column(SmallInteger, nullable=True)  # 0..10 for nps / benchmark questions
    other_option_text = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    invite = relationship("SurveyInvite")

    __table_args__ = (
        Index("ix_answers_questionable", "questionable_type", "questionable_id"),
        Index("ix_answers_tenant_updated", "tenant_id", "updated_at"),
    )
