# pulse_analytics/models/survey.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, func

from pulse_analytics.db.base_class import Base

# survey cycle status
CYCLE_ACTIVE = "active"
CYCLE_INACTIVE = "inactive"
CYCLE_ARCHIVED = "archived"

# survey invite status (survey progress)
ANSWERED = "answered"   # respondent finished
SEND = "send"           # sent, partially answered
PENDING = "pending"
DEFAULT_PROGRESS = (ANSWERED, SEND)


class SurveyCycle(Base):
    __tablename__ = "survey_cycles"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    module_type = Column(String, nullable=False)
    name = Column(String, nullable=True)
    status = Column(String, nullable=False, default=CYCLE_ACTIVE)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class QuestionSurvey(Base):
    """Questions placed on a survey cycle."""
    __tablename__ = "question_survey"

    id = Column(Integer, primary_key=True)
    survey_cycle_id = Column(Integer, ForeignKey("survey_cycles.id"), nullable=False, index=True)
    module_type = Column(String, nullable=False)
    questionable_type = Column(String, nullable=False)   # standard | custom
    questionable_id = Column(Integer, nullable=False)


class SurveyInvite(Base):
    """One respondent invited to one survey cycle."""
    __tablename__ = "survey_invites"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    survey_cycle_id = Column(Integer, ForeignKey("survey_cycles.id"), nullable=True, index=True)
    module_type = Column(String, nullable=False)
    status = Column(String, nullable=False, default=SEND, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
