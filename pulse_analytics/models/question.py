# pulse_analytics/models/question.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Index

from pulse_analytics.db.base_class import Base

# questionable_type values stored on answers/trackers
STANDARD = "standard"
CUSTOM = "custom"

# question types
NPS = "nps"
BENCHMARK = "benchmark"          # 0..10 likert style
FILTERING = "filtering"          # demographic, usable as dashboard filter
MULTIPLE_CHOICE = "multiple_choice"
RANK_ORDER = "rank_order"
RATING_GRID = "rating_grid"
COMMENT = "comment"

CHOICE_TYPES = (FILTERING, MULTIPLE_CHOICE, RANK_ORDER, RATING_GRID)


class Question(Base):
    """Fleet-wide standard question."""
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, index=True)
    editable_by_client = Column(Boolean, nullable=False, default=False)
    system_default = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)


class TenantQuestion(Base):
    """Question written by one tenant for its own surveys."""
    __tablename__ = "tenant_questions"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    nickname = Column(String, nullable=True)
    label_start = Column(String, nullable=True)
    label_end = Column(String, nullable=True)


class EditableQuestionAnswer(Base):
    """Answer option a tenant added to an editable standard question."""
    __tablename__ = "editable_question_answers"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    name = Column(String, nullable=False)
    custom_answer = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_editable_answers_lookup", "tenant_id", "question_id", "name"),
    )
