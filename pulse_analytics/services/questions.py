# pulse_analytics/services/questions.py
from __future__ import annotations

from typing import Union

from sqlalchemy.orm import Session

from pulse_analytics.core.errors import UnresolvableQuestionReference
from pulse_analytics.models.question import Question, TenantQuestion
from pulse_analytics.reports.filters import QuestionRef

AnyQuestion = Union[Question, TenantQuestion]


def resolve_question(db: Session, tenant_id: int, ref: QuestionRef | str) -> AnyQuestion:
    """Standard questions are shared by every tenant; custom ones belong to one."""
    ref = QuestionRef.parse(ref)
    if ref.is_custom:
        q = (
            db.query(TenantQuestion)
            .filter(TenantQuestion.id == ref.id, TenantQuestion.tenant_id == tenant_id)
            .first()
        )
    else:
        q = db.query(Question).filter(Question.id == ref.id).first()
    if q is None:
        raise UnresolvableQuestionReference(f"Question {ref} not found", field="question")
    return q
