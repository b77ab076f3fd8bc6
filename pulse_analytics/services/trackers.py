# pulse_analytics/services/trackers.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pulse_analytics.core.errors import DuplicateTracker
from pulse_analytics.models.question import BENCHMARK, NPS
from pulse_analytics.models.tenant import PULSE_MODULES
from pulse_analytics.models.tracker import Tracker
from pulse_analytics.reports import periods as P
from pulse_analytics.reports.filters import NormalizedFilters, QuestionRef, resolve_modules
from pulse_analytics.reports.likert import LikertAnswersReport
from pulse_analytics.reports.multiple_choice import MultipleChoiceAnswersReport
from pulse_analytics.services.questions import resolve_question

logger = logging.getLogger(__name__)


def tracker_ref(tracker: Tracker) -> QuestionRef:
    return QuestionRef(tracker.questionable_type, tracker.questionable_id)


def get_tracker(db: Session, tenant_id: int, user_id: int, tracker_id: int) -> Optional[Tracker]:
    return (
        db.query(Tracker)
        .filter(Tracker.id == tracker_id, Tracker.tenant_id == tenant_id, Tracker.user_id == user_id)
        .first()
    )


def _ensure_unique(db: Session, user_id: int, ref: QuestionRef, module_type: str, exclude_id: Optional[int] = None):
    query = db.query(Tracker.id).filter(
        Tracker.user_id == user_id,
        Tracker.questionable_type == ref.kind,
        Tracker.questionable_id == ref.id,
        Tracker.module_type == module_type,
    )
    if exclude_id is not None:
        query = query.filter(Tracker.id != exclude_id)
    if query.first() is not None:
        raise DuplicateTracker()


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        # lost a race against a concurrent insert of the same triple
        db.rollback()
        raise DuplicateTracker() from e


def create_tracker(db: Session, tenant_id: int, user_id: int, question: QuestionRef | str, module_type: str) -> Tracker:
    ref = QuestionRef.parse(question)
    resolve_question(db, tenant_id, ref)
    _ensure_unique(db, user_id, ref, module_type)

    tracker = Tracker(
        user_id=user_id,
        tenant_id=tenant_id,
        questionable_type=ref.kind,
        questionable_id=ref.id,
        module_type=module_type,
    )
    db.add(tracker)
    _commit(db)
    db.refresh(tracker)
    logger.info("[trackers] user %s now tracks %s (%s)", user_id, ref, module_type)
    return tracker


def update_tracker(db: Session, tracker: Tracker, question: QuestionRef | str, module_type: str) -> Tracker:
    ref = QuestionRef.parse(question)
    resolve_question(db, tracker.tenant_id, ref)
    _ensure_unique(db, tracker.user_id, ref, module_type, exclude_id=tracker.id)

    tracker.questionable_type = ref.kind
    tracker.questionable_id = ref.id
    tracker.module_type = module_type
    _commit(db)
    db.refresh(tracker)
    return tracker


def delete_tracker(db: Session, tracker: Tracker) -> None:
    db.delete(tracker)
    db.commit()


def list_trackers(
    db: Session,
    tenant_id: int,
    user_id: int,
    module_type: str,
    active_modules: Sequence[str] = PULSE_MODULES,
) -> list[Tracker]:
    return (
        db.query(Tracker)
        .filter(
            Tracker.tenant_id == tenant_id,
            Tracker.user_id == user_id,
            Tracker.module_type.in_(resolve_modules(module_type, active_modules)),
        )
        .order_by(Tracker.id)
        .all()
    )


def tracker_score(
    db: Session,
    tracker: Tracker,
    *,
    period: str = P.LAST_365_DAYS,
    custom_date: str = "",
    filters: Optional[NormalizedFilters] = None,
    client_type_id: Optional[int] = None,
    active_modules: Sequence[str] = PULSE_MODULES,
    now: Optional[datetime] = None,
) -> Optional[dict[str, Any]]:
    """Likert score of the tracked question, regardless of survey state."""
    rows = LikertAnswersReport(
        db,
        tracker.tenant_id,
        period=period,
        custom_date=custom_date,
        filters=filters,
        scope_active_survey=False,
        module_type=tracker.module_type,
        active_modules=active_modules,
        question_ref=tracker_ref(tracker),
        client_type_id=client_type_id,
        now=now,
    ).run()
    if not rows:
        return None

    score = rows[0]
    if period == P.CUSTOM and P.is_long_custom_range(custom_date):
        score["period_diff"] = 0
    return score


def tracker_multiple_choice_score(
    db: Session,
    tracker: Tracker,
    *,
    period: str = P.LAST_365_DAYS,
    custom_date: str = "",
    filters: Optional[NormalizedFilters] = None,
    active_modules: Sequence[str] = PULSE_MODULES,
    now: Optional[datetime] = None,
) -> Optional[dict[str, Any]]:
    rows = MultipleChoiceAnswersReport(
        db,
        tracker.tenant_id,
        period=period,
        custom_date=custom_date,
        filters=filters,
        active_survey=False,
        module_type=tracker.module_type,
        active_modules=active_modules,
        question_ref=tracker_ref(tracker),
        now=now,
    ).run()
    return rows[0] if rows else None


def is_scored_question(question) -> bool:
    """Benchmark (and NPS) questions are reported as a score, the rest as option counts."""
    return question.type in (BENCHMARK, NPS)
