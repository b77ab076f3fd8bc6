# pulse_analytics/api/v1/endpoints/trackers.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pulse_analytics.api.deps.context import get_tenant, get_user_id
from pulse_analytics.core.config import settings
from pulse_analytics.db.session import get_db
from pulse_analytics.models.tenant import Tenant
from pulse_analytics.models.tracker import Tracker
from pulse_analytics.schemas.trackers import TrackerIn, TrackerOut, TrackerScoreOut
from pulse_analytics.services import trackers as svc
from pulse_analytics.services.questions import resolve_question

router = APIRouter(prefix="/trackers", tags=["trackers"])


def _ensure_tracker(db: Session, tenant: Tenant, user_id: int, tracker_id: int) -> Tracker:
    t = svc.get_tracker(db, tenant.id, user_id, tracker_id)
    if not t:
        raise HTTPException(404, "Tracker not found")
    return t


def _out(t: Tracker) -> TrackerOut:
    return TrackerOut(
        id=t.id,
        user_id=t.user_id,
        tenant_id=t.tenant_id,
        question=str(svc.tracker_ref(t)),
        questionable_type=t.questionable_type,
        questionable_id=t.questionable_id,
        module_type=t.module_type,
        created_at=t.created_at,
    )


@router.get("", response_model=List[TrackerOut])
def list_trackers(
    module_type: str = Query("all"),
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    rows = svc.list_trackers(db, tenant.id, user_id, module_type, settings.active_modules)
    return [_out(t) for t in rows]


@router.post("", response_model=TrackerOut, status_code=201)
def create_tracker(
    payload: TrackerIn,
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    t = svc.create_tracker(db, tenant.id, user_id, payload.question, payload.module_type)
    return _out(t)


@router.put("/{tracker_id}", response_model=TrackerOut)
def update_tracker(
    tracker_id: int,
    payload: TrackerIn,
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    t = _ensure_tracker(db, tenant, user_id, tracker_id)
    return _out(svc.update_tracker(db, t, payload.question, payload.module_type))


@router.delete("/{tracker_id}", status_code=204)
def delete_tracker(
    tracker_id: int,
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    t = _ensure_tracker(db, tenant, user_id, tracker_id)
    svc.delete_tracker(db, t)


@router.get("/{tracker_id}/score", response_model=TrackerScoreOut)
def tracker_score(
    tracker_id: int,
    period: Optional[str] = Query(None),
    custom_date: str = Query(""),
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    t = _ensure_tracker(db, tenant, user_id, tracker_id)
    question = resolve_question(db, tenant.id, svc.tracker_ref(t))
    period = period or settings.DEFAULT_PERIOD

    if svc.is_scored_question(question):
        result = svc.tracker_score(
            db, t, period=period, custom_date=custom_date,
            client_type_id=tenant.client_type_id, active_modules=settings.active_modules,
        )
        kind = "likert"
    else:
        result = svc.tracker_multiple_choice_score(
            db, t, period=period, custom_date=custom_date, active_modules=settings.active_modules,
        )
        kind = "multiple_choice"
    return TrackerScoreOut(tracker=_out(t), kind=kind, result=result)
