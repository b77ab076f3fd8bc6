# pulse_analytics/api/v1/endpoints/reports.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from pulse_analytics.api.deps.context import (
    build_state, current_year, get_dashboard_service, get_tenant, get_user_id,
)
from pulse_analytics.models.tenant import Tenant
from pulse_analytics.schemas.reports import (
    BenchmarkOut, ChartOut, LikertRowOut, MonthPoint, MultipleChoiceIn,
    MultipleChoiceRowOut, NpsOverTimeIn, NpsPeriodOut, ReportQueryIn,
    ScoreOverTimeIn,
)
from pulse_analytics.reports import cache_keys as K
from pulse_analytics.services.dashboard import DashboardService, DashboardSessionState

router = APIRouter(prefix="/reports", tags=["reports"])

LAST_GOOD_FAMILIES = {
    "current": K.CURRENT_PERIOD_MIRROR,
    "previous": K.PREVIOUS_PERIOD_MIRROR,
    "benchmark": K.BENCHMARK_MIRROR,
}


# -------------------- NPS -------------------- #

@router.post("/nps/current", response_model=NpsPeriodOut, response_model_exclude_unset=True)
def nps_current(
    payload: ReportQueryIn,
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    svc: DashboardService = Depends(get_dashboard_service),
):
    return svc.current_period(build_state(payload, tenant, user_id))


@router.post("/nps/previous", response_model=NpsPeriodOut, response_model_exclude_unset=True)
def nps_previous(
    payload: ReportQueryIn,
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    svc: DashboardService = Depends(get_dashboard_service),
):
    return svc.previous_period(build_state(payload, tenant, user_id))


@router.post("/nps/benchmark", response_model=BenchmarkOut, response_model_exclude_none=True)
def nps_benchmark(
    payload: ReportQueryIn,
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    svc: DashboardService = Depends(get_dashboard_service),
):
    return svc.schools_benchmark(build_state(payload, tenant, user_id))


@router.post("/nps/chart", response_model=ChartOut)
def nps_chart(
    payload: ReportQueryIn,
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    svc: DashboardService = Depends(get_dashboard_service),
):
    return svc.chart(build_state(payload, tenant, user_id))


# -------------------- time series -------------------- #

@router.post("/score-over-time", response_model=List[MonthPoint])
def score_over_time(
    payload: ScoreOverTimeIn,
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    svc: DashboardService = Depends(get_dashboard_service),
):
    state = build_state(payload, tenant, user_id)
    return svc.score_over_time(state, payload.question, payload.year or current_year())


@router.post("/nps-over-time", response_model=List[MonthPoint])
def nps_over_time(
    payload: NpsOverTimeIn,
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    svc: DashboardService = Depends(get_dashboard_service),
):
    state = build_state(payload, tenant, user_id)
    return svc.nps_over_time(state, payload.year or current_year())


# -------------------- questions -------------------- #

@router.post("/likert", response_model=List[LikertRowOut])
def likert(
    payload: ReportQueryIn,
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    svc: DashboardService = Depends(get_dashboard_service),
):
    return svc.likert(build_state(payload, tenant, user_id))


@router.post("/multiple-choice", response_model=List[MultipleChoiceRowOut])
def multiple_choice(
    payload: MultipleChoiceIn,
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    svc: DashboardService = Depends(get_dashboard_service),
):
    return svc.multiple_choice(build_state(payload, tenant, user_id), reset_cache=payload.reset_cache)


@router.post("/cache/clear")
def clear_cache(
    tenant: Tenant = Depends(get_tenant),
    svc: DashboardService = Depends(get_dashboard_service),
):
    svc.clear_cache()
    return {"ok": True}


@router.get("/last-good/{family}")
def last_good(
    family: str,
    tenant: Tenant = Depends(get_tenant),
    user_id: int = Depends(get_user_id),
    svc: DashboardService = Depends(get_dashboard_service),
):
    """Most recent successful result of a dashboard widget for this user, or null."""
    mirror_family = LAST_GOOD_FAMILIES.get(family)
    if mirror_family is None:
        raise HTTPException(404, f"Unknown result family: {family}")
    state = DashboardSessionState(tenant_id=tenant.id, user_id=user_id, client_type_id=tenant.client_type_id)
    return {"family": family, "value": svc.last_good(state, mirror_family)}
