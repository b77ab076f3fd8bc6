# pulse_analytics/api/deps/context.py
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from pulse_analytics.core.config import settings
from pulse_analytics.db.session import get_db
from pulse_analytics.models.tenant import Tenant
from pulse_analytics.reports.cache import ResultCache, build_result_cache
from pulse_analytics.reports.filters import normalize_filters
from pulse_analytics.reports.periods import PeriodSelection
from pulse_analytics.schemas.reports import ReportQueryIn
from pulse_analytics.services.dashboard import DashboardService, DashboardSessionState


def get_tenant(
    tenant: Optional[int] = Header(None, description="Tenant id"),
    tenant_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
) -> Tenant:
    """Tenant comes from the `tenant` header or the `tenant_id` query parameter."""
    ident = tenant if tenant is not None else tenant_id
    if ident is None:
        raise HTTPException(status_code=400, detail="Missing tenant")
    row = db.query(Tenant).filter(Tenant.id == ident).first()
    if not row:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return row


def get_user_id(x_user_id: Optional[int] = Header(None)) -> int:
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id")
    return x_user_id


@lru_cache
def get_cache() -> ResultCache:
    return build_result_cache(settings)


def get_dashboard_service(
    db: Session = Depends(get_db),
    cache: ResultCache = Depends(get_cache),
) -> DashboardService:
    return DashboardService(db, cache, settings)


def build_state(payload: ReportQueryIn, tenant: Tenant, user_id: int) -> DashboardSessionState:
    comparison = None
    if payload.comparison:
        comparison = PeriodSelection(payload.comparison, payload.comparison_custom_date)
    return DashboardSessionState(
        tenant_id=tenant.id,
        user_id=user_id,
        client_type_id=tenant.client_type_id,
        period=payload.period,
        custom_date=payload.custom_date,
        module_type=payload.module_type,
        filters=normalize_filters(payload.filters),
        comparison=comparison,
        apply_benchmark_filter=payload.apply_benchmark_filter,
        benchmark_school_filter=tuple(payload.benchmark_school_filter),
        set_result_empty=payload.set_result_empty,
        active_modules=tuple(payload.active_modules or settings.active_modules),
    )


def current_year() -> int:
    return datetime.now(timezone.utc).year
