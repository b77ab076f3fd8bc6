# pulse_analytics/reports/nps.py
"""
NPS family: current/previous period score, fleet benchmark and the bucket chart.

Promoter = score >= 9, detractor = score <= 6, passive = 7..8. The score is
round(%promoters - %detractors) over the latest answer of every respondent.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

from sqlalchemy import and_, case, distinct, func
from sqlalchemy.orm import Session

from pulse_analytics.core.errors import NOT_AVAILABLE
from pulse_analytics.models.answer import SurveyAnswer
from pulse_analytics.models.question import NPS, EditableQuestionAnswer, Question
from pulse_analytics.models.tenant import ALL, PULSE_MODULES, Tenant
from pulse_analytics.reports import periods as P
from pulse_analytics.reports.base import (
    detractor_sum, nps_score, nps_value, passive_sum, percent, promoter_sum,
    round_half_up, tenant_answers,
)
from pulse_analytics.reports.filters import (
    NormalizedFilters, apply_filters, apply_module_scope, apply_period,
    apply_survey_progress, latest_answers, normalize_filters,
)

logger = logging.getLogger(__name__)


def _module_sum(module: str, condition=None):
    cond = SurveyAnswer.module_type == module
    if condition is not None:
        cond = and_(cond, condition)
    return func.sum(case((cond, 1), else_=0))


def _nps_answers(query):
    return query.filter(SurveyAnswer.question_type == NPS, SurveyAnswer.score.is_not(None))


class NpsReportCentral:
    def __init__(
        self,
        db: Session,
        tenant_id: int,
        period: str = P.LAST_365_DAYS,
        custom_date: str = "",
        comparison: Optional[P.PeriodSelection] = None,
        module_type: str = ALL,
        filters: Optional[NormalizedFilters] = None,
        active_modules: Sequence[str] = PULSE_MODULES,
        now: Optional[datetime] = None,
    ):
        self.db = db
        self.tenant_id = tenant_id
        self.period = period
        self.custom_date = custom_date or ""
        self.comparison = comparison
        self.module_type = module_type
        self.filters = normalize_filters(filters)
        self.active_modules = list(active_modules)
        self.now = now

    def current_period(self) -> dict[str, Any]:
        window = P.resolve_period(self.period, self.custom_date, now=self.now)
        return self._aggregate(window.start, window.end)

    def previous_period(self) -> dict[str, Any]:
        if self.comparison is not None:
            window = P.comparison_window(self.comparison, now=self.now)
        else:
            window = P.previous_period(self.period, self.custom_date, now=self.now)
        report = self._aggregate(window.start, window.end)

        # comparing against more than a year of custom range is not meaningful
        if self.period == P.CUSTOM and P.is_long_custom_range(self.custom_date):
            report["promoters_percentage"] = 0
            report["detractors_percentage"] = 0
        return report

    def _aggregate(self, start, end) -> dict[str, Any]:
        columns = [
            func.count(distinct(SurveyAnswer.survey_invite_id)).label("responses"),
            func.count(SurveyAnswer.score).label("total"),
            promoter_sum().label("promoters"),
            detractor_sum().label("detractors"),
            passive_sum().label("passive"),
        ]
        for module in PULSE_MODULES:
            columns += [
                _module_sum(module).label(f"{module}_total"),
                _module_sum(module, SurveyAnswer.score >= 9).label(f"{module}_promoters"),
                _module_sum(module, SurveyAnswer.score <= 6).label(f"{module}_detractors"),
            ]

        query = _nps_answers(tenant_answers(self.db, self.tenant_id, *columns))
        query = apply_module_scope(query, self.module_type, self.active_modules)
        query = apply_period(query, start, end)
        query = apply_filters(query, self.filters)
        row = latest_answers(query).one()._mapping

        total = int(row["total"] or 0)
        promoters = int(row["promoters"] or 0)
        detractors = int(row["detractors"] or 0)
        passive = int(row["passive"] or 0)

        report = {
            "responses": int(row["responses"] or 0),
            "promoters": promoters,
            "detractors": detractors,
            "passive": passive,
            "promoters_percentage": percent(promoters, total),
            "detractors_percentage": percent(detractors, total),
            "passive_percentage": percent(passive, total),
            "score": nps_score(promoters, detractors, total),
        }
        for module in PULSE_MODULES:
            score = nps_score(row[f"{module}_promoters"], row[f"{module}_detractors"], row[f"{module}_total"])
            report[f"{module}_score"] = score or 0
        return report


# ---------------- benchmark ----------------

@dataclass(frozen=True)
class BenchmarkRow:
    tenant_id: int
    score: float
    responses: int


def _profile_values(profile: Any) -> set[str]:
    values: set[str] = set()
    items = profile.values() if isinstance(profile, dict) else (profile or [])
    for v in items:
        if isinstance(v, (list, tuple)):
            values.update(str(x).strip().lower() for x in v)
        elif v is not None:
            values.add(str(v).strip().lower())
    return values


def tenants_matching_school_filter(db: Session, client_type_id: int, school_filter: Sequence[str]) -> list[int]:
    """Tenants of the peer group whose profile carries every requested value."""
    wanted = {str(v).strip().lower() for v in school_filter}
    tenants = db.query(Tenant).filter(Tenant.client_type_id == client_type_id).all()
    return [t.id for t in tenants if wanted <= _profile_values(t.profile)]


class NpsBenchmarkReportCentral:
    """One NPS row per tenant sharing the requesting tenant's client type."""

    def __init__(
        self,
        db: Session,
        tenant_id: int,
        client_type_id: int,
        apply_benchmark_filter: bool = False,
        filters: Optional[NormalizedFilters] = None,
        period: str = P.LAST_365_DAYS,
        custom_date: str = "",
        module_type: str = ALL,
        active_modules: Sequence[str] = PULSE_MODULES,
        benchmark_school_filter: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
    ):
        self.db = db
        self.tenant_id = tenant_id
        self.client_type_id = client_type_id
        self.apply_benchmark_filter = apply_benchmark_filter
        self.filters = normalize_filters(filters)
        self.period = period
        self.custom_date = custom_date or ""
        self.module_type = module_type
        self.active_modules = list(active_modules)
        self.benchmark_school_filter = list(benchmark_school_filter or [])
        self.now = now

    def calculate_nps_benchmark(self) -> list[BenchmarkRow]:
        query = (
            self.db.query(
                SurveyAnswer.tenant_id,
                func.count(SurveyAnswer.score).label("total"),
                func.count(distinct(SurveyAnswer.survey_invite_id)).label("responses"),
                promoter_sum().label("promoters"),
                detractor_sum().label("detractors"),
            )
            .select_from(SurveyAnswer)
            .join(Tenant, Tenant.id == SurveyAnswer.tenant_id)
            .filter(Tenant.client_type_id == self.client_type_id)
        )
        query = _nps_answers(query)
        query = apply_module_scope(query, self.module_type, self.active_modules)

        if self.benchmark_school_filter:
            tenant_ids = tenants_matching_school_filter(self.db, self.client_type_id, self.benchmark_school_filter)
            query = query.filter(SurveyAnswer.tenant_id.in_(tenant_ids))

        if self.apply_benchmark_filter:
            window = P.resolve_period(self.period, self.custom_date, now=self.now)
            query = apply_period(query, window.start, window.end)
            query = apply_filters(query, self.filters)
        else:
            query = apply_survey_progress(query, self.filters.survey_progress_filter)

        rows = latest_answers(query).group_by(SurveyAnswer.tenant_id).order_by(SurveyAnswer.tenant_id).all()
        return [
            BenchmarkRow(tenant_id=r.tenant_id, score=nps_value(r.promoters, r.detractors, r.total), responses=int(r.responses))
            for r in rows
            if r.total
        ]


def summarize_benchmark(rows: Sequence[BenchmarkRow], current_score: Optional[int], apply: bool) -> dict[str, Any]:
    """
    Fleet average of the per-tenant scores and, only when the benchmark filter
    is being applied, the share of tenants scoring below the current one.
    """
    if not rows:
        return {"benchmark": 0, "percentile": 0 if apply else NOT_AVAILABLE}

    scores = [r.score for r in rows]
    benchmark = round_half_up(sum(scores) / len(scores))
    if not apply:
        return {"benchmark": benchmark, "percentile": NOT_AVAILABLE}

    current = current_score if current_score is not None else 0
    below = sum(1 for s in scores if round_half_up(s) < current)
    return {"benchmark": benchmark, "percentile": round_half_up(below / len(scores) * 100)}


def benchmark_not_comparable(db: Session, tenant_id: int, filters: NormalizedFilters) -> bool:
    """
    Custom questions and tenant-added answers of editable questions exist for
    one tenant only, so a benchmark filtered on them cannot be compared.
    """
    for ref, values in filters.filters:
        if ref.is_custom:
            return True
        custom_answer = (
            db.query(EditableQuestionAnswer.id)
            .join(Question, Question.id == EditableQuestionAnswer.question_id)
            .filter(
                Question.id == ref.id,
                Question.editable_by_client.is_(True),
                EditableQuestionAnswer.tenant_id == tenant_id,
                EditableQuestionAnswer.custom_answer.is_(True),
                EditableQuestionAnswer.name.in_(list(values)),
            )
            .first()
        )
        if custom_answer is not None:
            logger.debug("benchmark not comparable: %s has tenant answers", ref)
            return True
    return False


# ---------------- chart ----------------

def _bucket_label(moment: datetime, bucket: str) -> str:
    if bucket == "hour":
        return moment.strftime("%Y-%m-%d %H:00")
    if bucket == "week":
        return (moment.date() - timedelta(days=moment.weekday())).isoformat()
    if bucket == "month":
        return moment.strftime("%Y-%m")
    if bucket == "year":
        return moment.strftime("%Y")
    return moment.strftime("%Y-%m-%d")


class NpsChartReport:
    """NPS per chart bucket, computed independently for every calendar sub-range."""

    def __init__(
        self,
        db: Session,
        tenant_id: int,
        period: str = P.LAST_365_DAYS,
        custom_date: str = "",
        module_type: str = ALL,
        filters: Optional[NormalizedFilters] = None,
        active_modules: Sequence[str] = PULSE_MODULES,
        now: Optional[datetime] = None,
    ):
        self.db = db
        self.tenant_id = tenant_id
        self.period = period
        self.custom_date = custom_date or ""
        self.module_type = module_type
        self.filters = normalize_filters(filters)
        self.active_modules = list(active_modules)
        self.now = now

    def series(self) -> dict[str, Any]:
        resolved = P.resolve_period(self.period, self.custom_date, now=self.now)
        points = []
        for sub in resolved.sub_ranges:
            points.extend(self._points(sub, resolved.bucket))
        return {"period": self.period, "bucket": resolved.bucket, "points": points}

    def _points(self, sub: P.SubRange, bucket: str) -> list[dict[str, Any]]:
        query = _nps_answers(tenant_answers(self.db, self.tenant_id, SurveyAnswer.updated_at, SurveyAnswer.score))
        query = apply_module_scope(query, self.module_type, self.active_modules)
        query = apply_period(query, sub.start, sub.end)
        query = apply_filters(query, self.filters)

        counts: dict[str, list[int]] = defaultdict(lambda: [0, 0, 0])  # total, promoters, detractors
        for updated_at, score in latest_answers(query).all():
            c = counts[_bucket_label(updated_at, bucket)]
            c[0] += 1
            c[1] += score >= 9
            c[2] += score <= 6

        return [
            {"label": label, "score": nps_score(prom, det, total), "responses": total}
            for label, (total, prom, det) in sorted(counts.items())
        ]
