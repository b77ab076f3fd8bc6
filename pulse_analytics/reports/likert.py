# pulse_analytics/reports/likert.py
"""Benchmark (0..10 Likert) questions: score per question and module."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from pulse_analytics.core.errors import NOT_AVAILABLE
from pulse_analytics.models.answer import SurveyAnswer
from pulse_analytics.models.question import BENCHMARK, CUSTOM, STANDARD, Question, TenantQuestion
from pulse_analytics.models.tenant import ALL, PULSE_MODULES, Tenant
from pulse_analytics.reports import periods as P
from pulse_analytics.reports.base import round_half_up, tenant_answers
from pulse_analytics.reports.filters import (
    NormalizedFilters, QuestionRef, apply_active_survey, apply_filters,
    apply_module_scope, apply_period, latest_answers, normalize_filters,
)
from pulse_analytics.reports.nps import tenants_matching_school_filter


def question_names(db: Session, tenant_id: int, refs) -> dict[QuestionRef, str]:
    refs = list(refs)
    standard = [r.id for r in refs if r.kind == STANDARD]
    custom = [r.id for r in refs if r.kind == CUSTOM]
    names: dict[QuestionRef, str] = {}
    if standard:
        for qid, name in db.query(Question.id, Question.name).filter(Question.id.in_(standard)):
            names[QuestionRef(STANDARD, qid)] = name
    if custom:
        rows = db.query(TenantQuestion.id, TenantQuestion.name).filter(
            TenantQuestion.id.in_(custom), TenantQuestion.tenant_id == tenant_id
        )
        for qid, name in rows:
            names[QuestionRef(CUSTOM, qid)] = name
    return names


class LikertAnswersReport:
    def __init__(
        self,
        db: Session,
        tenant_id: int,
        period: str = P.LAST_365_DAYS,
        custom_date: str = "",
        filters: Optional[NormalizedFilters] = None,
        scope_active_survey: bool = True,
        filter_benchmark: bool = False,
        module_type: str = ALL,
        active_modules: Sequence[str] = PULSE_MODULES,
        calculate_benchmark: bool = True,
        comparison: Optional[P.PeriodSelection] = None,
        question_ref: Optional[QuestionRef | str] = None,
        client_type_id: Optional[int] = None,
        benchmark_school_filter: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
    ):
        self.db = db
        self.tenant_id = tenant_id
        self.period = period
        self.custom_date = custom_date or ""
        self.filters = normalize_filters(filters)
        self.scope_active_survey = scope_active_survey
        self.filter_benchmark = filter_benchmark
        self.module_type = module_type
        self.active_modules = list(active_modules)
        self.calculate_benchmark = calculate_benchmark
        self.comparison = comparison
        self.question_ref = QuestionRef.parse(question_ref) if question_ref is not None else None
        self.client_type_id = client_type_id
        self.benchmark_school_filter = list(benchmark_school_filter or [])
        self.now = now

    # ---- queries ----

    def _scoped(self, *columns, start=None, end=None):
        query = tenant_answers(self.db, self.tenant_id, *columns).filter(
            SurveyAnswer.question_type == BENCHMARK,
            SurveyAnswer.score.is_not(None),
        )
        if self.question_ref is not None:
            query = query.filter(
                SurveyAnswer.questionable_type == self.question_ref.kind,
                SurveyAnswer.questionable_id == self.question_ref.id,
            )
        query = apply_module_scope(query, self.module_type, self.active_modules)
        query = apply_period(query, start, end)
        query = apply_filters(query, self.filters)
        if self.scope_active_survey:
            query = apply_active_survey(query, self.tenant_id)
        return latest_answers(query)

    def _grouped(self, start, end):
        return (
            self._scoped(
                SurveyAnswer.questionable_type,
                SurveyAnswer.questionable_id,
                SurveyAnswer.module_type,
                func.avg(SurveyAnswer.score).label("average"),
                func.count(distinct(SurveyAnswer.survey_invite_id)).label("answers_count"),
                start=start,
                end=end,
            )
            .group_by(SurveyAnswer.questionable_type, SurveyAnswer.questionable_id, SurveyAnswer.module_type)
            .order_by(SurveyAnswer.questionable_type, SurveyAnswer.questionable_id, SurveyAnswer.module_type)
            .all()
        )

    def _previous_window(self) -> Optional[P.ResolvedPeriod]:
        if self.comparison is not None:
            if self.comparison.token == P.CUSTOM and P.is_long_custom_range(self.comparison.custom_date):
                return None
            return P.comparison_window(self.comparison, now=self.now)
        return P.previous_period(self.period, self.custom_date, now=self.now)

    def benchmark_for(self, ref: QuestionRef, module_type: str) -> Any:
        """Mean of the per-tenant scores of the peer group, `N/A` without peers."""
        if ref.is_custom or self.client_type_id is None:
            return NOT_AVAILABLE

        query = (
            self.db.query(SurveyAnswer.tenant_id, func.avg(SurveyAnswer.score).label("average"))
            .select_from(SurveyAnswer)
            .join(Tenant, Tenant.id == SurveyAnswer.tenant_id)
            .filter(
                Tenant.client_type_id == self.client_type_id,
                SurveyAnswer.question_type == BENCHMARK,
                SurveyAnswer.score.is_not(None),
                SurveyAnswer.questionable_type == STANDARD,
                SurveyAnswer.questionable_id == ref.id,
                SurveyAnswer.module_type == module_type,
            )
        )
        if self.benchmark_school_filter:
            tenant_ids = tenants_matching_school_filter(self.db, self.client_type_id, self.benchmark_school_filter)
            query = query.filter(SurveyAnswer.tenant_id.in_(tenant_ids))
        if self.filter_benchmark:
            window = P.resolve_period(self.period, self.custom_date, now=self.now)
            query = apply_period(query, window.start, window.end)
            query = apply_filters(query, self.filters, nps=False)

        per_tenant = [round_half_up(float(r.average) * 10) for r in query.group_by(SurveyAnswer.tenant_id).all()]
        if not per_tenant:
            return NOT_AVAILABLE
        return round_half_up(sum(per_tenant) / len(per_tenant))

    # ---- public ----

    def run(self) -> list[dict[str, Any]]:
        window = P.resolve_period(self.period, self.custom_date, now=self.now)
        rows = self._grouped(window.start, window.end)
        if not rows:
            return []

        previous: dict[tuple, Any] = {}
        prev_window = self._previous_window()
        if prev_window is not None:
            for r in self._grouped(prev_window.start, prev_window.end):
                previous[(r.questionable_type, r.questionable_id, r.module_type)] = r

        refs = {QuestionRef(r.questionable_type, r.questionable_id) for r in rows}
        names = question_names(self.db, self.tenant_id, refs)

        out = []
        for r in rows:
            ref = QuestionRef(r.questionable_type, r.questionable_id)
            score = round_half_up(float(r.average) * 10)
            prev = previous.get((r.questionable_type, r.questionable_id, r.module_type))
            previous_score = round_half_up(float(prev.average) * 10) if prev is not None else None
            item = {
                "question": str(ref),
                "questionable_type": ref.kind,
                "questionable_id": ref.id,
                "question_name": names.get(ref),
                "module_type": r.module_type,
                "score": score,
                "answers_count": int(r.answers_count),
                "previous_score": previous_score,
                "previous_answers_count": int(prev.answers_count) if prev is not None else 0,
                "period_diff": score - previous_score if previous_score is not None else None,
            }
            if self.calculate_benchmark:
                item["benchmark"] = self.benchmark_for(ref, r.module_type)
            out.append(item)
        return out
