# pulse_analytics/reports/over_time.py
"""Monthly series for one year: a benchmark or NPS question's score, or the NPS."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import extract, func
from sqlalchemy.orm import Session

from pulse_analytics.models.answer import SurveyAnswer
from pulse_analytics.models.question import BENCHMARK, NPS, Question, TenantQuestion
from pulse_analytics.models.tenant import ALL, PULSE_MODULES
from pulse_analytics.reports import periods as P
from pulse_analytics.reports.base import (
    MONTH_LABELS, detractor_sum, floor_int, nps_value, promoter_sum,
    round_half_up, tenant_answers,
)
from pulse_analytics.reports.filters import (
    NormalizedFilters, QuestionRef, apply_filters, apply_module_scope,
    apply_period, latest_answers, normalize_filters, nps_category_condition,
)


def empty_months(year: int) -> list[dict[str, Any]]:
    return [
        {
            "month": i,
            "x": label,
            "y": 0,
            "totalQuantity": 0,
            "tooltipTimeLabel": f"{label}/{year}",
            "tooltipDataLabel": "Score",
            "tooltipTotalQuantityLabel": "Answers",
        }
        for i, label in enumerate(MONTH_LABELS)
    ]


def merge_months(year: int, values: Iterable[tuple[int, Any, int]]) -> list[dict[str, Any]]:
    """Place (month index, y, count) triples into the fixed 12 slot array."""
    months = empty_months(year)
    for index, y, count in values:
        months[index]["y"] = y
        months[index]["totalQuantity"] = count
    return months


class _MonthlyReport:
    def __init__(
        self,
        db: Session,
        tenant_id: int,
        year: int,
        period: Optional[str] = None,
        custom_date: str = "",
        filters: Optional[NormalizedFilters] = None,
        module_type: str = ALL,
        active_modules: Sequence[str] = PULSE_MODULES,
        now: Optional[datetime] = None,
    ):
        self.db = db
        self.tenant_id = tenant_id
        self.year = int(year)
        self.period = period
        self.custom_date = custom_date or ""
        self.filters = normalize_filters(filters)
        self.module_type = module_type
        self.active_modules = list(active_modules)
        self.now = now

    def _scoped(self, *columns):
        month = extract("month", SurveyAnswer.updated_at).label("month")
        query = tenant_answers(self.db, self.tenant_id, month, *columns)
        query = query.filter(
            SurveyAnswer.score.is_not(None),
            SurveyAnswer.updated_at >= datetime(self.year, 1, 1),
            SurveyAnswer.updated_at < datetime(self.year + 1, 1, 1),
        )
        query = apply_module_scope(query, self.module_type, self.active_modules)
        if self.period:
            window = P.resolve_period(self.period, self.custom_date, now=self.now)
            query = apply_period(query, window.start, window.end)
        return query, month


class ScoreOverTimeReport(_MonthlyReport):
    def __init__(self, db: Session, tenant_id: int, question_ref: QuestionRef | str, year: int, **kwargs):
        super().__init__(db, tenant_id, year, **kwargs)
        self.question_ref = QuestionRef.parse(question_ref)

    def question_type(self) -> str:
        if self.question_ref.is_custom:
            qtype = self.db.query(TenantQuestion.type).filter(
                TenantQuestion.id == self.question_ref.id, TenantQuestion.tenant_id == self.tenant_id
            ).scalar()
        else:
            qtype = self.db.query(Question.type).filter(Question.id == self.question_ref.id).scalar()
        return NPS if qtype == NPS else BENCHMARK

    def monthly_grouped(self) -> list[dict[str, Any]]:
        qtype = self.question_type()
        query, month = self._scoped(
            func.avg(SurveyAnswer.score).label("average"),
            func.count(SurveyAnswer.score).label("answers"),
        )
        query = query.filter(
            SurveyAnswer.questionable_type == self.question_ref.kind,
            SurveyAnswer.questionable_id == self.question_ref.id,
            SurveyAnswer.question_type == qtype,
        )
        if qtype == NPS:
            if self.filters.is_custom_nps_filter:
                query = query.filter(nps_category_condition(SurveyAnswer.score, self.filters.custom_nps_filter))
            query = apply_filters(query, self.filters, nps=False)
        else:
            query = apply_filters(query, self.filters)
        rows = latest_answers(query).group_by(month).order_by(month).all()
        return merge_months(
            self.year,
            ((int(r.month) - 1, round_half_up(r.average, 1), int(r.answers)) for r in rows if r.answers),
        )


class NpsOverTimeReport(_MonthlyReport):
    def monthly_grouped(self) -> list[dict[str, Any]]:
        query, month = self._scoped(
            func.count(SurveyAnswer.score).label("answers"),
            promoter_sum().label("promoters"),
            detractor_sum().label("detractors"),
        )
        query = query.filter(SurveyAnswer.question_type == NPS)
        # the NPS category filter narrows the answers being counted
        if self.filters.is_custom_nps_filter:
            query = query.filter(nps_category_condition(SurveyAnswer.score, self.filters.custom_nps_filter))
        query = apply_filters(query, self.filters, nps=False)
        rows = latest_answers(query).group_by(month).order_by(month).all()
        return merge_months(
            self.year,
            (
                (int(r.month) - 1, floor_int(nps_value(r.promoters, r.detractors, r.answers)), int(r.answers))
                for r in rows
                if r.answers
            ),
        )
