# pulse_analytics/services/dashboard.py
"""
Dashboard orchestration: turns one user's dashboard state into cached report
calls and keeps that user's last-good mirror up to date.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from pulse_analytics.core.errors import NOT_AVAILABLE
from pulse_analytics.models.tenant import ALL, PULSE_MODULES
from pulse_analytics.reports import cache_keys as K
from pulse_analytics.reports import periods as P
from pulse_analytics.reports.cache import LastGoodMirror, ResultCache
from pulse_analytics.reports.filters import NormalizedFilters, QuestionRef
from pulse_analytics.reports.likert import LikertAnswersReport
from pulse_analytics.reports.multiple_choice import MultipleChoiceAnswersReport
from pulse_analytics.reports.nps import (
    NpsBenchmarkReportCentral, NpsChartReport, NpsReportCentral,
    benchmark_not_comparable, summarize_benchmark,
)
from pulse_analytics.reports.over_time import NpsOverTimeReport, ScoreOverTimeReport

logger = logging.getLogger(__name__)

EMPTY_RESULT: dict[str, Any] = {}
NEUTRAL_BENCHMARK = {"benchmark": "...", "percentile": NOT_AVAILABLE}
NOT_COMPARABLE_BENCHMARK = {"benchmark": NOT_AVAILABLE, "percentile": NOT_AVAILABLE}


@dataclass(frozen=True)
class DashboardSessionState:
    """Everything a dashboard holds between interactions, resolved by the caller."""
    tenant_id: int
    user_id: int
    client_type_id: int = 1
    period: str = P.LAST_365_DAYS
    custom_date: str = ""
    module_type: str = ALL
    filters: NormalizedFilters = field(default_factory=NormalizedFilters)
    comparison: Optional[P.PeriodSelection] = None
    apply_benchmark_filter: bool = False
    benchmark_school_filter: tuple[str, ...] = ()
    set_result_empty: bool = False
    active_modules: tuple[str, ...] = PULSE_MODULES
    now: Optional[datetime] = None

    @property
    def period_selection(self) -> P.PeriodSelection:
        return P.PeriodSelection(self.period, self.custom_date)

    def key(self, tag: str, *, comparison: bool = False, school_filter: bool = False, extra=()) -> str:
        return K.build_cache_key(
            tag,
            self.tenant_id,
            self.module_type,
            self.period_selection,
            self.filters,
            comparison=self.comparison if comparison else None,
            benchmark_school_filter=self.benchmark_school_filter if school_filter else None,
            extra=(*extra, "-".join(self.active_modules)),
        )


class DashboardService:
    def __init__(self, db: Session, cache: ResultCache, settings):
        self.db = db
        self.cache = cache
        self.ttl = settings.CACHE_TIME
        self.mirror = LastGoodMirror(cache, settings.MIRROR_TTL)

    # ---- helpers ----

    def _nps_report(self, state: DashboardSessionState) -> NpsReportCentral:
        return NpsReportCentral(
            self.db,
            state.tenant_id,
            period=state.period,
            custom_date=state.custom_date,
            comparison=state.comparison,
            module_type=state.module_type,
            filters=state.filters,
            active_modules=state.active_modules,
            now=state.now,
        )

    def _mirrored(self, state: DashboardSessionState, family: str, neutral: Any, compute: Callable[[], Any]) -> Any:
        if state.set_result_empty:
            self.mirror.clear(family, state.tenant_id, state.user_id, neutral)
            return dict(neutral)
        value = compute()
        self.mirror.remember(family, state.tenant_id, state.user_id, value)
        return value

    def _current(self, state: DashboardSessionState) -> dict[str, Any]:
        return self.cache.get_or_compute(
            state.key(K.NPS_CURRENT), self.ttl, lambda: self._nps_report(state).current_period()
        )

    # ---- NPS ----

    def current_period(self, state: DashboardSessionState) -> dict[str, Any]:
        return self._mirrored(state, K.CURRENT_PERIOD_MIRROR, EMPTY_RESULT, lambda: self._current(state))

    def previous_period(self, state: DashboardSessionState) -> dict[str, Any]:
        def compute():
            return self.cache.get_or_compute(
                state.key(K.NPS_PREVIOUS, comparison=True),
                self.ttl,
                lambda: self._nps_report(state).previous_period(),
            )
        return self._mirrored(state, K.PREVIOUS_PERIOD_MIRROR, EMPTY_RESULT, compute)

    def schools_benchmark(self, state: DashboardSessionState) -> dict[str, Any]:
        def compute():
            if benchmark_not_comparable(self.db, state.tenant_id, state.filters):
                return dict(NOT_COMPARABLE_BENCHMARK)

            current_score = self._current(state).get("score")

            def produce():
                rows = NpsBenchmarkReportCentral(
                    self.db,
                    state.tenant_id,
                    state.client_type_id,
                    apply_benchmark_filter=state.apply_benchmark_filter,
                    filters=state.filters,
                    period=state.period,
                    custom_date=state.custom_date,
                    module_type=state.module_type,
                    active_modules=state.active_modules,
                    benchmark_school_filter=state.benchmark_school_filter,
                    now=state.now,
                ).calculate_nps_benchmark()
                summary = summarize_benchmark(rows, current_score, state.apply_benchmark_filter)
                summary["schools"] = len(rows)
                return summary

            # "compute now" requests are never served from, nor written to, the cache
            return self.cache.get_or_compute(
                state.key(K.NPS_BENCHMARK, school_filter=True),
                self.ttl,
                produce,
                bypass_cache=state.apply_benchmark_filter,
            )

        return self._mirrored(state, K.BENCHMARK_MIRROR, NEUTRAL_BENCHMARK, compute)

    def last_good(self, state: DashboardSessionState, family: str) -> Any:
        return self.mirror.read(family, state.tenant_id, state.user_id)

    def chart(self, state: DashboardSessionState) -> dict[str, Any]:
        return self.cache.get_or_compute(
            state.key(K.NPS_CHART),
            self.ttl,
            lambda: NpsChartReport(
                self.db,
                state.tenant_id,
                period=state.period,
                custom_date=state.custom_date,
                module_type=state.module_type,
                filters=state.filters,
                active_modules=state.active_modules,
                now=state.now,
            ).series(),
        )

    # ---- time series ----

    def score_over_time(self, state: DashboardSessionState, question: QuestionRef | str, year: int) -> list[dict]:
        ref = QuestionRef.parse(question)
        return self.cache.get_or_compute(
            state.key(K.SCORE_OVER_TIME, extra=(ref, year)),
            self.ttl,
            lambda: ScoreOverTimeReport(
                self.db,
                state.tenant_id,
                ref,
                year,
                period=state.period,
                custom_date=state.custom_date,
                filters=state.filters,
                module_type=state.module_type,
                active_modules=state.active_modules,
                now=state.now,
            ).monthly_grouped(),
        )

    def nps_over_time(self, state: DashboardSessionState, year: int) -> list[dict]:
        return self.cache.get_or_compute(
            state.key(K.NPS_OVER_TIME, extra=(year,)),
            self.ttl,
            lambda: NpsOverTimeReport(
                self.db,
                state.tenant_id,
                year,
                period=state.period,
                custom_date=state.custom_date,
                filters=state.filters,
                module_type=state.module_type,
                active_modules=state.active_modules,
                now=state.now,
            ).monthly_grouped(),
        )

    # ---- question reports ----

    def likert(self, state: DashboardSessionState) -> list[dict]:
        return self.cache.get_or_compute(
            state.key(K.LIKERT, comparison=True, school_filter=True, extra=(int(state.apply_benchmark_filter),)),
            self.ttl,
            lambda: LikertAnswersReport(
                self.db,
                state.tenant_id,
                period=state.period,
                custom_date=state.custom_date,
                filters=state.filters,
                filter_benchmark=state.apply_benchmark_filter,
                module_type=state.module_type,
                active_modules=state.active_modules,
                comparison=state.comparison,
                client_type_id=state.client_type_id,
                benchmark_school_filter=state.benchmark_school_filter,
                now=state.now,
            ).run(),
        )

    def multiple_choice(self, state: DashboardSessionState, reset_cache: bool = False) -> list[dict]:
        key = state.key(K.MULTIPLE_CHOICE, extra=("active1", "v1"))
        if reset_cache:
            self.cache.invalidate(key)
        return self.cache.get_or_compute(
            key,
            self.ttl,
            lambda: MultipleChoiceAnswersReport(
                self.db,
                state.tenant_id,
                period=state.period,
                custom_date=state.custom_date,
                filters=state.filters,
                module_type=state.module_type,
                active_modules=state.active_modules,
                now=state.now,
            ).run(),
        )

    def clear_cache(self) -> None:
        logger.info("[dashboard] report cache cleared")
        self.cache.clear()
