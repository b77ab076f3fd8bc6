# pulse_analytics/reports/cache_keys.py
from __future__ import annotations

import hashlib
import json
from typing import Any, Optional, Sequence

from pulse_analytics.reports.filters import NormalizedFilters
from pulse_analytics.reports.periods import PeriodSelection

# report kind tags
NPS_CURRENT = "nps_current"
NPS_PREVIOUS = "nps_previous"
NPS_BENCHMARK = "nps_benchmark"
NPS_CHART = "nps_chart"
SCORE_OVER_TIME = "score_over_time"
NPS_OVER_TIME = "nps_over_time"
LIKERT = "likert"
MULTIPLE_CHOICE = "multiple_choice"

# last-good mirror families (one value per tenant + user)
CURRENT_PERIOD_MIRROR = "currentPeriodDashboard"
PREVIOUS_PERIOD_MIRROR = "PreviousPeriodDashboard"
BENCHMARK_MIRROR = "SchoolsBenchmarkDashboard"


def _md5(value: Optional[str]) -> str:
    return hashlib.md5((value or "").encode("utf-8")).hexdigest()


def _stable_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def school_filter_suffix(benchmark_school_filter: Sequence[str]) -> str:
    return "_".join(sorted(str(v).lower().replace(" ", "_") for v in benchmark_school_filter))


def build_cache_key(
    tag: str,
    tenant_id: int,
    module_type: str,
    period: PeriodSelection,
    filters: NormalizedFilters,
    comparison: Optional[PeriodSelection] = None,
    benchmark_school_filter: Optional[Sequence[str]] = None,
    extra: Sequence[Any] = (),
) -> str:
    """
    Deterministic key for one logical report query. Tenant identity is always
    part of the key; filter maps are hashed from their sorted serialization.
    """
    parts = [
        tag,
        f"t{tenant_id}",
        module_type,
        period.token,
        _md5(period.custom_date),
        _md5(_stable_json(filters.key_payload())),
    ]
    parts.extend(str(e) for e in extra)
    key = "_".join(parts)

    if comparison is not None:
        key += f"_{comparison.token}_{_md5(comparison.custom_date)}"
    if benchmark_school_filter:
        key += "_" + school_filter_suffix(benchmark_school_filter)
    return key


def user_cache_key(family: str, tenant_id: int, user_id: int) -> str:
    return f"{family}_t{tenant_id}_u{user_id}"
