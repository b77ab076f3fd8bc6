from pulse_analytics.reports import cache_keys as K
from pulse_analytics.reports.filters import normalize_filters
from pulse_analytics.reports.periods import PeriodSelection

PERIOD = PeriodSelection("last-365-days")


def _key(**kw):
    args = dict(
        tag=K.NPS_CURRENT,
        tenant_id=1,
        module_type="all",
        period=PERIOD,
        filters=normalize_filters({"standard:1": ["a", "b"], "standard:2": ["c"]}),
    )
    args.update(kw)
    return K.build_cache_key(**args)


def test_equivalent_filters_give_the_same_key():
    shuffled = normalize_filters({"standard:2": {"0": "c"}, "standard:1": ["b", "a"]})
    assert _key() == _key(filters=shuffled)


def test_tenant_is_part_of_the_key():
    assert _key(tenant_id=1) != _key(tenant_id=2)
    assert "_t1_" in _key(tenant_id=1)


def test_report_tag_module_and_period_change_the_key():
    base = _key()
    assert base.startswith(K.NPS_CURRENT + "_")
    assert _key(tag=K.NPS_CHART) != base
    assert _key(module_type="parent") != base
    assert _key(period=PeriodSelection("custom", "2026-01-01 to 2026-01-31")) != base
    assert _key(period=PeriodSelection("custom", "2026-01-01 to 2026-02-28")) != _key(
        period=PeriodSelection("custom", "2026-01-01 to 2026-01-31")
    )


def test_comparison_and_school_filter_suffixes():
    key = _key(comparison=PeriodSelection("last-30-days"), benchmark_school_filter=["Rural", "Private School"])
    assert "_last-30-days_" in key
    assert key.endswith("_private_school_rural")
    assert _key(benchmark_school_filter=["Rural", "Private School"]) == _key(
        benchmark_school_filter=["private school", "rural"]
    )


def test_extra_parts():
    assert _key(extra=("standard:4", 2026)) != _key(extra=("standard:4", 2025))


def test_user_cache_key():
    assert K.user_cache_key(K.CURRENT_PERIOD_MIRROR, 3, 9) == "currentPeriodDashboard_t3_u9"
