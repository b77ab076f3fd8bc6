import pytest

from pulse_analytics.core.errors import UnresolvableQuestionReference
from pulse_analytics.models.survey import DEFAULT_PROGRESS
from pulse_analytics.reports.filters import (
    NormalizedFilters, QuestionRef, normalize_filters, resolve_modules,
)


def test_question_ref_parse_and_str():
    ref = QuestionRef.parse(" Standard:12 ")
    assert ref == QuestionRef("standard", 12)
    assert str(ref) == "standard:12"
    assert not ref.is_custom
    assert QuestionRef.parse("custom:7").is_custom


@pytest.mark.parametrize("raw", ["12", "school:1", "custom:abc", ""])
def test_question_ref_rejects_garbage(raw):
    with pytest.raises(UnresolvableQuestionReference):
        QuestionRef.parse(raw)


def test_empty_filters_default_progress():
    f = normalize_filters({})
    assert f == NormalizedFilters()
    assert f.survey_progress_filter == DEFAULT_PROGRESS
    assert not f.is_custom_nps_filter


def test_order_of_keys_and_values_does_not_matter():
    a = normalize_filters({"standard:2": ["b", "a"], "custom:1": {"0": "x"}})
    b = normalize_filters({"custom:1": ["x"], "standard:2": {"1": "a", "0": "b"}})
    assert a == b
    assert [ref for ref, _ in a.filters] == [QuestionRef("custom", 1), QuestionRef("standard", 2)]
    assert a.key_payload() == b.key_payload()


def test_normalizing_twice_is_stable():
    raw = {
        "standard:3": ["Grade 5"],
        "custom_nps_filter": {"nps": ["promoter"]},
        "survey_progress": ["answered"],
    }
    once = normalize_filters(raw)
    assert normalize_filters(once.as_raw()) == once
    assert normalize_filters(once) is once


def test_empty_values_drop_the_question():
    f = normalize_filters({"standard:3": [], "standard:4": {"0": ""}})
    assert f.filters == ()


def test_same_question_written_twice_is_merged():
    f = normalize_filters({"standard:3": ["a"], "STANDARD:3": ["b"]})
    assert f.filters == ((QuestionRef("standard", 3), ("a", "b")),)


def test_custom_nps_filter_keeps_last_entry_and_known_categories():
    f = normalize_filters({"custom_nps_filter": {"a": ["promoter"], "b": ["detractor", "bogus"]}})
    assert f.custom_nps_filter == ("detractor",)
    assert f.is_custom_nps_filter


def test_custom_nps_filter_without_categories_is_inactive():
    f = normalize_filters({"custom_nps_filter": {"nps": []}})
    assert not f.is_custom_nps_filter


def test_survey_progress_map_and_fallback():
    assert normalize_filters({"survey_progress": {"pending": True, "send": False}}).survey_progress_filter == ("pending",)
    assert normalize_filters({"survey_progress": ["nope"]}).survey_progress_filter == DEFAULT_PROGRESS


def test_bad_filter_key_is_rejected():
    with pytest.raises(UnresolvableQuestionReference):
        normalize_filters({"grade": ["5"]})


def test_resolve_modules():
    active = ["parent", "student", "employee", "alumni"]
    assert resolve_modules("all", active) == active
    assert resolve_modules("pulse", active) == ["parent", "student", "employee"]
    assert resolve_modules("student", active) == ["student"]
