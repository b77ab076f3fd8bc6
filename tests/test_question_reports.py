from datetime import datetime, timedelta

import pytest

from pulse_analytics.models.question import BENCHMARK, FILTERING, MULTIPLE_CHOICE
from pulse_analytics.models.survey import QuestionSurvey, SurveyCycle
from pulse_analytics.models.tenant import PARENT
from pulse_analytics.reports.filters import normalize_filters
from pulse_analytics.reports.likert import LikertAnswersReport
from pulse_analytics.reports.multiple_choice import MultipleChoiceAnswersReport, parse_choices
from pulse_analytics.reports.periods import PeriodSelection
from tests.conftest import NOW

RECENT = NOW - timedelta(days=3)


def _on_active_cycle(db, tenant, kind, question_id, module_type=PARENT):
    cycle = SurveyCycle(tenant_id=tenant.id, module_type=module_type, status="active", created_at=NOW)
    db.add(cycle)
    db.flush()
    db.add(QuestionSurvey(
        survey_cycle_id=cycle.id, module_type=module_type, questionable_type=kind, questionable_id=question_id,
    ))
    db.commit()


@pytest.fixture
def school(seed):
    return seed.tenant()


# ---------------- likert ----------------

def test_likert_score_previous_and_benchmark(db, seed, school):
    peer = seed.tenant()
    q = seed.question(type=BENCHMARK, name="Staff are welcoming")
    seed.answer(school, seed.invite(school), q, score=7, when=RECENT)
    seed.answer(school, seed.invite(school), q, score=8, when=RECENT)
    seed.answer(school, seed.invite(school), q, score=6, when=datetime(2025, 1, 10))
    seed.answer(peer, seed.invite(peer), q, score=9, when=RECENT)

    rows = LikertAnswersReport(db, school.id, client_type_id=1, now=NOW).run()

    assert len(rows) == 1
    row = rows[0]
    assert row["question"] == f"standard:{q.id}"
    assert row["question_name"] == "Staff are welcoming"
    assert row["module_type"] == PARENT
    assert row["score"] == 75
    assert row["answers_count"] == 2
    assert row["previous_score"] == 60
    assert row["previous_answers_count"] == 1
    assert row["period_diff"] == 15
    # (70 for this school over all time + 90 for the peer) / 2
    assert row["benchmark"] == 80


def test_likert_without_history(db, seed, school):
    q = seed.question(type=BENCHMARK)
    seed.answer(school, seed.invite(school), q, score=10, when=RECENT)
    row = LikertAnswersReport(db, school.id, now=NOW).run()[0]
    assert row["score"] == 100
    assert row["previous_score"] is None
    assert row["period_diff"] is None
    assert row["benchmark"] == "N/A"


def test_likert_long_custom_comparison_is_dropped(db, seed, school):
    q = seed.question(type=BENCHMARK)
    seed.answer(school, seed.invite(school), q, score=10, when=RECENT)
    seed.answer(school, seed.invite(school), q, score=2, when=datetime(2024, 6, 1))
    comparison = PeriodSelection("custom", "2023-01-01 to 2024-12-31")
    row = LikertAnswersReport(db, school.id, comparison=comparison, now=NOW).run()[0]
    assert row["previous_score"] is None


def test_likert_active_survey_scope(db, seed, school):
    hidden = seed.question(type=BENCHMARK, system_default=False)
    seed.answer(school, seed.invite(school), hidden, score=5, when=RECENT)

    assert LikertAnswersReport(db, school.id, now=NOW).run() == []
    assert len(LikertAnswersReport(db, school.id, scope_active_survey=False, now=NOW).run()) == 1

    _on_active_cycle(db, school, "standard", hidden.id)
    assert len(LikertAnswersReport(db, school.id, now=NOW).run()) == 1


def test_likert_custom_question_has_no_benchmark(db, seed, school):
    custom = seed.custom_question(school, name="Lunch quality")
    _on_active_cycle(db, school, "custom", custom.id)
    seed.answer(school, seed.invite(school), custom, score=4, when=RECENT)

    row = LikertAnswersReport(db, school.id, client_type_id=1, now=NOW).run()[0]
    assert row["question"] == f"custom:{custom.id}"
    assert row["question_name"] == "Lunch quality"
    assert row["score"] == 40
    assert row["benchmark"] == "N/A"


def test_likert_respects_answer_filters(db, seed, school):
    q = seed.question(type=BENCHMARK)
    grade = seed.question(type=FILTERING)
    first, second = seed.invite(school), seed.invite(school)
    seed.answer(school, first, q, score=10, when=RECENT)
    seed.answer(school, first, grade, value=["Grade 5"], when=RECENT)
    seed.answer(school, second, q, score=2, when=RECENT)
    seed.answer(school, second, grade, value=["Grade 6"], when=RECENT)

    filters = normalize_filters({f"standard:{grade.id}": ["Grade 6"]})
    row = LikertAnswersReport(db, school.id, filters=filters, now=NOW).run()[0]
    assert row["score"] == 20
    assert row["answers_count"] == 1


# ---------------- multiple choice ----------------

def test_parse_choices():
    assert parse_choices('["A", "B"]') == ["A", "B"]
    assert parse_choices("Plain text") == ["Plain text"]
    assert parse_choices('"A"') == ["A"]
    assert parse_choices("") == []
    assert parse_choices(None) == []


def test_multiple_choice_counts(db, seed, school):
    q = seed.question(type=MULTIPLE_CHOICE, name="Why did you choose us?")
    seed.answer(school, seed.invite(school), q, value=["Location", "Price"], when=RECENT)
    seed.answer(school, seed.invite(school), q, value=["Location"], other="Friends", when=RECENT)
    seed.answer(school, seed.invite(school), q, value=[], when=RECENT)

    rows = MultipleChoiceAnswersReport(db, school.id, now=NOW).run()

    assert len(rows) == 1
    row = rows[0]
    assert row["question_name"] == "Why did you choose us?"
    assert row["question_type"] == MULTIPLE_CHOICE
    assert row["options"] == {"Location": 2, "Price": 1}
    assert row["other_option_text"] == ["Friends"]
    assert row["answers_count"] == 2
    assert row["nickname"] is None


def test_multiple_choice_custom_labels(db, seed, school):
    custom = seed.custom_question(
        school, type=MULTIPLE_CHOICE, name="Clubs", nickname="clubs", label_start="Few", label_end="Many",
    )
    _on_active_cycle(db, school, "custom", custom.id)
    seed.answer(school, seed.invite(school), custom, value=["Chess"], when=RECENT)

    row = MultipleChoiceAnswersReport(db, school.id, now=NOW).run()[0]
    assert (row["nickname"], row["label_start"], row["label_end"]) == ("clubs", "Few", "Many")
    assert row["options"] == {"Chess": 1}


def test_multiple_choice_single_question(db, seed, school):
    a = seed.question(type=MULTIPLE_CHOICE)
    b = seed.question(type=MULTIPLE_CHOICE)
    seed.answer(school, seed.invite(school), a, value=["x"], when=RECENT)
    seed.answer(school, seed.invite(school), b, value=["y"], when=RECENT)

    rows = MultipleChoiceAnswersReport(db, school.id, question_ref=f"standard:{b.id}", now=NOW).run()
    assert [r["options"] for r in rows] == [{"y": 1}]
