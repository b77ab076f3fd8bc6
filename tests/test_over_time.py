from datetime import datetime

import pytest

from pulse_analytics.models.question import BENCHMARK
from pulse_analytics.reports.filters import normalize_filters
from pulse_analytics.reports.over_time import NpsOverTimeReport, ScoreOverTimeReport, empty_months
from tests.conftest import NOW


@pytest.fixture
def school(seed):
    return seed.tenant()


def test_empty_months_shape():
    months = empty_months(2026)
    assert len(months) == 12
    assert months[0] == {
        "month": 0,
        "x": "Jan",
        "y": 0,
        "totalQuantity": 0,
        "tooltipTimeLabel": "Jan/2026",
        "tooltipDataLabel": "Score",
        "tooltipTotalQuantityLabel": "Answers",
    }
    assert months[11]["x"] == "Dec"


def test_score_over_time_monthly_average(db, seed, school):
    q = seed.question(type=BENCHMARK)
    for score in (7, 8, 9):
        seed.answer(school, seed.invite(school), q, score=score, when=datetime(2026, 3, 10))
    seed.answer(school, seed.invite(school), q, score=5, when=datetime(2026, 5, 2))
    seed.answer(school, seed.invite(school), q, score=1, when=datetime(2025, 3, 10))

    months = ScoreOverTimeReport(db, school.id, f"standard:{q.id}", 2026, now=NOW).monthly_grouped()

    assert len(months) == 12
    assert months[2]["y"] == 8.0
    assert months[2]["totalQuantity"] == 3
    assert months[4]["y"] == 5.0
    assert months[0]["y"] == 0
    assert sum(m["totalQuantity"] for m in months) == 4


def test_score_over_time_rounds_to_one_decimal(db, seed, school):
    q = seed.question(type=BENCHMARK)
    for score in (7, 7, 8):
        seed.answer(school, seed.invite(school), q, score=score, when=datetime(2026, 2, 1))
    months = ScoreOverTimeReport(db, school.id, f"standard:{q.id}", 2026, now=NOW).monthly_grouped()
    assert months[1]["y"] == 7.3


def test_score_over_time_only_counts_the_requested_question(db, seed, school):
    q = seed.question(type=BENCHMARK)
    other = seed.question(type=BENCHMARK)
    seed.answer(school, seed.invite(school), other, score=2, when=datetime(2026, 3, 10))
    months = ScoreOverTimeReport(db, school.id, f"standard:{q.id}", 2026, now=NOW).monthly_grouped()
    assert all(m["totalQuantity"] == 0 for m in months)


def test_score_over_time_of_an_nps_question(db, seed, school):
    q = seed.question()
    seed.nps_respondents(school, q, [10, 8, 6], when=datetime(2026, 3, 10))
    ref = f"standard:{q.id}"

    months = ScoreOverTimeReport(db, school.id, ref, 2026, now=NOW).monthly_grouped()
    assert months[2]["y"] == 8.0
    assert months[2]["totalQuantity"] == 3

    promoters = normalize_filters({"custom_nps_filter": {"nps": ["promoter"]}})
    months = ScoreOverTimeReport(db, school.id, ref, 2026, filters=promoters, now=NOW).monthly_grouped()
    assert months[2]["y"] == 10.0
    assert months[2]["totalQuantity"] == 1


def test_nps_over_time(db, seed, school):
    q = seed.question()
    seed.nps_respondents(school, q, [10, 10, 9, 9, 9, 9, 8, 7, 3, 0], when=datetime(2026, 4, 20))
    seed.nps_respondents(school, q, [10, 0, 0], when=datetime(2026, 1, 5))

    months = NpsOverTimeReport(db, school.id, 2026, now=NOW).monthly_grouped()

    assert months[3]["y"] == 40
    assert months[3]["totalQuantity"] == 10
    # -33.33 is floored
    assert months[0]["y"] == -34
    assert months[1]["y"] == 0


def test_nps_over_time_category_filter_narrows_the_count(db, seed, school):
    q = seed.question()
    seed.nps_respondents(school, q, [10, 10, 9, 9, 9, 9, 8, 7, 3, 0], when=datetime(2026, 4, 20))
    promoters = normalize_filters({"custom_nps_filter": {"nps": ["promoter"]}})

    months = NpsOverTimeReport(db, school.id, 2026, filters=promoters, now=NOW).monthly_grouped()

    assert months[3]["y"] == 100
    assert months[3]["totalQuantity"] == 6


def test_nps_over_time_with_period(db, seed, school):
    q = seed.question()
    seed.nps_respondents(school, q, [10], when=datetime(2026, 1, 5))
    seed.nps_respondents(school, q, [0], when=datetime(2026, 6, 1))

    months = NpsOverTimeReport(db, school.id, 2026, period="last-30-days", now=NOW).monthly_grouped()
    assert months[0]["totalQuantity"] == 0
    assert months[5]["y"] == -100
