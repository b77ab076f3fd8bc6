# pulse_analytics/reports/base.py
from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Query, Session

from pulse_analytics.models.answer import SurveyAnswer

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def round_half_up(value, places: int = 0):
    """Round like SQL ROUND() does (halves away from zero), not banker's rounding."""
    quant = Decimal(1).scaleb(-places)
    rounded = Decimal(str(value)).quantize(quant, rounding=ROUND_HALF_UP)
    return int(rounded) if places == 0 else float(rounded)


def floor_int(value) -> int:
    return int(Decimal(str(value)).to_integral_value(rounding=ROUND_FLOOR))


def percent(part, total) -> int:
    if not total:
        return 0
    return round_half_up(Decimal(int(part or 0)) / Decimal(int(total)) * 100)


def nps_value(promoters, detractors, total) -> Optional[float]:
    """Unrounded %promoters - %detractors; None when there is nothing to score."""
    if not total:
        return None
    total = Decimal(int(total))
    return float(Decimal(int(promoters or 0)) / total * 100 - Decimal(int(detractors or 0)) / total * 100)


def nps_score(promoters, detractors, total) -> Optional[int]:
    value = nps_value(promoters, detractors, total)
    return None if value is None else round_half_up(value)


def promoter_sum(column=SurveyAnswer.score):
    return func.sum(case((column >= 9, 1), else_=0))


def detractor_sum(column=SurveyAnswer.score):
    return func.sum(case((column <= 6, 1), else_=0))


def passive_sum(column=SurveyAnswer.score):
    return func.sum(case((column.between(7, 8), 1), else_=0))


def tenant_answers(db: Session, tenant_id: int, *columns) -> Query:
    query = db.query(*columns) if columns else db.query(SurveyAnswer)
    return query.filter(SurveyAnswer.tenant_id == tenant_id)

