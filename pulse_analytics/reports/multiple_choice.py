# pulse_analytics/reports/multiple_choice.py
"""Choice questions (filtering, multiple choice, rank order, rating grid): option counts."""
from __future__ import annotations

import json
from collections import Counter
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session

from pulse_analytics.models.answer import SurveyAnswer
from pulse_analytics.models.question import CHOICE_TYPES, CUSTOM, TenantQuestion
from pulse_analytics.models.tenant import ALL, PULSE_MODULES
from pulse_analytics.reports import periods as P
from pulse_analytics.reports.base import tenant_answers
from pulse_analytics.reports.filters import (
    NormalizedFilters, QuestionRef, apply_active_survey, apply_filters,
    apply_module_scope, apply_period, latest_answers, normalize_filters,
)
from pulse_analytics.reports.likert import question_names


def parse_choices(value: Optional[str]) -> list[str]:
    """Choice answers are stored as JSON array text; plain text counts as one option."""
    if value is None or value == "":
        return []
    try:
        parsed = json.loads(value)
    except ValueError:
        return [value]
    if isinstance(parsed, list):
        return [str(v) for v in parsed if v not in (None, "")]
    return [str(parsed)]


class MultipleChoiceAnswersReport:
    def __init__(
        self,
        db: Session,
        tenant_id: int,
        period: str = P.LAST_365_DAYS,
        custom_date: str = "",
        filters: Optional[NormalizedFilters] = None,
        active_survey: bool = True,
        module_type: str = ALL,
        active_modules: Sequence[str] = PULSE_MODULES,
        question_ref: Optional[QuestionRef | str] = None,
        now: Optional[datetime] = None,
    ):
        self.db = db
        self.tenant_id = tenant_id
        self.period = period
        self.custom_date = custom_date or ""
        self.filters = normalize_filters(filters)
        self.active_survey = active_survey
        self.module_type = module_type
        self.active_modules = list(active_modules)
        self.question_ref = QuestionRef.parse(question_ref) if question_ref is not None else None
        self.now = now

    def _rows(self):
        window = P.resolve_period(self.period, self.custom_date, now=self.now)
        query = tenant_answers(
            self.db,
            self.tenant_id,
            SurveyAnswer.questionable_type,
            SurveyAnswer.questionable_id,
            SurveyAnswer.module_type,
            SurveyAnswer.question_type,
            SurveyAnswer.value,
            SurveyAnswer.other_option_text,
            SurveyAnswer.survey_invite_id,
        ).filter(
            SurveyAnswer.question_type.in_(CHOICE_TYPES),
            SurveyAnswer.value.is_not(None),
            SurveyAnswer.value != "[]",
        )
        if self.question_ref is not None:
            query = query.filter(
                SurveyAnswer.questionable_type == self.question_ref.kind,
                SurveyAnswer.questionable_id == self.question_ref.id,
            )
        query = apply_module_scope(query, self.module_type, self.active_modules)
        query = apply_period(query, window.start, window.end)
        if self.active_survey:
            query = apply_active_survey(query, self.tenant_id)
        query = apply_filters(query, self.filters)
        return latest_answers(query).order_by(SurveyAnswer.id).all()

    def _custom_labels(self, refs) -> dict[int, TenantQuestion]:
        ids = [r.id for r in refs if r.kind == CUSTOM]
        if not ids:
            return {}
        rows = self.db.query(TenantQuestion).filter(
            TenantQuestion.id.in_(ids), TenantQuestion.tenant_id == self.tenant_id
        )
        return {q.id: q for q in rows}

    def run(self) -> list[dict[str, Any]]:
        groups: dict[tuple, dict[str, Any]] = {}
        for r in self._rows():
            key = (r.questionable_type, r.questionable_id, r.module_type)
            group = groups.get(key)
            if group is None:
                group = groups[key] = {
                    "ref": QuestionRef(r.questionable_type, r.questionable_id),
                    "question_type": r.question_type,
                    "module_type": r.module_type,
                    "options": Counter(),
                    "other": [],
                    "invites": set(),
                }
            group["options"].update(parse_choices(r.value))
            if r.other_option_text:
                group["other"].append(r.other_option_text)
            group["invites"].add(r.survey_invite_id)

        refs = {g["ref"] for g in groups.values()}
        names = question_names(self.db, self.tenant_id, refs)
        custom = self._custom_labels(refs)

        out = []
        for key in sorted(groups):
            g = groups[key]
            ref = g["ref"]
            labels = custom.get(ref.id) if ref.is_custom else None
            out.append({
                "question": str(ref),
                "questionable_type": ref.kind,
                "questionable_id": ref.id,
                "question_name": names.get(ref),
                "question_type": g["question_type"],
                "module_type": g["module_type"],
                "nickname": labels.nickname if labels else None,
                "label_start": labels.label_start if labels else None,
                "label_end": labels.label_end if labels else None,
                "options": dict(sorted(g["options"].items())),
                "other_option_text": g["other"],
                "answers_count": len(g["invites"]),
            })
        return out
