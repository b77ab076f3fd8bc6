# pulse_analytics/reports/filters.py
"""
Dashboard filter state and the query predicates every report applies.

Raw filter state comes from the dashboard as a plain mapping:

    {
        "standard:12": {"0": "Grade 5", "1": "Grade 6"},   # accepted answers
        "custom:7": ["Yes"],
        "custom_nps_filter": {"nps": ["promoter"]},         # reserved
        "survey_progress": ["answered"],                    # reserved
    }

`normalize_filters` turns it into a hashable `NormalizedFilters`; applying it
twice (through `as_raw()`) gives the same value.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from sqlalchemy import and_, exists, false, or_
from sqlalchemy.orm import Query, aliased

from pulse_analytics.core.errors import UnresolvableQuestionReference
from pulse_analytics.models.answer import SurveyAnswer
from pulse_analytics.models.question import (
    CUSTOM, FILTERING, MULTIPLE_CHOICE, NPS, STANDARD, Question,
)
from pulse_analytics.models.survey import (
    ANSWERED, CYCLE_ACTIVE, CYCLE_INACTIVE, DEFAULT_PROGRESS, PENDING, SEND,
    QuestionSurvey, SurveyCycle, SurveyInvite,
)
from pulse_analytics.models.tenant import ALL, ALL_PULSE, PULSE_MODULES

CUSTOM_NPS_KEY = "custom_nps_filter"
SURVEY_PROGRESS_KEY = "survey_progress"

PROMOTER = "promoter"
PASSIVE = "passive"
DETRACTOR = "detractor"
NPS_CATEGORIES = (DETRACTOR, PASSIVE, PROMOTER)

PROGRESS_STATUSES = (ANSWERED, PENDING, SEND)


@dataclass(frozen=True, order=True)
class QuestionRef:
    """Standard (fleet) or custom (tenant) question, written `standard:12`."""
    kind: str
    id: int

    @classmethod
    def parse(cls, raw: Any) -> "QuestionRef":
        if isinstance(raw, QuestionRef):
            return raw
        kind, sep, ident = str(raw).strip().partition(":")
        kind = kind.strip().lower()
        if not sep or kind not in (STANDARD, CUSTOM):
            raise UnresolvableQuestionReference(f"Not a question reference: {raw!r}", field="question")
        try:
            return cls(kind, int(ident))
        except ValueError:
            raise UnresolvableQuestionReference(f"Not a question reference: {raw!r}", field="question") from None

    @property
    def is_custom(self) -> bool:
        return self.kind == CUSTOM

    def __str__(self) -> str:
        return f"{self.kind}:{self.id}"


@dataclass(frozen=True)
class NormalizedFilters:
    filters: tuple[tuple[QuestionRef, tuple[str, ...]], ...] = ()
    custom_nps_filter: tuple[str, ...] = ()
    is_custom_nps_filter: bool = False
    survey_progress_filter: tuple[str, ...] = field(default=DEFAULT_PROGRESS)

    def as_raw(self) -> dict[str, Any]:
        raw: dict[str, Any] = {str(ref): list(values) for ref, values in self.filters}
        if self.custom_nps_filter:
            raw[CUSTOM_NPS_KEY] = {NPS: list(self.custom_nps_filter)}
        raw[SURVEY_PROGRESS_KEY] = list(self.survey_progress_filter)
        return raw

    def key_payload(self) -> dict[str, Any]:
        """Order independent description used for cache keys."""
        return {
            "filters": {str(ref): list(values) for ref, values in self.filters},
            "nps": list(self.custom_nps_filter),
            "progress": list(self.survey_progress_filter),
        }


def _leaves(value: Any) -> Iterable[Any]:
    if isinstance(value, Mapping):
        for v in value.values():
            yield from _leaves(v)
    elif isinstance(value, (list, tuple, set)):
        for v in value:
            yield from _leaves(v)
    elif value is not None and value != "":
        yield value


def _accepted_values(value: Any) -> tuple[str, ...]:
    return tuple(sorted({str(v) for v in _leaves(value)}))


def _nps_categories(value: Any) -> tuple[str, ...]:
    # a sub-map keeps only its last entry
    if isinstance(value, Mapping):
        value = list(value.values())[-1] if value else ()
    return tuple(sorted({str(v) for v in _leaves(value)} & set(NPS_CATEGORIES)))


def _progress(value: Any) -> tuple[str, ...]:
    if isinstance(value, Mapping):
        value = [k for k, v in value.items() if v]
    statuses = {str(v) for v in _leaves(value)} & set(PROGRESS_STATUSES)
    return tuple(sorted(statuses)) or DEFAULT_PROGRESS


def normalize_filters(raw: Optional[Mapping[str, Any]] | NormalizedFilters = None) -> NormalizedFilters:
    if isinstance(raw, NormalizedFilters):
        return raw

    general = dict(raw or {})
    if not general:
        return NormalizedFilters()

    nps: tuple[str, ...] = ()
    if CUSTOM_NPS_KEY in general:
        nps = _nps_categories(general.pop(CUSTOM_NPS_KEY))

    progress = _progress(general.pop(SURVEY_PROGRESS_KEY, None))

    merged: dict[QuestionRef, set[str]] = {}
    for key, value in general.items():
        ref = QuestionRef.parse(key)
        accepted = _accepted_values(value)
        if accepted:
            merged.setdefault(ref, set()).update(accepted)

    filters = tuple((ref, tuple(sorted(merged[ref]))) for ref in sorted(merged))
    return NormalizedFilters(
        filters=filters,
        custom_nps_filter=nps,
        is_custom_nps_filter=bool(nps),
        survey_progress_filter=progress,
    )


# ---------------- module scope ----------------

def resolve_modules(module_type: str, active_modules: Sequence[str]) -> list[str]:
    """`all` = every active module, `pulse` = active pulse modules, else the module itself."""
    if module_type == ALL:
        return list(active_modules)
    if module_type == ALL_PULSE:
        return [m for m in active_modules if m in PULSE_MODULES]
    return [module_type]


# ---------------- query predicates ----------------

def nps_category_condition(score_column, categories: Sequence[str]):
    conditions = []
    if PROMOTER in categories:
        conditions.append(score_column >= 9)
    if PASSIVE in categories:
        conditions.append(score_column.between(7, 8))
    if DETRACTOR in categories:
        conditions.append(score_column <= 6)
    return or_(*conditions) if conditions else false()


def _like_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _answer_matches(column, value: str):
    """JSON array answers hold the value as a quoted element; plain text answers are the value."""
    return or_(
        column == value,
        column.like(f'%"{_like_escape(value)}"%', escape="\\"),
    )


def apply_answer_filters(query: Query, filters: NormalizedFilters) -> Query:
    """Respondent answered every filtered question with one of its accepted values."""
    for ref, values in filters.filters:
        sub = aliased(SurveyAnswer)
        query = query.filter(
            exists().where(
                sub.survey_invite_id == SurveyAnswer.survey_invite_id,
                sub.questionable_type == ref.kind,
                sub.questionable_id == ref.id,
                sub.question_type.in_((FILTERING, MULTIPLE_CHOICE)),
                sub.value.is_not(None),
                or_(*[_answer_matches(sub.value, v) for v in values]),
            )
        )
    return query


def apply_nps_category_filter(query: Query, categories: Sequence[str]) -> Query:
    """Respondent's NPS answer falls in one of the chosen categories."""
    if not categories:
        return query
    sub = aliased(SurveyAnswer)
    return query.filter(
        exists().where(
            sub.survey_invite_id == SurveyAnswer.survey_invite_id,
            sub.questionable_type == STANDARD,
            sub.question_type == NPS,
            sub.score.is_not(None),
            nps_category_condition(sub.score, categories),
        )
    )


def apply_survey_progress(query: Query, statuses: Sequence[str]) -> Query:
    return query.filter(
        exists().where(
            SurveyInvite.id == SurveyAnswer.survey_invite_id,
            SurveyInvite.status.in_(list(statuses)),
        )
    )


def apply_active_survey(query: Query, tenant_id: int) -> Query:
    """Question sits on a live cycle of the tenant, or is a default active standard question."""
    on_cycle = exists().where(
        QuestionSurvey.survey_cycle_id == SurveyCycle.id,
        SurveyCycle.tenant_id == tenant_id,
        SurveyCycle.status.in_((CYCLE_ACTIVE, CYCLE_INACTIVE)),
        QuestionSurvey.module_type == SurveyAnswer.module_type,
        QuestionSurvey.questionable_type == SurveyAnswer.questionable_type,
        QuestionSurvey.questionable_id == SurveyAnswer.questionable_id,
    )
    system_default = and_(
        SurveyAnswer.questionable_type == STANDARD,
        exists().where(
            Question.id == SurveyAnswer.questionable_id,
            Question.system_default.is_(True),
            Question.active.is_(True),
        ),
    )
    return query.filter(or_(on_cycle, system_default))


def apply_module_scope(query: Query, module_type: str, active_modules: Sequence[str]) -> Query:
    return query.filter(SurveyAnswer.module_type.in_(resolve_modules(module_type, active_modules)))


def apply_period(query: Query, start, end) -> Query:
    if start is not None:
        query = query.filter(SurveyAnswer.updated_at >= start)
    if end is not None:
        query = query.filter(SurveyAnswer.updated_at <= end)
    return query


def latest_answers(query: Query) -> Query:
    """One answer per respondent-survey and question: the most recently updated."""
    newer = aliased(SurveyAnswer)
    return query.filter(
        ~exists().where(
            newer.survey_invite_id == SurveyAnswer.survey_invite_id,
            newer.questionable_type == SurveyAnswer.questionable_type,
            newer.questionable_id == SurveyAnswer.questionable_id,
            or_(
                newer.updated_at > SurveyAnswer.updated_at,
                and_(newer.updated_at == SurveyAnswer.updated_at, newer.id > SurveyAnswer.id),
            ),
        )
    )


def apply_filters(query: Query, filters: NormalizedFilters, *, answers: bool = True, nps: bool = True) -> Query:
    """Answer filters, NPS categories and survey progress, in that order."""
    if answers:
        query = apply_answer_filters(query, filters)
    if nps and filters.is_custom_nps_filter:
        query = apply_nps_category_filter(query, filters.custom_nps_filter)
    return apply_survey_progress(query, filters.survey_progress_filter)
