# tests/conftest.py
import json
from datetime import datetime
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pulse_analytics.api.deps.context import get_cache
from pulse_analytics.db.base import Base
from pulse_analytics.db.session import get_db
from pulse_analytics.main import app
from pulse_analytics.models.answer import SurveyAnswer
from pulse_analytics.models.question import (
    BENCHMARK, CUSTOM, NPS, STANDARD, EditableQuestionAnswer, Question, TenantQuestion,
)
from pulse_analytics.models.survey import ANSWERED, SurveyInvite
from pulse_analytics.models.tenant import PARENT, Tenant
from pulse_analytics.reports.cache import MemoryCacheBackend, ResultCache

NOW = datetime(2026, 6, 15, 12, 0, 0)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


class Seed:
    """Small factory for the rows the reports read."""

    def __init__(self, db):
        self.db = db
        self._seq = count(1)

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def tenant(self, client_type_id=1, profile=None, name=None):
        n = next(self._seq)
        return self._save(Tenant(name=name or f"School {n}", client_type_id=client_type_id, profile=profile))

    def question(self, type=NPS, name=None, system_default=True, editable_by_client=False):
        n = next(self._seq)
        return self._save(Question(
            name=name or f"Question {n}",
            type=type,
            system_default=system_default,
            editable_by_client=editable_by_client,
            active=True,
        ))

    def custom_question(self, tenant, type=BENCHMARK, name=None, **labels):
        n = next(self._seq)
        return self._save(TenantQuestion(tenant_id=tenant.id, name=name or f"Custom {n}", type=type, **labels))

    def custom_answer(self, tenant, question, name):
        return self._save(EditableQuestionAnswer(
            tenant_id=tenant.id, question_id=question.id, name=name, custom_answer=True,
        ))

    def invite(self, tenant, module_type=PARENT, status=ANSWERED):
        return self._save(SurveyInvite(tenant_id=tenant.id, module_type=module_type, status=status, created_at=NOW))

    def answer(self, tenant, invite, question, *, score=None, value=None, when=NOW,
               module_type=None, other=None, kind=None):
        if isinstance(value, (list, tuple)):
            value = json.dumps(list(value))
        if kind is None:
            kind = CUSTOM if isinstance(question, TenantQuestion) else STANDARD
        return self._save(SurveyAnswer(
            tenant_id=tenant.id,
            survey_invite_id=invite.id,
            module_type=module_type or invite.module_type,
            questionable_type=kind,
            questionable_id=question.id,
            question_type=question.type,
            value=value,
            score=score,
            other_option_text=other,
            created_at=when,
            updated_at=when,
        ))

    def nps_respondents(self, tenant, question, scores, when=NOW, module_type=PARENT, status=ANSWERED):
        """One invite per score, each answering the NPS question once."""
        invites = []
        for s in scores:
            inv = self.invite(tenant, module_type=module_type, status=status)
            self.answer(tenant, inv, question, score=s, when=when)
            invites.append(inv)
        return invites


@pytest.fixture
def seed(db):
    return Seed(db)


@pytest.fixture
def cache():
    return ResultCache(MemoryCacheBackend())


@pytest.fixture
def client(db, cache):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_cache] = lambda: cache
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
