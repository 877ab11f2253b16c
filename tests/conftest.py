# tests/conftest.py
import os
import tempfile
from datetime import datetime, timedelta, timezone

# config reads DATABASE_URL at import time, so point it at a temp DB before
# anything from incubator is imported
_TMP = tempfile.mkdtemp(prefix="incubator-tests-")
DB_URL = f"sqlite:///{_TMP}/app.db"
os.environ["DATABASE_URL"] = DB_URL
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
from alembic.config import Config
from alembic import command
from sqlalchemy import delete, update

from incubator.models.startup import Faculty, Founder, Startup
from incubator.models.target import ROLE_FOUNDER, ROLE_TEAM, EvaluationCriterion, Target, TargetEvaluationCriterion
from incubator.models.timeline_event import (
    StartupFeedback,
    TimelineEvent,
    TimelineEventFile,
    TimelineEventGrade,
    TimelineEventOwner,
)


@pytest.fixture(scope="session", autouse=True)
def migrate():
    # Run alembic migrations against the temp DB
    cfg = Config("alembic.ini")
    cfg.set_main_option("sqlalchemy.url", DB_URL)
    command.upgrade(cfg, "head")
    yield


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setenv("UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def session():
    # DB session for DB-level tests
    from incubator.db.session import get_session
    with get_session() as s:
        yield s


@pytest.fixture(scope="session")
def client(migrate):
    from fastapi.testclient import TestClient
    from incubator.main import api
    return TestClient(api)


@pytest.fixture(autouse=True, scope="function")
def _clean_db(session):
    """
    Ensure each test starts with empty tables. Order matters: child tables first.
    """
    session.exec(delete(TimelineEventOwner))
    session.exec(delete(TimelineEventFile))
    session.exec(delete(TimelineEventGrade))
    session.exec(delete(StartupFeedback))
    session.exec(update(TimelineEvent).values(improved_timeline_event_id=None))
    session.exec(delete(TimelineEvent))

    session.exec(delete(TargetEvaluationCriterion))
    session.exec(delete(EvaluationCriterion))
    session.exec(delete(Target))
    session.exec(delete(Founder))
    session.exec(delete(Startup))
    session.exec(delete(Faculty))

    session.commit()


class Factory:
    """Builds committed rows for tests."""

    def __init__(self, session):
        self.s = session
        self._n = 0
        self._clock = datetime(2026, 1, 1, 9, 0, 0, tzinfo=timezone.utc)

    def _save(self, obj):
        self.s.add(obj)
        self.s.commit()
        self.s.refresh(obj)
        return obj

    def _next(self) -> int:
        self._n += 1
        return self._n

    def startup(self, name=None):
        n = self._next()
        name = name or f"Startup {n}"
        return self._save(Startup(name=name, slug=f"startup-{n}"))

    def founder(self, startup=None, name=None):
        n = self._next()
        return self._save(
            Founder(name=name or f"Founder {n}", email=f"founder{n}@example.com", startup_id=startup.id if startup else None)
        )

    def faculty(self):
        n = self._next()
        return self._save(Faculty(name=f"Faculty {n}", email=f"faculty{n}@example.com"))

    def target(self, criteria=0, role=ROLE_TEAM, title="Build a Landing Page"):
        target = self._save(Target(title=title, role=role))
        for i in range(criteria):
            criterion = self._save(EvaluationCriterion(name=f"Criterion {i + 1}"))
            self.s.add(TargetEvaluationCriterion(target_id=target.id, evaluation_criterion_id=criterion.id))
        self.s.commit()
        self.s.refresh(target)
        return target

    def founder_target(self, criteria=0):
        return self.target(criteria=criteria, role=ROLE_FOUNDER, title="Write a Founder Bio")

    def event(self, founders, target=None, description="Shipped the thing", links=None, created_at=None):
        target = target or self.target()
        if created_at is None:
            self._clock += timedelta(minutes=1)
            created_at = self._clock
        event = TimelineEvent(
            target_id=target.id,
            description=description,
            links=links if links is not None else [],
            created_at=created_at,
        )
        event.owners = [TimelineEventOwner(founder_id=f.id) for f in founders]
        return self._save(event)

    def file(self, event, title="deck.pdf", private=False, file_key="missing.pdf"):
        return self._save(TimelineEventFile(timeline_event_id=event.id, title=title, file_key=file_key, private=private))


@pytest.fixture
def factory(session):
    return Factory(session)
