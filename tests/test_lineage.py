# tests/test_lineage.py
from datetime import datetime, timezone

import pytest

from incubator.exceptions import AlreadyImproved, ValidationError
from incubator.models.timeline_event import TimelineEvent
from incubator.timeline import lineage
from incubator.timeline.service import delete_timeline_event


def test_mark_improved_once_then_already_improved(session, factory):
    founder = factory.founder(factory.startup())
    a = factory.event([founder])
    b = factory.event([founder])
    c = factory.event([founder])

    lineage.mark_improved(session, a, b)
    assert a.improved_timeline_event_id == b.id
    # same pair again is a no-op
    lineage.mark_improved(session, a, b)

    with pytest.raises(AlreadyImproved):
        lineage.mark_improved(session, a, c)
    session.refresh(a)
    assert a.improved_timeline_event_id == b.id


def test_improver_can_only_improve_one_event(session, factory):
    founder = factory.founder(factory.startup())
    a = factory.event([founder])
    d = factory.event([founder])
    b = factory.event([founder])

    lineage.mark_improved(session, a, b)
    with pytest.raises(AlreadyImproved):
        lineage.mark_improved(session, d, b)
    assert lineage.improved_by(session, b).id == a.id


def test_event_cannot_improve_itself(session, factory):
    a = factory.event([factory.founder()])
    with pytest.raises(ValidationError):
        lineage.mark_improved(session, a, a)


def test_deleting_improver_keeps_improved_event(session, factory):
    founder = factory.founder(factory.startup())
    a = factory.event([founder])
    b = factory.event([founder])
    lineage.mark_improved(session, a, b)

    delete_timeline_event(session, b.id)

    session.expire_all()
    assert session.get(TimelineEvent, b.id) is None
    survivor = session.get(TimelineEvent, a.id)
    assert survivor is not None
    assert survivor.improved_timeline_event_id is None


def test_candidates_for_founder_target_newest_first(session, factory):
    startup = factory.startup()
    founder = factory.founder(startup)
    cofounder = factory.founder(startup)
    target = factory.founder_target()

    older = factory.event([founder], target=target, created_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
    a = factory.event([founder], target=target, created_at=datetime(2026, 1, 2, tzinfo=timezone.utc))
    newer = factory.event([founder], target=target, created_at=datetime(2026, 1, 3, tzinfo=timezone.utc))
    newest = factory.event([founder], target=target, created_at=datetime(2026, 1, 4, tzinfo=timezone.utc))
    factory.event([cofounder], target=target, created_at=datetime(2026, 1, 5, tzinfo=timezone.utc))

    candidates = lineage.improvement_candidates(session, a)
    assert [e.id for e in candidates] == [newest.id, newer.id]
    # can be walked again
    assert [e.id for e in candidates] == [newest.id, newer.id]
    assert older.id not in [e.id for e in candidates]


def test_candidates_for_team_target_span_the_startup(session, factory):
    startup = factory.startup()
    founder = factory.founder(startup)
    cofounder = factory.founder(startup)
    outsider = factory.founder(factory.startup())

    a = factory.event([founder], created_at=datetime(2026, 3, 1, tzinfo=timezone.utc))
    by_cofounder = factory.event([cofounder], created_at=datetime(2026, 3, 2, tzinfo=timezone.utc))
    factory.event([outsider], created_at=datetime(2026, 3, 3, tzinfo=timezone.utc))

    assert [e.id for e in lineage.improvement_candidates(session, a)] == [by_cofounder.id]


def test_candidates_include_events_that_already_improve_something(session, factory):
    founder = factory.founder(factory.startup())
    x = factory.event([founder], created_at=datetime(2026, 4, 1, tzinfo=timezone.utc))
    a = factory.event([founder], created_at=datetime(2026, 4, 2, tzinfo=timezone.utc))
    b = factory.event([founder], created_at=datetime(2026, 4, 3, tzinfo=timezone.utc))
    lineage.mark_improved(session, x, b)

    assert [e.id for e in lineage.improvement_candidates(session, a)] == [b.id]
    with pytest.raises(AlreadyImproved):
        lineage.mark_improved(session, a, b)


def test_event_from_another_startup_cannot_be_the_improver(session, factory):
    a = factory.event([factory.founder(factory.startup())])
    foreign = factory.event([factory.founder(factory.startup())])

    with pytest.raises(ValidationError) as exc:
        lineage.mark_improved(session, a, foreign)
    assert exc.value.field == "improved_timeline_event_id"
    session.refresh(a)
    assert a.improved_timeline_event_id is None


def test_older_event_cannot_be_the_improver(session, factory):
    founder = factory.founder(factory.startup())
    older = factory.event([founder])
    a = factory.event([founder])

    with pytest.raises(ValidationError):
        lineage.mark_improved(session, a, older)
    assert lineage.improved_by(session, older) is None


def test_candidate_membership(session, factory):
    founder = factory.founder(factory.startup())
    a = factory.event([founder])
    b = factory.event([founder])
    candidates = lineage.improvement_candidates(session, a)
    assert b in candidates
    assert a not in candidates
