# incubator/timeline/lineage.py
"""
Improvement lineage: a later event can supersede ("improve") an earlier one.

The link is stored on the improved event (``improved_timeline_event_id``
points at the improver). The column is unique, so an improver supersedes at
most one event, and an event has at most one improver.
"""
from __future__ import annotations

from typing import Iterator, List, Optional

from sqlmodel import Session, select

from incubator.exceptions import AlreadyImproved, ValidationError
from incubator.logging_config import get_logger
from incubator.models.timeline_event import TimelineEvent, TimelineEventOwner
from incubator.timeline.visibility import startup_for

log = get_logger(__name__)


def actor_founder_ids(event: TimelineEvent) -> List[int]:
    """Founders whose timeline the event sits on.

    Founder targets belong to the representative founder alone; team targets
    belong to the whole startup.
    """
    if event.founder_event:
        return [event.founder.id] if event.founder else []
    startup = startup_for(event)
    if startup is None:
        return [event.founder.id]
    return [f.id for f in startup.founders]


class ImprovementCandidates:
    """Events of the same actor created after `event`, newest first.

    Iterating runs the query again, so the sequence can be walked more than
    once. Candidates already improving some other event are not filtered out;
    mark_improved rejects those.
    """

    def __init__(self, session: Session, event: TimelineEvent):
        self.session = session
        self.event = event

    def _statement(self):
        founder_ids = actor_founder_ids(self.event)
        owned = select(TimelineEventOwner.timeline_event_id).where(
            TimelineEventOwner.founder_id.in_(founder_ids)
        )
        return (
            select(TimelineEvent)
            .where(
                TimelineEvent.id.in_(owned),
                TimelineEvent.created_at > self.event.created_at,
                TimelineEvent.id != self.event.id,
            )
            .order_by(TimelineEvent.created_at.desc(), TimelineEvent.id.desc())
        )

    def __iter__(self) -> Iterator[TimelineEvent]:
        yield from self.session.exec(self._statement())

    def __contains__(self, candidate: TimelineEvent) -> bool:
        stmt = self._statement().where(TimelineEvent.id == candidate.id)
        return self.session.exec(stmt).first() is not None


def improvement_candidates(session: Session, event: TimelineEvent) -> ImprovementCandidates:
    return ImprovementCandidates(session, event)


def improved_by(session: Session, improver: TimelineEvent) -> Optional[TimelineEvent]:
    """The earlier event `improver` supersedes, if any."""
    return session.exec(
        select(TimelineEvent).where(TimelineEvent.improved_timeline_event_id == improver.id)
    ).first()


def mark_improved(session: Session, improved: TimelineEvent, improver: TimelineEvent) -> TimelineEvent:
    """Record that `improver` supersedes `improved`."""
    if improved.id == improver.id:
        raise ValidationError("An event can't improve itself", field="improved_timeline_event_id")

    if improver not in ImprovementCandidates(session, improved):
        log.warning("lineage.not_a_candidate", improved_id=improved.id, improver_id=improver.id)
        raise ValidationError(
            f"TimelineEvent#{improver.id} is not a later event by the same founders",
            field="improved_timeline_event_id",
        )

    if improved.improved_timeline_event_id is not None:
        if improved.improved_timeline_event_id == improver.id:
            return improved
        log.error(
            "lineage.already_improved",
            improved_id=improved.id,
            improver_id=improver.id,
            existing_improver_id=improved.improved_timeline_event_id,
        )
        raise AlreadyImproved(
            improved.id,
            improver.id,
            f"TimelineEvent#{improved.id} is already improved by "
            f"TimelineEvent#{improved.improved_timeline_event_id}",
        )

    other = improved_by(session, improver)
    if other is not None:
        log.error(
            "lineage.improver_taken",
            improved_id=improved.id,
            improver_id=improver.id,
            existing_improved_id=other.id,
        )
        raise AlreadyImproved(
            improved.id,
            improver.id,
            f"TimelineEvent#{improver.id} already improves TimelineEvent#{other.id}",
        )

    improved.improved_timeline_event_id = improver.id
    session.add(improved)
    session.commit()
    session.refresh(improved)
    log.info("lineage.marked", improved_id=improved.id, improver_id=improver.id)
    return improved


def clear_improvement_references(session: Session, improver: TimelineEvent) -> int:
    """Nullify the back-reference on whatever `improver` superseded.

    Run before deleting `improver`; the improved event itself is kept.
    """
    cleared = 0
    for improved in session.exec(
        select(TimelineEvent).where(TimelineEvent.improved_timeline_event_id == improver.id)
    ).all():
        improved.improved_timeline_event_id = None
        session.add(improved)
        cleared += 1
    session.flush()
    return cleared
