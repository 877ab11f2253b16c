# incubator/timeline/review.py
"""
Review state of a timeline event.

There is no state column. Every label is computed from stored fields:

* auto-verifiable: the event's target has no evaluation criteria
* pending review:  not auto-verifiable and no evaluator yet
* evaluated:       an evaluator is assigned (pass or fail)
* passed:          passed_at is set
* reviewed:        at least one grade row exists

Evaluators move an event forward with record_evaluation. passed_at is only
ever cleared through revoke_pass, which writes an audit log entry.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from sqlalchemy import exists
from sqlmodel import Session, select

from incubator.exceptions import RecordNotFound, ScoreOutOfRange, ValidationError
from incubator.logging_config import get_logger
from incubator.models.startup import Faculty
from incubator.models.target import TargetEvaluationCriterion
from incubator.models.timeline_event import TimelineEvent, TimelineEventGrade

log = get_logger(__name__)

GRADE_LABELS = {1: "good", 2: "great", 3: "wow"}


def is_auto_verifiable(event: TimelineEvent) -> bool:
    return len(event.target.evaluation_criteria) == 0


def is_pending_review(event: TimelineEvent) -> bool:
    return not is_auto_verifiable(event) and event.evaluator_id is None


def is_evaluated(event: TimelineEvent) -> bool:
    return event.evaluator_id is not None


def is_passed(event: TimelineEvent) -> bool:
    return event.passed_at is not None


def is_reviewed(event: TimelineEvent) -> bool:
    return len(event.grades) > 0


def overall_grade(score: Optional[float]) -> Optional[str]:
    """Map a score to its label; scores are floored first (2.9 -> great)."""
    if score is None:
        return None
    label = GRADE_LABELS.get(math.floor(score))
    if label is None:
        log.error("review.score_out_of_range", score=score)
        raise ScoreOutOfRange(score)
    return label


@dataclass(frozen=True)
class ReviewState:
    auto_verifiable: bool
    pending_review: bool
    evaluated: bool
    passed: bool
    reviewed: bool
    overall_grade: Optional[str]


def review_state(event: TimelineEvent) -> ReviewState:
    return ReviewState(
        auto_verifiable=is_auto_verifiable(event),
        pending_review=is_pending_review(event),
        evaluated=is_evaluated(event),
        passed=is_passed(event),
        reviewed=is_reviewed(event),
        overall_grade=overall_grade(event.score),
    )


# --- queries -------------------------------------------------------------------

def _has_criteria():
    return exists().where(TargetEvaluationCriterion.target_id == TimelineEvent.target_id)


def pending_review_events(session: Session) -> list[TimelineEvent]:
    stmt = (
        select(TimelineEvent)
        .where(_has_criteria(), TimelineEvent.evaluator_id.is_(None))
        .order_by(TimelineEvent.created_at)
    )
    return list(session.exec(stmt).all())


def auto_verified_events(session: Session) -> list[TimelineEvent]:
    stmt = select(TimelineEvent).where(~_has_criteria()).order_by(TimelineEvent.created_at)
    return list(session.exec(stmt).all())


def passed_events(session: Session) -> list[TimelineEvent]:
    stmt = select(TimelineEvent).where(TimelineEvent.passed_at.is_not(None)).order_by(TimelineEvent.passed_at)
    return list(session.exec(stmt).all())


# --- evaluator actions ---------------------------------------------------------

@dataclass(frozen=True)
class EvaluationNotice:
    """What a notification sender needs after an evaluation."""
    timeline_event_id: int
    passed: bool
    overall_grade: Optional[str]
    founder_ids: list[int]


def record_evaluation(
    session: Session,
    event: TimelineEvent,
    faculty: Faculty,
    grades: Optional[Mapping[int, int]] = None,
    passed: bool = False,
    now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> EvaluationNotice:
    """Grade an event: set evaluator, per-criterion grades, score and passed_at.

    passed=False on an already passed event leaves passed_at alone; use
    revoke_pass to undo a pass.
    """
    grades = dict(grades or {})
    criterion_ids = {c.id for c in event.target.evaluation_criteria}
    for criterion_id, grade in grades.items():
        if criterion_id not in criterion_ids:
            raise RecordNotFound("EvaluationCriterion", criterion_id)
        # validates the grade maps to a label before anything is written
        overall_grade(grade)

    for existing in list(event.grades):
        session.delete(existing)
    for criterion_id, grade in grades.items():
        session.add(
            TimelineEventGrade(
                timeline_event_id=event.id,
                evaluation_criterion_id=criterion_id,
                grade=grade,
            )
        )

    event.evaluator_id = faculty.id
    if grades:
        event.score = sum(grades.values()) / len(grades)
    if passed and event.passed_at is None:
        event.passed_at = now()
    elif not passed and event.passed_at is not None:
        log.warning(
            "evaluation.pass_kept",
            timeline_event_id=event.id,
            faculty_id=faculty.id,
        )

    session.add(event)
    session.commit()
    session.refresh(event)

    log.info(
        "evaluation.recorded",
        timeline_event_id=event.id,
        faculty_id=faculty.id,
        score=event.score,
        passed=is_passed(event),
    )
    return EvaluationNotice(
        timeline_event_id=event.id,
        passed=is_passed(event),
        overall_grade=overall_grade(event.score),
        founder_ids=[f.id for f in event.founders],
    )


def revoke_pass(session: Session, event: TimelineEvent, actor: Faculty, reason: str) -> None:
    """Clear passed_at. The only supported way to un-pass an event."""
    if not reason or not reason.strip():
        raise ValidationError("A reason is required to revoke a pass", field="reason")
    previous = event.passed_at
    event.passed_at = None
    session.add(event)
    session.commit()
    log.warning(
        "evaluation.pass_revoked",
        timeline_event_id=event.id,
        faculty_id=actor.id,
        previously_passed_at=previous.isoformat() if previous else None,
        reason=reason.strip(),
    )
