from datetime import date, datetime, timezone
from typing import Optional, List

from sqlalchemy import JSON, Column, event
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import SQLModel, Field, Relationship

from .startup import Faculty, Founder
from .target import EvaluationCriterion, Target

MAX_DESCRIPTION_CHARACTERS = 500

# Bump when the shape of the records stored in TimelineEvent.links changes.
LINKS_SCHEMA_VERSION = 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimelineEventOwner(SQLModel, table=True):
    __tablename__ = "timeline_event_owners"

    # id order is ownership order; the first owner is the representative founder
    id: Optional[int] = Field(default=None, primary_key=True)
    timeline_event_id: int = Field(foreign_key="timeline_events.id", index=True)
    founder_id: int = Field(foreign_key="founders.id", index=True)

    timeline_event: "TimelineEvent" = Relationship(back_populates="owners")
    founder: Founder = Relationship()


class TimelineEventFile(SQLModel, table=True):
    __tablename__ = "timeline_event_files"

    id: Optional[int] = Field(default=None, primary_key=True)
    timeline_event_id: int = Field(foreign_key="timeline_events.id", index=True)
    title: str
    file_key: str
    size: int = 0
    private: bool = False
    created_at: datetime = Field(default_factory=_utcnow)

    timeline_event: "TimelineEvent" = Relationship(back_populates="files")


class TimelineEventGrade(SQLModel, table=True):
    __tablename__ = "timeline_event_grades"

    id: Optional[int] = Field(default=None, primary_key=True)
    timeline_event_id: int = Field(foreign_key="timeline_events.id", index=True)
    evaluation_criterion_id: int = Field(foreign_key="evaluation_criteria.id")
    grade: int

    timeline_event: "TimelineEvent" = Relationship(back_populates="grades")
    evaluation_criterion: EvaluationCriterion = Relationship()


class StartupFeedback(SQLModel, table=True):
    __tablename__ = "startup_feedback"

    id: Optional[int] = Field(default=None, primary_key=True)
    timeline_event_id: int = Field(foreign_key="timeline_events.id", index=True)
    faculty_id: Optional[int] = Field(default=None, foreign_key="faculty.id")
    feedback: str
    created_at: datetime = Field(default_factory=_utcnow)

    timeline_event: "TimelineEvent" = Relationship(back_populates="feedback")


class TimelineEvent(SQLModel, table=True):
    __tablename__ = "timeline_events"

    id: Optional[int] = Field(default=None, primary_key=True)
    target_id: int = Field(foreign_key="targets.id", index=True)
    description: str
    # list of {"url", "private", "title"?} records, see incubator.timeline.links
    links: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    links_version: int = Field(default=LINKS_SCHEMA_VERSION)
    event_on: date = Field(default_factory=date.today)
    evaluator_id: Optional[int] = Field(default=None, foreign_key="faculty.id", index=True)
    score: Optional[float] = None
    passed_at: Optional[datetime] = None
    # Set on the improved (older) event and points at the event that improved it.
    improved_timeline_event_id: Optional[int] = Field(
        default=None, foreign_key="timeline_events.id", unique=True, index=True
    )
    created_at: datetime = Field(default_factory=_utcnow, index=True)

    target: Target = Relationship()
    evaluator: Optional[Faculty] = Relationship()
    owners: List[TimelineEventOwner] = Relationship(
        back_populates="timeline_event",
        sa_relationship_kwargs={"order_by": "TimelineEventOwner.id", "cascade": "all, delete-orphan"},
    )
    files: List[TimelineEventFile] = Relationship(
        back_populates="timeline_event",
        sa_relationship_kwargs={"order_by": "TimelineEventFile.id", "cascade": "all, delete-orphan"},
    )
    grades: List[TimelineEventGrade] = Relationship(
        back_populates="timeline_event",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    feedback: List[StartupFeedback] = Relationship(
        back_populates="timeline_event",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )

    @property
    def founders(self) -> List[Founder]:
        return [o.founder for o in self.owners]

    @property
    def founder(self) -> Optional[Founder]:
        """Representative founder (first owner)."""
        return self.owners[0].founder if self.owners else None

    @property
    def title(self) -> str:
        return self.target.title

    @property
    def founder_event(self) -> bool:
        return self.target.founder_event


# --- links are never null -----------------------------------------------------

@event.listens_for(TimelineEvent, "load")
def _links_on_load(target: TimelineEvent, context) -> None:
    if target.links is None:
        set_committed_value(target, "links", [])


@event.listens_for(TimelineEvent, "before_insert")
@event.listens_for(TimelineEvent, "before_update")
def _links_before_save(mapper, connection, target: TimelineEvent) -> None:
    if target.links is None:
        target.links = []
