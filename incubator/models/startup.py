from datetime import datetime, timezone
from typing import Optional, List

from sqlmodel import SQLModel, Field, Relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Startup(SQLModel, table=True):
    __tablename__ = "startups"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    slug: str = Field(index=True, unique=True)
    pitch: Optional[str] = None
    website: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    founders: List["Founder"] = Relationship(
        back_populates="startup",
        sa_relationship_kwargs={"order_by": "Founder.id"},
    )


class Founder(SQLModel, table=True):
    __tablename__ = "founders"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    startup_id: Optional[int] = Field(default=None, foreign_key="startups.id", index=True)

    startup: Optional[Startup] = Relationship(back_populates="founders")


class Faculty(SQLModel, table=True):
    """Evaluators who review and grade timeline events."""
    __tablename__ = "faculty"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
