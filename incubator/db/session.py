# incubator/db/session.py
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlmodel import Session, SQLModel, create_engine

from incubator import config

# SQLite needs check_same_thread=False for FastAPI dev
connect_args = {"check_same_thread": False} if config.DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(
    config.DATABASE_URL,
    echo=config.SQL_ECHO,
    connect_args=connect_args,
)


@contextmanager
def get_session() -> Iterator[Session]:
    with Session(engine) as s:
        yield s


def create_all() -> None:
    """Create tables if they don't exist (for dev). In production, use Alembic."""
    from incubator.models import startup, target, timeline_event  # noqa: F401
    SQLModel.metadata.create_all(engine)
