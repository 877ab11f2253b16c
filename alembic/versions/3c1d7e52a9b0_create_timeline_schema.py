"""create startups, targets and timeline events

Revision ID: 3c1d7e52a9b0
Revises:
Create Date: 2026-10-19 09:40:12.118203
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1d7e52a9b0"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "startups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("pitch", sa.String(), nullable=True),
        sa.Column("website", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    with op.batch_alter_table("startups") as batch_op:
        batch_op.create_index(batch_op.f("ix_startups_name"), ["name"], unique=False)
        batch_op.create_index(batch_op.f("ix_startups_slug"), ["slug"], unique=True)

    op.create_table(
        "founders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("startup_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["startup_id"], ["startups.id"]),
    )
    with op.batch_alter_table("founders") as batch_op:
        batch_op.create_index(batch_op.f("ix_founders_email"), ["email"], unique=True)
        batch_op.create_index(batch_op.f("ix_founders_startup_id"), ["startup_id"], unique=False)

    op.create_table(
        "faculty",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
    )
    with op.batch_alter_table("faculty") as batch_op:
        batch_op.create_index(batch_op.f("ix_faculty_email"), ["email"], unique=True)

    op.create_table(
        "targets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
    )

    op.create_table(
        "evaluation_criteria",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
    )

    op.create_table(
        "target_evaluation_criteria",
        sa.Column("target_id", sa.Integer(), nullable=False),
        sa.Column("evaluation_criterion_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["target_id"], ["targets.id"]),
        sa.ForeignKeyConstraint(["evaluation_criterion_id"], ["evaluation_criteria.id"]),
        sa.PrimaryKeyConstraint("target_id", "evaluation_criterion_id"),
    )

    op.create_table(
        "timeline_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("target_id", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("links", sa.JSON(), nullable=False),
        sa.Column("links_version", sa.Integer(), nullable=False),
        sa.Column("event_on", sa.Date(), nullable=False),
        sa.Column("evaluator_id", sa.Integer(), nullable=True),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("passed_at", sa.DateTime(), nullable=True),
        sa.Column("improved_timeline_event_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["target_id"], ["targets.id"]),
        sa.ForeignKeyConstraint(["evaluator_id"], ["faculty.id"]),
        sa.ForeignKeyConstraint(["improved_timeline_event_id"], ["timeline_events.id"]),
    )
    with op.batch_alter_table("timeline_events") as batch_op:
        batch_op.create_index(batch_op.f("ix_timeline_events_target_id"), ["target_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_timeline_events_evaluator_id"), ["evaluator_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_timeline_events_created_at"), ["created_at"], unique=False)
        # one improver per improved event, one improved event per improver
        batch_op.create_index(
            batch_op.f("ix_timeline_events_improved_timeline_event_id"),
            ["improved_timeline_event_id"],
            unique=True,
        )

    op.create_table(
        "timeline_event_owners",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("timeline_event_id", sa.Integer(), nullable=False),
        sa.Column("founder_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["timeline_event_id"], ["timeline_events.id"]),
        sa.ForeignKeyConstraint(["founder_id"], ["founders.id"]),
    )
    with op.batch_alter_table("timeline_event_owners") as batch_op:
        batch_op.create_index(
            batch_op.f("ix_timeline_event_owners_timeline_event_id"), ["timeline_event_id"], unique=False
        )
        batch_op.create_index(batch_op.f("ix_timeline_event_owners_founder_id"), ["founder_id"], unique=False)

    op.create_table(
        "timeline_event_files",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("timeline_event_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("file_key", sa.String(), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("private", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["timeline_event_id"], ["timeline_events.id"]),
    )
    with op.batch_alter_table("timeline_event_files") as batch_op:
        batch_op.create_index(
            batch_op.f("ix_timeline_event_files_timeline_event_id"), ["timeline_event_id"], unique=False
        )

    op.create_table(
        "timeline_event_grades",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("timeline_event_id", sa.Integer(), nullable=False),
        sa.Column("evaluation_criterion_id", sa.Integer(), nullable=False),
        sa.Column("grade", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["timeline_event_id"], ["timeline_events.id"]),
        sa.ForeignKeyConstraint(["evaluation_criterion_id"], ["evaluation_criteria.id"]),
    )
    with op.batch_alter_table("timeline_event_grades") as batch_op:
        batch_op.create_index(
            batch_op.f("ix_timeline_event_grades_timeline_event_id"), ["timeline_event_id"], unique=False
        )

    op.create_table(
        "startup_feedback",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("timeline_event_id", sa.Integer(), nullable=False),
        sa.Column("faculty_id", sa.Integer(), nullable=True),
        sa.Column("feedback", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["timeline_event_id"], ["timeline_events.id"]),
        sa.ForeignKeyConstraint(["faculty_id"], ["faculty.id"]),
    )
    with op.batch_alter_table("startup_feedback") as batch_op:
        batch_op.create_index(
            batch_op.f("ix_startup_feedback_timeline_event_id"), ["timeline_event_id"], unique=False
        )


def downgrade() -> None:
    op.drop_table("startup_feedback")
    op.drop_table("timeline_event_grades")
    op.drop_table("timeline_event_files")
    op.drop_table("timeline_event_owners")
    op.drop_table("timeline_events")
    op.drop_table("target_evaluation_criteria")
    op.drop_table("evaluation_criteria")
    op.drop_table("targets")
    op.drop_table("faculty")
    op.drop_table("founders")
    op.drop_table("startups")
