"""create pipeline tables

Revision ID: 3b7e52c1a9d0
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b7e52c1a9d0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create journeys, visitor_stages, people and person_history."""
    op.create_table(
        "journeys",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_journeys_organization_id"), "journeys", ["organization_id"], unique=False)
    op.create_index(op.f("ix_journeys_created_at"), "journeys", ["created_at"], unique=False)

    op.create_table(
        "visitor_stages",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("journey_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["journey_id"], ["journeys.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_visitor_stages_organization_id"), "visitor_stages", ["organization_id"], unique=False)
    op.create_index(op.f("ix_visitor_stages_journey_id"), "visitor_stages", ["journey_id"], unique=False)

    op.create_table(
        "people",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("journey_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("stage_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["journey_id"], ["journeys.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["stage_id"], ["visitor_stages.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_people_organization_id"), "people", ["organization_id"], unique=False)
    op.create_index(op.f("ix_people_journey_id"), "people", ["journey_id"], unique=False)
    op.create_index(op.f("ix_people_stage_id"), "people", ["stage_id"], unique=False)

    op.create_table(
        "person_history",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("person_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default="{}"),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_person_history_person_id"), "person_history", ["person_id"], unique=False)
    op.create_index(op.f("ix_person_history_organization_id"), "person_history", ["organization_id"], unique=False)
    op.create_index(op.f("ix_person_history_created_at"), "person_history", ["created_at"], unique=False)


def downgrade() -> None:
    """Drop the pipeline tables in dependency order."""
    op.drop_index(op.f("ix_person_history_created_at"), table_name="person_history")
    op.drop_index(op.f("ix_person_history_organization_id"), table_name="person_history")
    op.drop_index(op.f("ix_person_history_person_id"), table_name="person_history")
    op.drop_table("person_history")
    op.drop_index(op.f("ix_people_stage_id"), table_name="people")
    op.drop_index(op.f("ix_people_journey_id"), table_name="people")
    op.drop_index(op.f("ix_people_organization_id"), table_name="people")
    op.drop_table("people")
    op.drop_index(op.f("ix_visitor_stages_journey_id"), table_name="visitor_stages")
    op.drop_index(op.f("ix_visitor_stages_organization_id"), table_name="visitor_stages")
    op.drop_table("visitor_stages")
    op.drop_index(op.f("ix_journeys_created_at"), table_name="journeys")
    op.drop_index(op.f("ix_journeys_organization_id"), table_name="journeys")
    op.drop_table("journeys")
