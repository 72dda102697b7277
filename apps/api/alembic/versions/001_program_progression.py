"""program progression schema

Profiles, coaching relationships, programs with their week/day schedule,
program assignments (progression cursor) and day completions.

Revision ID: progression_001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'progression_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "profile",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True, unique=True),
        sa.Column("role", sa.Text(), nullable=False, server_default="client"),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.CheckConstraint("role IN ('client', 'coach', 'admin')", name="ck_profile_role"),
    )

    op.create_table(
        "coach_client",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("coach_id", sa.Uuid(), sa.ForeignKey("profile.id"), nullable=False),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("profile.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("coach_id", "client_id", name="uq_coach_client_pair"),
    )
    op.create_index("ix_coach_client_client_id", "coach_client", ["client_id"])

    op.create_table(
        "program",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("coach_id", sa.Uuid(), sa.ForeignKey("profile.id"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_program_coach_id", "program", ["coach_id"])

    op.create_table(
        "program_schedule",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("program_id", sa.Uuid(), sa.ForeignKey("program.id", ondelete="CASCADE"), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("template_id", sa.Text(), nullable=True),
        sa.UniqueConstraint("program_id", "week_number", "day_of_week", name="uq_program_schedule_day"),
    )
    op.create_index("ix_program_schedule_program_id", "program_schedule", ["program_id"])

    op.create_table(
        "program_assignment",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("profile.id"), nullable=False),
        sa.Column("coach_id", sa.Uuid(), sa.ForeignKey("profile.id"), nullable=False),
        sa.Column("program_id", sa.Uuid(), sa.ForeignKey("program.id"), nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default="active"),
        sa.Column("current_week_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_day_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("status IN ('active', 'completed', 'cancelled')", name="ck_program_assignment_status"),
        sa.CheckConstraint(
            "current_week_index >= 0 AND current_day_index >= 0",
            name="ck_program_assignment_indices",
        ),
    )
    op.create_index("ix_program_assignment_client_status", "program_assignment", ["client_id", "status"])
    op.create_index(
        "uq_program_assignment_one_active",
        "program_assignment",
        ["client_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "program_day_completion",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "program_assignment_id",
            sa.Uuid(),
            sa.ForeignKey("program_assignment.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("week_index", sa.Integer(), nullable=False),
        sa.Column("day_index", sa.Integer(), nullable=False),
        sa.Column("completed_by", sa.Uuid(), sa.ForeignKey("profile.id"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            "program_assignment_id", "week_index", "day_index",
            name="uq_program_day_completion_day",
        ),
    )


def downgrade() -> None:
    op.drop_table("program_day_completion")
    op.drop_index("uq_program_assignment_one_active", table_name="program_assignment")
    op.drop_index("ix_program_assignment_client_status", table_name="program_assignment")
    op.drop_table("program_assignment")
    op.drop_index("ix_program_schedule_program_id", table_name="program_schedule")
    op.drop_table("program_schedule")
    op.drop_index("ix_program_coach_id", table_name="program")
    op.drop_table("program")
    op.drop_index("ix_coach_client_client_id", table_name="coach_client")
    op.drop_table("coach_client")
    op.drop_table("profile")
