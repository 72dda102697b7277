from sqlalchemy import Column, Integer, Boolean, CheckConstraint, DateTime, ForeignKey, Text, Index, UniqueConstraint, Uuid, text
from sqlalchemy.sql import func
from core.database import Base
import uuid


class Profile(Base):
    """
    An authenticated person: coach, client or admin.

    The bearer token's `sub` claim is a profile id.
    """
    __tablename__ = "profile"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    email = Column(Text, unique=True, nullable=True)
    role = Column(Text, default="client", nullable=False)  # 'client', 'coach', 'admin'
    display_name = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("role IN ('client', 'coach', 'admin')", name="ck_profile_role"),
    )


class CoachClient(Base):
    """Coaching relationship. A coach may only act on clients linked here."""
    __tablename__ = "coach_client"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    coach_id = Column(Uuid, ForeignKey("profile.id"), nullable=False)
    client_id = Column(Uuid, ForeignKey("profile.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("coach_id", "client_id", name="uq_coach_client_pair"),
        Index("ix_coach_client_client_id", "client_id"),
    )


class Program(Base):
    """A reusable multi-week program authored by a coach."""
    __tablename__ = "program"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    coach_id = Column(Uuid, ForeignKey("profile.id"), nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_program_coach_id", "coach_id"),
    )


class ProgramSchedule(Base):
    """
    One training day of a program.

    `week_number` and `day_of_week` are the coach-facing values and may have
    gaps (weeks 1, 3, 5 or days 1, 3, 5). Progress never stores them; it
    stores 0-based indices into the sorted distinct values instead.
    """
    __tablename__ = "program_schedule"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    program_id = Column(Uuid, ForeignKey("program.id", ondelete="CASCADE"), nullable=False)
    week_number = Column(Integer, nullable=False)
    day_of_week = Column(Integer, nullable=False)
    template_id = Column(Text, nullable=True)  # workout template shown for this day

    __table_args__ = (
        UniqueConstraint("program_id", "week_number", "day_of_week", name="uq_program_schedule_day"),
        Index("ix_program_schedule_program_id", "program_id"),
    )


class ProgramAssignment(Base):
    """
    A program instance assigned to one client by one coach.

    Holds the progression cursor: (current_week_index, current_day_index),
    both 0-based. Lifecycle: active -> completed (last day of last week done)
    or active -> cancelled (replaced by a new assignment).
    """
    __tablename__ = "program_assignment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid, ForeignKey("profile.id"), nullable=False)
    coach_id = Column(Uuid, ForeignKey("profile.id"), nullable=False)
    program_id = Column(Uuid, ForeignKey("program.id"), nullable=False)
    name = Column(Text, nullable=True)  # program name at assignment time

    status = Column(Text, default="active", nullable=False)  # 'active', 'completed', 'cancelled'
    current_week_index = Column(Integer, default=0, nullable=False)
    current_day_index = Column(Integer, default=0, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("status IN ('active', 'completed', 'cancelled')", name="ck_program_assignment_status"),
        CheckConstraint("current_week_index >= 0 AND current_day_index >= 0", name="ck_program_assignment_indices"),
        Index("ix_program_assignment_client_status", "client_id", "status"),
        # At most one active assignment per client
        Index(
            "uq_program_assignment_one_active",
            "client_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )


class ProgramDayCompletion(Base):
    """
    Immutable record that one (week_index, day_index) of an assignment was done.

    The unique constraint is what makes advancement happen at most once per
    day, whichever actor (coach or client) gets there first.
    """
    __tablename__ = "program_day_completion"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    program_assignment_id = Column(
        Uuid, ForeignKey("program_assignment.id", ondelete="CASCADE"), nullable=False
    )
    week_index = Column(Integer, nullable=False)
    day_index = Column(Integer, nullable=False)
    completed_by = Column(Uuid, ForeignKey("profile.id"), nullable=False)
    notes = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "program_assignment_id", "week_index", "day_index",
            name="uq_program_day_completion_day",
        ),
    )
