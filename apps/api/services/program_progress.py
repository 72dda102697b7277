"""
Program progress: advancing a client through their assigned program.

`advance_program_progress` is shared by the coach pickup flow and the
client's own completion flow. It moves the assignment's cursor forward by
exactly one training day per logical completion, no matter how many times
or from how many places it is called:

- A ProgramDayCompletion row keyed by (assignment, week_index, day_index)
  is the idempotency anchor. The unique constraint decides the winner when
  two requests race; the loser sees the conflict and reports
  `already_completed` instead of failing.
- The completion insert and the cursor update commit in one transaction,
  so a completion is never recorded without the cursor moving.

Expected outcomes (nothing assigned, day already done, program finished)
are returned as result variants, never raised. Only storage failures map
to `error`/`internal`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Literal, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core import events
from models import ProgramAssignment, ProgramDayCompletion
from services.program_schedule import WeekStructure, load_week_structure

logger = logging.getLogger(__name__)

ERROR_NO_ACTIVE_ASSIGNMENT = "no_active_assignment"
ERROR_MULTIPLE_ACTIVE_ASSIGNMENTS = "multiple_active_assignments"
ERROR_NO_SCHEDULE = "no_schedule"
ERROR_INVALID_STATE = "invalid_state"
ERROR_INTERNAL = "internal"

DEFAULT_PROGRAM_NAME = "Program"


# =============================================================================
# Result variants
# =============================================================================

@dataclass(frozen=True)
class AdvanceError:
    error: str
    message: str
    status: Literal["error"] = "error"


@dataclass(frozen=True)
class ProgramAlreadyCompleted:
    """The program was finished before this call. Nothing changed."""
    message: str
    current_week_index: int
    current_day_index: int
    status: Literal["completed"] = "completed"


@dataclass(frozen=True)
class DayAlreadyCompleted:
    """The current day already has a completion. Nothing changed."""
    message: str
    current_week_index: int
    current_day_index: int
    status: Literal["already_completed"] = "already_completed"


@dataclass(frozen=True)
class DayAdvanced:
    message: str
    completed_week_index: int
    completed_day_index: int
    current_week_index: int
    current_day_index: int
    is_completed: bool
    program_assignment_id: UUID
    program_id: UUID
    program_name: str
    week_numbers: List[int] = field(default_factory=list)
    days_in_week_count: List[int] = field(default_factory=list)
    next_week_number: Optional[int] = None
    next_day_of_week: Optional[int] = None
    status: Literal["advanced"] = "advanced"


AdvanceResult = Union[AdvanceError, ProgramAlreadyCompleted, DayAlreadyCompleted, DayAdvanced]


@dataclass
class CurrentWorkout:
    """Which training day a client is on. Read-only view of the cursor."""
    status: Literal["active", "completed", "no_program", "no_schedule", "invalid_state"]
    message: str
    program_assignment_id: Optional[UUID] = None
    program_id: Optional[UUID] = None
    program_name: Optional[str] = None
    current_week_index: Optional[int] = None
    current_day_index: Optional[int] = None
    is_completed: Optional[bool] = None
    week_label: Optional[str] = None
    day_label: Optional[str] = None
    position_label: Optional[str] = None
    template_id: Optional[str] = None
    schedule_row_id: Optional[UUID] = None
    total_weeks: Optional[int] = None
    days_in_current_week: Optional[int] = None
    actual_week_number: Optional[int] = None
    actual_day_of_week: Optional[int] = None


# =============================================================================
# Lookups
# =============================================================================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _active_assignments(db: Session, client_id: UUID) -> List[ProgramAssignment]:
    return (
        db.query(ProgramAssignment)
        .filter(ProgramAssignment.client_id == client_id, ProgramAssignment.status == "active")
        .order_by(ProgramAssignment.created_at.desc())
        .all()
    )


def _latest_finished_assignment(db: Session, client_id: UUID) -> Optional[ProgramAssignment]:
    """Most recent assignment if it ended by completion (not cancellation)."""
    latest = (
        db.query(ProgramAssignment)
        .filter(ProgramAssignment.client_id == client_id, ProgramAssignment.status != "active")
        .order_by(ProgramAssignment.created_at.desc())
        .first()
    )
    if latest is not None and latest.status == "completed":
        return latest
    return None


def _completion_exists(db: Session, assignment_id: UUID, week_index: int, day_index: int) -> bool:
    return (
        db.query(ProgramDayCompletion.id)
        .filter(
            ProgramDayCompletion.program_assignment_id == assignment_id,
            ProgramDayCompletion.week_index == week_index,
            ProgramDayCompletion.day_index == day_index,
        )
        .first()
        is not None
    )


def _program_name(assignment: ProgramAssignment) -> str:
    return assignment.name or DEFAULT_PROGRAM_NAME


# =============================================================================
# Advancement
# =============================================================================

def _record_completion(
    db: Session,
    assignment: ProgramAssignment,
    week_index: int,
    day_index: int,
    completed_by: UUID,
    notes: Optional[str],
) -> bool:
    """
    Insert-if-absent for the day's completion row.

    Returns False when another request already holds the row. Any other
    integrity failure (bad actor id, missing assignment) is re-raised.
    """
    completion = ProgramDayCompletion(
        program_assignment_id=assignment.id,
        week_index=week_index,
        day_index=day_index,
        completed_by=completed_by,
        notes=notes,
    )
    try:
        with db.begin_nested():
            db.add(completion)
    except IntegrityError:
        if _completion_exists(db, assignment.id, week_index, day_index):
            return False
        raise
    return True


def _advance(
    db: Session,
    client_id: UUID,
    completed_by: UUID,
    notes: Optional[str],
) -> Tuple[AdvanceResult, Optional[ProgramAssignment]]:
    active = _active_assignments(db, client_id)
    if not active:
        finished = _latest_finished_assignment(db, client_id)
        if finished is not None:
            return ProgramAlreadyCompleted(
                message="Program already completed",
                current_week_index=finished.current_week_index,
                current_day_index=finished.current_day_index,
            ), None
        return AdvanceError(
            error=ERROR_NO_ACTIVE_ASSIGNMENT,
            message="No active program assignment found for this client",
        ), None

    if len(active) > 1:
        logger.error(
            f"Refusing to advance: client {client_id} has {len(active)} active assignments",
            extra={"extra_fields": {
                "client_id": str(client_id),
                "program_assignment_ids": [str(a.id) for a in active],
            }},
        )
        return AdvanceError(
            error=ERROR_MULTIPLE_ACTIVE_ASSIGNMENTS,
            message=f"Client has {len(active)} active program assignments",
        ), None

    assignment = active[0]
    week_index = assignment.current_week_index
    day_index = assignment.current_day_index

    if assignment.is_completed:
        return ProgramAlreadyCompleted(
            message="Program already completed",
            current_week_index=week_index,
            current_day_index=day_index,
        ), None

    structure = load_week_structure(db, assignment.program_id)
    if structure.is_empty:
        return AdvanceError(
            error=ERROR_NO_SCHEDULE,
            message="No training days configured in program schedule",
        ), None
    if structure.day_at(week_index, day_index) is None:
        return AdvanceError(
            error=ERROR_INVALID_STATE,
            message=f"Invalid progress state: week_index={week_index}, day_index={day_index}",
        ), None

    already_done = DayAlreadyCompleted(
        message=f"Week {week_index + 1}, day {day_index + 1} is already completed",
        current_week_index=week_index,
        current_day_index=day_index,
    )
    if _completion_exists(db, assignment.id, week_index, day_index):
        return already_done, None
    if not _record_completion(db, assignment, week_index, day_index, completed_by, notes):
        logger.info(
            "Completion insert lost a race; reporting already_completed",
            extra={"extra_fields": {
                "program_assignment_id": str(assignment.id),
                "week_index": week_index,
                "day_index": day_index,
            }},
        )
        return already_done, None

    return _move_cursor(db, assignment, structure, week_index, day_index), assignment


def _move_cursor(
    db: Session,
    assignment: ProgramAssignment,
    structure: WeekStructure,
    week_index: int,
    day_index: int,
) -> DayAdvanced:
    next_position = structure.next_position(week_index, day_index)
    next_day = None

    if next_position is None:
        # Last day of the last week: freeze the cursor where it is
        assignment.is_completed = True
        assignment.status = "completed"
        assignment.completed_at = _utcnow()
        message = "Program completed"
    else:
        assignment.current_week_index, assignment.current_day_index = next_position
        next_day = structure.day_at(*next_position)
        message = f"Advanced to week {next_position[0] + 1}, day {next_position[1] + 1}"

    db.commit()

    return DayAdvanced(
        message=message,
        completed_week_index=week_index,
        completed_day_index=day_index,
        current_week_index=assignment.current_week_index,
        current_day_index=assignment.current_day_index,
        is_completed=assignment.is_completed,
        program_assignment_id=assignment.id,
        program_id=assignment.program_id,
        program_name=_program_name(assignment),
        week_numbers=list(structure.week_numbers),
        days_in_week_count=structure.days_in_week_count(),
        next_week_number=next_day.week_number if next_day else None,
        next_day_of_week=next_day.day_of_week if next_day else None,
    )


def advance_program_progress(
    db: Session,
    client_id: UUID,
    completed_by: UUID,
    notes: Optional[str] = None,
) -> AdvanceResult:
    """
    Mark the client's current program day complete and move to the next one.

    `completed_by` is recorded for audit only; callers authorize before
    calling. Safe to call repeatedly and concurrently for the same client.
    """
    try:
        result, assignment = _advance(db, client_id, completed_by, notes)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(
            f"Failed to advance program progress for client {client_id}: {e}",
            extra={"extra_fields": {"client_id": str(client_id), "completed_by": str(completed_by)}},
        )
        return AdvanceError(error=ERROR_INTERNAL, message="Failed to advance program progress")

    if isinstance(result, DayAdvanced):
        logger.info(
            f"Program progress advanced for client {client_id}",
            extra={"extra_fields": {
                "client_id": str(client_id),
                "completed_by": str(completed_by),
                "program_assignment_id": str(result.program_assignment_id),
                "completed_week_index": result.completed_week_index,
                "completed_day_index": result.completed_day_index,
                "is_completed": result.is_completed,
            }},
        )
        events.emit(
            events.EVENT_PROGRAM_DAY_COMPLETED,
            client_id=client_id,
            completed_by=completed_by,
            program_assignment_id=result.program_assignment_id,
            week_index=result.completed_week_index,
            day_index=result.completed_day_index,
        )
        if result.is_completed:
            events.emit(
                events.EVENT_PROGRAM_COMPLETED,
                client_id=client_id,
                coach_id=assignment.coach_id,
                program_assignment_id=result.program_assignment_id,
                program_id=result.program_id,
            )

    return result


# =============================================================================
# Current workout (read-only)
# =============================================================================

def get_current_workout(db: Session, client_id: UUID) -> CurrentWorkout:
    """
    Resolve the training day a client should do next.

    Same assignment resolution rules as advancement, so the coach console
    and the client app always agree on "today's" workout.
    """
    active = _active_assignments(db, client_id)
    if not active:
        finished = _latest_finished_assignment(db, client_id)
        if finished is None:
            return CurrentWorkout(status="no_program", message="No active program assignment")
        return CurrentWorkout(
            status="completed",
            message="Program completed",
            program_assignment_id=finished.id,
            program_id=finished.program_id,
            program_name=_program_name(finished),
            current_week_index=finished.current_week_index,
            current_day_index=finished.current_day_index,
            is_completed=True,
        )
    if len(active) > 1:
        return CurrentWorkout(
            status="invalid_state",
            message=f"Client has {len(active)} active program assignments",
        )

    assignment = active[0]
    base = dict(
        program_assignment_id=assignment.id,
        program_id=assignment.program_id,
        program_name=_program_name(assignment),
    )
    week_index = assignment.current_week_index
    day_index = assignment.current_day_index

    if assignment.is_completed:
        return CurrentWorkout(
            status="completed",
            message="Program completed",
            current_week_index=week_index,
            current_day_index=day_index,
            is_completed=True,
            **base,
        )

    structure = load_week_structure(db, assignment.program_id)
    if structure.is_empty:
        return CurrentWorkout(
            status="no_schedule",
            message="No training days configured in program schedule",
            **base,
        )

    day = structure.day_at(week_index, day_index)
    if day is None:
        return CurrentWorkout(
            status="invalid_state",
            message=f"Invalid progress state: week_index={week_index}, day_index={day_index}",
            current_week_index=week_index,
            current_day_index=day_index,
            total_weeks=structure.total_weeks,
            **base,
        )

    week_label = f"Week {day.week_number}"
    day_label = f"Day {day_index + 1}"
    return CurrentWorkout(
        status="active",
        message="Workout ready",
        current_week_index=week_index,
        current_day_index=day_index,
        is_completed=False,
        week_label=week_label,
        day_label=day_label,
        position_label=f"{week_label} • {day_label}",
        template_id=day.template_id,
        schedule_row_id=day.id,
        total_weeks=structure.total_weeks,
        days_in_current_week=structure.days_in_week(week_index),
        actual_week_number=day.week_number,
        actual_day_of_week=day.day_of_week,
        **base,
    )
