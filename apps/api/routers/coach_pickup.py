"""
Coach Pickup API Router

Gym-console endpoints a coach uses while training a client in person.
Programs are sequence-based (week -> day), not calendar-based:

- next-workout: which day the client is on
- mark-complete: complete that day on the client's behalf and advance
- program-assignments: start a client on a program
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from core.auth import ensure_coaches_client, require_coach
from core.database import get_db
from core.exceptions import NotFoundError
from core.rate_limit import enforce_completion_limit
from models import Profile, Program
from routers.progress_responses import advance_result_response, current_workout_response
from schemas import (
    AdvancedResponse,
    AssignProgramRequest,
    CurrentWorkoutResponse,
    MarkCompleteRequest,
    ProgramAssignmentResponse,
    ProgressConflictResponse,
    ProgressErrorResponse,
)
from services.program_assignment import assign_program
from services.program_progress import advance_program_progress, get_current_workout

router = APIRouter(prefix="/v1/coach", tags=["Coach Pickup"])
logger = logging.getLogger(__name__)


@router.post(
    "/pickup/mark-complete",
    response_model=AdvancedResponse,
    responses={
        404: {"model": ProgressErrorResponse},
        409: {"model": ProgressConflictResponse},
        429: {"description": "Too many completions for this client"},
        500: {"model": ProgressErrorResponse},
    },
)
def mark_complete(
    request: MarkCompleteRequest,
    coach: Profile = Depends(require_coach),
    db: Session = Depends(get_db),
):
    """
    Mark the client's current training day complete and advance their program.

    Retries and double-submits are safe: the second call gets 409 with the
    current position instead of advancing again.
    """
    ensure_coaches_client(db, coach, request.client_id)
    enforce_completion_limit(coach.id, request.client_id)

    logger.info(f"Coach {coach.id} marking current day complete for client {request.client_id}")
    result = advance_program_progress(
        db,
        client_id=request.client_id,
        completed_by=coach.id,
        notes=request.notes,
    )
    return advance_result_response(result)


@router.get(
    "/pickup/next-workout",
    response_model=CurrentWorkoutResponse,
    response_model_exclude_none=True,
)
def next_workout(
    client_id: UUID = Query(..., alias="clientId"),
    coach: Profile = Depends(require_coach),
    db: Session = Depends(get_db),
):
    """Current program day for a client, as shown in the coach's gym console."""
    ensure_coaches_client(db, coach, client_id)
    return current_workout_response(get_current_workout(db, client_id))


@router.post(
    "/clients/{client_id}/program-assignments",
    response_model=ProgramAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_program_assignment(
    client_id: UUID,
    request: AssignProgramRequest,
    coach: Profile = Depends(require_coach),
    db: Session = Depends(get_db),
):
    """
    Start a client on a program.

    Any program the client is currently on is cancelled. The new assignment
    starts at week 0, day 0.
    """
    ensure_coaches_client(db, coach, client_id)

    program = db.query(Program).filter(Program.id == request.program_id).first()
    if program is None or (coach.role != "admin" and program.coach_id != coach.id):
        raise NotFoundError("Program", str(request.program_id))

    assignment = assign_program(db, coach_id=coach.id, client_id=client_id, program=program)
    return ProgramAssignmentResponse.model_validate(assignment)
