"""
Client Program API Router

The client's own view of their assigned program. Identity comes from the
bearer token only: a client can read and complete nobody's days but their own.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from core.rate_limit import enforce_completion_limit
from models import Profile
from routers.progress_responses import advance_result_response, current_workout_response
from schemas import (
    AdvancedResponse,
    CompleteDayRequest,
    CurrentWorkoutResponse,
    ProgressConflictResponse,
    ProgressErrorResponse,
)
from services.program_progress import advance_program_progress, get_current_workout

router = APIRouter(prefix="/v1/client/program-progress", tags=["Client Program"])
logger = logging.getLogger(__name__)


@router.get("/current", response_model=CurrentWorkoutResponse, response_model_exclude_none=True)
def current_workout(
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Which program day I am on."""
    return current_workout_response(get_current_workout(db, user.id))


@router.post(
    "/complete",
    response_model=AdvancedResponse,
    responses={
        404: {"model": ProgressErrorResponse},
        409: {"model": ProgressConflictResponse},
        429: {"description": "Too many completions for this client"},
        500: {"model": ProgressErrorResponse},
    },
)
def complete_current_day(
    request: Optional[CompleteDayRequest] = None,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Complete my current program day and advance to the next one."""
    enforce_completion_limit(user.id, user.id)
    notes = request.notes if request else None
    result = advance_program_progress(db, client_id=user.id, completed_by=user.id, notes=notes)
    return advance_result_response(result)
