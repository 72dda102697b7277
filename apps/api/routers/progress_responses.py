"""
HTTP translation of progression results.

Shared by the coach pickup and client routers so both surfaces answer the
same way. "Already completed" is a 409 with the current cursor, never a
500: clients must not retry-loop on it.
"""

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from schemas import (
    AdvancedResponse,
    CompletedDay,
    CurrentWorkoutResponse,
    ProgressConflictResponse,
    ProgressErrorResponse,
)
from services.program_progress import (
    ERROR_NO_ACTIVE_ASSIGNMENT,
    AdvanceError,
    AdvanceResult,
    CurrentWorkout,
    DayAlreadyCompleted,
    ProgramAlreadyCompleted,
)


def advance_result_response(result: AdvanceResult) -> JSONResponse:
    if isinstance(result, AdvanceError):
        status_code = (
            status.HTTP_404_NOT_FOUND
            if result.error == ERROR_NO_ACTIVE_ASSIGNMENT
            else status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        body = ProgressErrorResponse(error=result.error, message=result.message)
        return JSONResponse(status_code=status_code, content=jsonable_encoder(body))

    if isinstance(result, DayAlreadyCompleted):
        body = ProgressConflictResponse(
            error="Day already completed",
            message=result.message,
            current_week_index=result.current_week_index,
            current_day_index=result.current_day_index,
        )
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=jsonable_encoder(body, exclude_none=True),
        )

    if isinstance(result, ProgramAlreadyCompleted):
        body = ProgressConflictResponse(
            error="Program already completed",
            message=result.message,
            is_completed=True,
            current_week_index=result.current_week_index,
            current_day_index=result.current_day_index,
        )
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=jsonable_encoder(body))

    body = AdvancedResponse(
        message=result.message,
        completed=CompletedDay(
            week_index=result.completed_week_index,
            day_index=result.completed_day_index,
        ),
        program_assignment_id=result.program_assignment_id,
        program_id=result.program_id,
        program_name=result.program_name,
        current_week_index=result.current_week_index,
        current_day_index=result.current_day_index,
        is_completed=result.is_completed,
        week_numbers=result.week_numbers,
        days_in_week_count=result.days_in_week_count,
        next_week_number=result.next_week_number,
        next_day_of_week=result.next_day_of_week,
    )
    return JSONResponse(status_code=status.HTTP_200_OK, content=jsonable_encoder(body))


# 422 as a literal: Starlette renamed its constant and warns on the old name
_CURRENT_WORKOUT_STATUS_CODES = {
    "active": status.HTTP_200_OK,
    "completed": status.HTTP_200_OK,
    "no_program": status.HTTP_404_NOT_FOUND,
    "no_schedule": 422,
    "invalid_state": 422,
}


def current_workout_response(workout: CurrentWorkout) -> JSONResponse:
    body = CurrentWorkoutResponse.model_validate(workout)
    return JSONResponse(
        status_code=_CURRENT_WORKOUT_STATUS_CODES[workout.status],
        content=jsonable_encoder(body, exclude_none=True),
    )
