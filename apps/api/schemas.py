from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from uuid import UUID
from typing import Optional, List


# ============ Requests ============

class MarkCompleteRequest(BaseModel):
    """Coach pickup: complete the client's current day."""
    client_id: UUID = Field(..., alias="clientId")
    notes: Optional[str] = Field(default=None, max_length=2000)

    model_config = ConfigDict(populate_by_name=True)


class CompleteDayRequest(BaseModel):
    """Client app: complete my own current day."""
    notes: Optional[str] = Field(default=None, max_length=2000)


class AssignProgramRequest(BaseModel):
    program_id: UUID = Field(..., alias="programId")

    model_config = ConfigDict(populate_by_name=True)


# ============ Responses ============

class CompletedDay(BaseModel):
    week_index: int
    day_index: int


class AdvancedResponse(BaseModel):
    success: bool = True
    message: str
    completed: CompletedDay
    program_assignment_id: UUID
    program_id: UUID
    program_name: str
    current_week_index: int
    current_day_index: int
    is_completed: bool
    week_numbers: List[int] = []
    days_in_week_count: List[int] = []
    next_week_number: Optional[int] = None
    next_day_of_week: Optional[int] = None


class ProgressConflictResponse(BaseModel):
    """409 body for a day or program that was already completed."""
    error: str
    message: str
    current_week_index: int
    current_day_index: int
    is_completed: Optional[bool] = None


class ProgressErrorResponse(BaseModel):
    error: str
    message: str


class CurrentWorkoutResponse(BaseModel):
    status: str
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

    model_config = ConfigDict(from_attributes=True)


class ProgramAssignmentResponse(BaseModel):
    id: UUID
    client_id: UUID
    coach_id: UUID
    program_id: UUID
    name: Optional[str]
    status: str
    current_week_index: int
    current_day_index: int
    is_completed: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
