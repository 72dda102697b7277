"""
Assigning programs to clients.

A client has at most one active assignment. Assigning a new program
cancels the current one (its completion history stays attached to it)
and starts the new one at week 0, day 0.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from core import events
from models import Program, ProgramAssignment

logger = logging.getLogger(__name__)


def assign_program(
    db: Session,
    *,
    coach_id: UUID,
    client_id: UUID,
    program: Program,
) -> ProgramAssignment:
    current = (
        db.query(ProgramAssignment)
        .filter(ProgramAssignment.client_id == client_id, ProgramAssignment.status == "active")
        .all()
    )
    for old in current:
        old.status = "cancelled"
    # Cancellations must hit the partial unique index before the insert does
    db.flush()

    assignment = ProgramAssignment(
        client_id=client_id,
        coach_id=coach_id,
        program_id=program.id,
        name=program.name,
        status="active",
        current_week_index=0,
        current_day_index=0,
        is_completed=False,
    )
    db.add(assignment)
    db.commit()

    logger.info(
        f"Assigned program {program.id} to client {client_id}",
        extra={"extra_fields": {
            "client_id": str(client_id),
            "coach_id": str(coach_id),
            "program_assignment_id": str(assignment.id),
            "cancelled_assignment_ids": [str(a.id) for a in current],
        }},
    )
    events.emit(
        events.EVENT_PROGRAM_ASSIGNED,
        client_id=client_id,
        coach_id=coach_id,
        program_assignment_id=assignment.id,
        program_id=program.id,
    )
    return assignment
