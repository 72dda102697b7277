"""
Lightweight in-process event hooks.

Progression emits events after its transaction commits so that other parts
of the app (notifications, achievements) can react without the advancer
knowing about them. Handler failures are logged and swallowed: a broken
listener must never turn a recorded completion into an error response.
"""
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

# Event registry: event_name -> list of handlers
_event_handlers: Dict[str, List[Callable]] = {}


def subscribe(event_name: str, handler: Callable):
    """
    Subscribe a handler function to an event.

    Example:
        subscribe(EVENT_PROGRAM_COMPLETED, notify_coach_program_finished)
    """
    _event_handlers.setdefault(event_name, []).append(handler)
    logger.debug(f"Subscribed handler to event: {event_name}")


def unsubscribe(event_name: str, handler: Callable):
    handlers = _event_handlers.get(event_name, [])
    if handler in handlers:
        handlers.remove(handler)


def emit(event_name: str, **kwargs):
    """
    Emit an event, calling all subscribed handlers.

    Example:
        emit(EVENT_PROGRAM_DAY_COMPLETED, program_assignment_id=str(assignment.id), week_index=0, day_index=2)
    """
    for handler in list(_event_handlers.get(event_name, [])):
        try:
            handler(**kwargs)
        except Exception as e:
            logger.error(f"Error in event handler for {event_name}: {e}", exc_info=True)


EVENT_PROGRAM_DAY_COMPLETED = 'program.day_completed'
EVENT_PROGRAM_COMPLETED = 'program.completed'
EVENT_PROGRAM_ASSIGNED = 'program.assigned'
