"""
Event lifecycle: data models and the status state machine.
"""

from .models import Event, EventCreate, EventStatus, EventStatusUpdate, EventUpdate, utcnow
from .state_machine import (
    TERMINAL_STATES,
    TRANSITIONS,
    apply_update,
    can_transition,
    check_delete,
    is_terminal,
    transition,
    validate_transition_table,
)

__all__ = [
    "Event",
    "EventCreate",
    "EventStatus",
    "EventStatusUpdate",
    "EventUpdate",
    "TERMINAL_STATES",
    "TRANSITIONS",
    "apply_update",
    "can_transition",
    "check_delete",
    "is_terminal",
    "transition",
    "utcnow",
    "validate_transition_table",
]
