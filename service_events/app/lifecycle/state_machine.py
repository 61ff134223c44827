"""
Event lifecycle rules.

All functions are pure: they take the stored event and the requester and
either return the changed copy or raise. Ownership is always checked before
anything about the event's state, so a non-owner learns nothing about
transition legality.
"""

from datetime import datetime
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Mapping

from shared.errors import (
    HasParticipantsError,
    IllegalTransitionError,
    InvalidStateError,
    NotOwnerError,
    ValidationError,
)
from shared.identity import Identity
from shared.responses import FieldError

from .models import Event, EventStatus, utcnow

TRANSITIONS: Mapping[EventStatus, FrozenSet[EventStatus]] = MappingProxyType({
    EventStatus.PLANNING: frozenset({EventStatus.PUBLISHED, EventStatus.CANCELED}),
    EventStatus.PUBLISHED: frozenset({EventStatus.RUNNING, EventStatus.CANCELED}),
    EventStatus.RUNNING: frozenset({EventStatus.COMPLETED}),
    EventStatus.COMPLETED: frozenset(),
    EventStatus.CANCELED: frozenset(),
})

TERMINAL_STATES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)

LOCKED_STATES = frozenset({EventStatus.RUNNING, EventStatus.COMPLETED})

UPDATABLE_FIELDS = frozenset({"title", "description", "date", "location", "max_participants", "category"})


def validate_transition_table(table: Mapping[EventStatus, FrozenSet[EventStatus]]) -> None:
    """Raise ValueError unless the table is total, closed and acyclic."""
    missing = set(EventStatus) - set(table)
    if missing:
        raise ValueError(f"No transitions declared for {sorted(s.value for s in missing)}")

    for status, targets in table.items():
        unknown = set(targets) - set(table)
        if unknown:
            raise ValueError(f"{status.value} leads to undeclared states")
        if status in targets:
            raise ValueError(f"{status.value} transitions to itself")

    if not any(not targets for targets in table.values()):
        raise ValueError("Lifecycle has no terminal state")

    # Depth-first search for a back edge.
    visiting, done = set(), set()

    def visit(status: EventStatus) -> None:
        visiting.add(status)
        for target in table[status]:
            if target in visiting:
                raise ValueError(f"Cycle through {status.value} -> {target.value}")
            if target not in done:
                visit(target)
        visiting.discard(status)
        done.add(status)

    for status in table:
        if status not in done:
            visit(status)


validate_transition_table(TRANSITIONS)


def can_transition(current: EventStatus, target: EventStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_owner(event: Event, requester: Identity, message: str) -> None:
    if requester.id != event.organizer_id:
        raise NotOwnerError(message, details={"event_id": event.id})


def transition(event: Event, requester: Identity, target: EventStatus,
               clock: Callable[[], datetime] = utcnow) -> Event:
    """Move ``event`` to ``target`` on behalf of ``requester``."""
    ensure_owner(event, requester, "Only the organizer can change event status")

    if not can_transition(event.status, target):
        raise IllegalTransitionError(
            f"Invalid state transition from {event.status.value} to {target.value}",
            details={"from": event.status.value, "to": target.value},
        )

    return event.model_copy(update={"status": target, "updated_at": clock()})


def apply_update(event: Event, requester: Identity, changes: Mapping[str, Any],
                 clock: Callable[[], datetime] = utcnow) -> Event:
    """Apply descriptive field changes. Status and ownership never change here."""
    ensure_owner(event, requester, "Only the organizer can update this event")

    if event.status in LOCKED_STATES:
        raise InvalidStateError(
            "Cannot update event that has started or completed",
            details={"status": event.status.value},
        )

    rejected = sorted(set(changes) - UPDATABLE_FIELDS)
    if rejected:
        raise ValidationError(
            errors=[FieldError(field=name, message="Field cannot be updated") for name in rejected]
        )

    update: Dict[str, Any] = dict(changes)
    update["updated_at"] = clock()
    return event.model_copy(update=update)


def check_delete(event: Event, requester: Identity) -> None:
    """Raise unless ``requester`` may delete ``event`` right now.

    Enrolled participants block deletion whatever the status.
    """
    ensure_owner(event, requester, "Only the organizer can delete this event")

    if event.current_participants > 0:
        raise HasParticipantsError(details={"current_participants": event.current_participants})

    if event.status is not EventStatus.PLANNING:
        raise InvalidStateError(
            "Can only delete events in Planning status",
            details={"status": event.status.value},
        )


def is_terminal(status: EventStatus) -> bool:
    return status in TERMINAL_STATES
