"""Reservation lifecycle.

    SCHEDULED --check in--> IN_SESSION --check out / auto check out--> COMPLETED
    SCHEDULED --sweeper--> NO_SHOW_OPEN --sweeper--> NO_SHOW_CLOSED
    SCHEDULED --owner--> CANCELLED

Every mutation goes through ``next_state``; anything missing from the table is
illegal. Time guards live in ``LifecyclePolicy`` and are checked by the callers.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..attendance.model import NewAttendanceEvent
from ..core.enums import LifecycleEvent, ReservationState
from ..core.exceptions import IllegalTransitionError
from .model import Reservation, StateChange

S = ReservationState
E = LifecycleEvent

TRANSITIONS: dict[tuple[ReservationState, LifecycleEvent], ReservationState] = {
    (S.SCHEDULED, E.CHECK_IN): S.IN_SESSION,
    (S.SCHEDULED, E.MARK_NO_SHOW): S.NO_SHOW_OPEN,
    (S.SCHEDULED, E.CANCEL): S.CANCELLED,
    (S.SCHEDULED, E.RESCHEDULE): S.SCHEDULED,
    (S.IN_SESSION, E.CHECK_OUT): S.COMPLETED,
    (S.IN_SESSION, E.AUTO_CHECK_OUT): S.COMPLETED,
    (S.NO_SHOW_OPEN, E.CLOSE_NO_SHOW): S.NO_SHOW_CLOSED,
}

_REASONS = {
    E.CHECK_IN: "Only a scheduled reservation can be checked in",
    E.CHECK_OUT: "Only a reservation in session can be checked out",
    E.CANCEL: "Only a scheduled reservation can be cancelled",
    E.RESCHEDULE: "Only a scheduled reservation can be changed",
}


def can_transition(state: ReservationState, event: LifecycleEvent) -> bool:
    return (state, event) in TRANSITIONS


def next_state(state: ReservationState, event: LifecycleEvent) -> ReservationState:
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        reason = _REASONS.get(event, "Reservation cannot change state")
        if state.closed:
            reason = "Reservation is already closed"
        raise IllegalTransitionError(f"{reason} (current state: {state.value}, action: {event.value})")


def plan_change(
    reservation: Reservation,
    event: LifecycleEvent,
    *,
    at: datetime,
    attendance: Optional[NewAttendanceEvent] = None,
) -> StateChange:
    """Build the conditional write for ``event``, keyed on the state we read."""
    current = reservation.state
    return StateChange(
        reservation_id=reservation.reservation_id,
        expected=current,
        target=next_state(current, event),
        changed_at=at,
        event=attendance,
    )
