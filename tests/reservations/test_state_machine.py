import pytest

from conftest import at

from room_reservation.attendance.model import NewAttendanceEvent
from room_reservation.core.enums import (
    AttendanceKind,
    AttendanceMethod,
    LifecycleEvent,
    ReservationState,
    ReservationStatus,
)
from room_reservation.core.exceptions import IllegalTransitionError, PreconditionError
from room_reservation.reservations.model import Reservation
from room_reservation.reservations.state_machine import TRANSITIONS, can_transition, next_state, plan_change

S = ReservationState
E = LifecycleEvent


@pytest.mark.parametrize(
    "state, event, target",
    [
        (S.SCHEDULED, E.CHECK_IN, S.IN_SESSION),
        (S.SCHEDULED, E.MARK_NO_SHOW, S.NO_SHOW_OPEN),
        (S.SCHEDULED, E.CANCEL, S.CANCELLED),
        (S.SCHEDULED, E.RESCHEDULE, S.SCHEDULED),
        (S.IN_SESSION, E.CHECK_OUT, S.COMPLETED),
        (S.IN_SESSION, E.AUTO_CHECK_OUT, S.COMPLETED),
        (S.NO_SHOW_OPEN, E.CLOSE_NO_SHOW, S.NO_SHOW_CLOSED),
    ],
)
def test_legal_transitions(state, event, target):
    assert can_transition(state, event)
    assert next_state(state, event) is target


def test_everything_else_is_illegal():
    for state in S:
        for event in E:
            if (state, event) in TRANSITIONS:
                continue
            with pytest.raises(IllegalTransitionError):
                next_state(state, event)


def test_closed_states_accept_no_event():
    for state in (S.COMPLETED, S.NO_SHOW_CLOSED, S.CANCELLED):
        assert state.closed
        for event in E:
            assert not can_transition(state, event)
        with pytest.raises(IllegalTransitionError, match="already closed"):
            next_state(state, E.CANCEL)


def test_no_transition_leads_back_to_an_earlier_state():
    order = [S.SCHEDULED, S.IN_SESSION, S.NO_SHOW_OPEN, S.COMPLETED, S.NO_SHOW_CLOSED, S.CANCELLED]
    rank = {s: i for i, s in enumerate(order)}
    for (state, _event), target in TRANSITIONS.items():
        assert rank[target] >= rank[state]
        if state.closed:
            pytest.fail(f"closed state {state} has an outgoing transition")


def test_illegal_transition_is_a_precondition_error():
    with pytest.raises(PreconditionError):
        next_state(S.IN_SESSION, E.CHECK_IN)


def test_state_round_trips_through_columns():
    for state in S:
        assert S.from_columns(state.status, state.closed) is state


def test_legacy_closed_scheduled_row_reads_as_cancelled():
    assert S.from_columns(ReservationStatus.SCHEDULED, True) is S.CANCELLED


def test_open_completed_row_is_rejected():
    with pytest.raises(ValueError):
        S.from_columns(ReservationStatus.COMPLETED, False)


def test_plan_change_keys_on_state_read():
    r = Reservation(7, 1, 2, at(9), at(10), ReservationStatus.IN_SESSION)
    event = NewAttendanceEvent(7, 1, 2, AttendanceKind.CHECK_OUT, AttendanceMethod.QR, at(9, 40))

    change = plan_change(r, E.CHECK_OUT, at=at(9, 40), attendance=event)

    assert change.expected is S.IN_SESSION
    assert change.target is S.COMPLETED
    assert change.finalized_at == at(9, 40)
    assert change.write_count == 2


def test_no_show_mark_does_not_finalize():
    r = Reservation(7, 1, 2, at(9), at(10), ReservationStatus.SCHEDULED)

    change = plan_change(r, E.MARK_NO_SHOW, at=at(9, 16))

    assert change.target is S.NO_SHOW_OPEN
    assert change.finalized_at is None
    assert change.write_count == 1
