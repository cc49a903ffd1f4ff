import pytest

from conftest import at

from room_reservation.core.enums import AttendanceKind, AttendanceMethod, ReservationState
from room_reservation.core.exceptions import (
    AuthorizationError,
    ConcurrencyError,
    InfrastructureError,
    PreconditionError,
    ValidationError,
)


@pytest.fixture
def booking(store, prof):
    return store.add_reservation(room_id=1, owner_id=prof.user_id, start_at=at(9), end_at=at(10))


def _check_in(container, user, now, **kwargs):
    kwargs.setdefault("room_id", 1)
    return container.checkin_service.check_in(current_user=user, now=now, **kwargs)


def test_check_in_ten_minutes_early_starts_session(container, store, prof, booking):
    result = _check_in(container, prof, at(8, 50))

    assert result.reservation_id == booking.reservation_id
    assert result.start_time == at(9)
    r = store.reservations[booking.reservation_id]
    assert r.state is ReservationState.IN_SESSION
    (event,) = store.events_for(booking.reservation_id)
    assert event.event_id == result.check_in_id
    assert event.kind is AttendanceKind.CHECK_IN
    assert event.method is AttendanceMethod.QR
    assert event.occurred_at == at(8, 50)


@pytest.mark.parametrize(
    "now, ok",
    [
        (at(8, 49, 59), False),
        (at(8, 50), True),
        (at(9, 15), True),
        (at(9, 15, 1), False),
    ],
)
def test_window_boundaries(container, store, prof, booking, now, ok):
    if ok:
        _check_in(container, prof, now)
        assert store.reservations[booking.reservation_id].state is ReservationState.IN_SESSION
    else:
        with pytest.raises(PreconditionError, match="No valid reservation"):
            _check_in(container, prof, now)
        assert store.reservations[booking.reservation_id].state is ReservationState.SCHEDULED
        assert store.events == {}


def test_cannot_hold_two_sessions_at_once(container, store, prof, booking):
    other_room = store.add_reservation(room_id=2, owner_id=prof.user_id, start_at=at(9), end_at=at(10))
    _check_in(container, prof, at(9, 5))

    with pytest.raises(PreconditionError, match="active session"):
        _check_in(container, prof, at(9, 10), room_id=2)

    assert store.reservations[other_room.reservation_id].state is ReservationState.SCHEDULED
    assert len(store.events) == 1


def test_concurrent_check_ins_in_two_rooms_leave_one_session(container, store, prof, booking):
    other_room = store.add_reservation(room_id=2, owner_id=prof.user_id, start_at=at(9), end_at=at(10))

    def first_room_checks_in():
        _check_in(container, prof, at(9))

    store.before_apply.append(first_room_checks_in)

    with pytest.raises(PreconditionError, match="active session"):
        _check_in(container, prof, at(9), room_id=2)

    in_session = [r for r in store.reservations.values() if r.state is ReservationState.IN_SESSION]
    assert [r.reservation_id for r in in_session] == [booking.reservation_id]
    assert store.reservations[other_room.reservation_id].state is ReservationState.SCHEDULED
    assert len(store.events) == 1


def test_picks_reservation_whose_window_contains_now(container, store, prof):
    store.add_reservation(room_id=1, owner_id=prof.user_id, start_at=at(7), end_at=at(8))
    later = store.add_reservation(room_id=1, owner_id=prof.user_id, start_at=at(11), end_at=at(12))

    result = _check_in(container, prof, at(10, 55))

    assert result.reservation_id == later.reservation_id


def test_someone_elses_reservation_does_not_count(container, other_prof, booking):
    with pytest.raises(PreconditionError):
        _check_in(container, other_prof, at(9))


def test_admin_cannot_check_in(container, admin, booking):
    with pytest.raises(AuthorizationError):
        _check_in(container, admin, at(9))


def test_retired_room_rejected(container, store, prof):
    store.add_reservation(room_id=3, owner_id=prof.user_id, start_at=at(9), end_at=at(10))

    with pytest.raises(PreconditionError, match="not available"):
        _check_in(container, prof, at(9), room_id=3)


def test_check_in_with_scanned_qr(container, store, prof, booking):
    result = _check_in(container, prof, at(9), room_id=None, qr="room-1:v1")
    assert result.reservation_id == booking.reservation_id


def test_legacy_qr_without_epoch_is_accepted(container, prof, booking):
    assert _check_in(container, prof, at(9), room_id=None, qr="room-1").reservation_id == booking.reservation_id


def test_stale_qr_is_rejected(container, store, prof, booking, admin):
    container.room_service.update_room(current_user=admin, room_id=1, bump_qr=True)

    with pytest.raises(PreconditionError, match="replaced"):
        _check_in(container, prof, at(9), room_id=None, qr="room-1:v1")
    _check_in(container, prof, at(9), room_id=None, qr="room-1:v2")


def test_qr_must_match_room(container, prof, booking):
    with pytest.raises(ValidationError):
        _check_in(container, prof, at(9), room_id=2, qr="room-1:v1")
    with pytest.raises(ValidationError):
        _check_in(container, prof, at(9), room_id=None, qr="https://example.com")
    with pytest.raises(ValidationError):
        _check_in(container, prof, at(9), room_id=None)


def test_signals_are_stored_on_the_event(container, store, prof, booking):
    signals = {"gps": {"lat": 14.65, "lng": 121.07}, "wifi": "CAMPUS-5G"}

    result = _check_in(container, prof, at(9), signals=signals)

    assert store.events[result.check_in_id].signals == signals


def test_signals_must_be_an_object(container, prof, booking):
    with pytest.raises(ValidationError):
        _check_in(container, prof, at(9), signals=["gps"])


def test_failed_event_write_leaves_nothing_behind(container, store, prof, booking):
    store.fail_next_event_insert = True

    with pytest.raises(InfrastructureError):
        _check_in(container, prof, at(9))

    assert store.reservations[booking.reservation_id].state is ReservationState.SCHEDULED
    assert store.events == {}

    _check_in(container, prof, at(9, 1))
    assert store.reservations[booking.reservation_id].state is ReservationState.IN_SESSION
    assert len(store.events) == 1


def test_check_in_loses_race_against_no_show_sweep(container, store, prof, booking):
    def sweeper_wins():
        container.sweeper_service.sweep_no_shows(at(9, 15))

    store.before_apply.append(sweeper_wins)

    with pytest.raises(ConcurrencyError):
        _check_in(container, prof, at(9, 15))

    assert store.reservations[booking.reservation_id].state is ReservationState.NO_SHOW_OPEN
    assert store.events == {}


def test_check_out_completes_and_closes(container, store, prof, booking):
    _check_in(container, prof, at(9))

    result = container.checkin_service.check_out(current_user=prof, room_id=1, now=at(9, 50))

    assert result.reservation_id == booking.reservation_id
    assert result.end_time == at(9, 50)
    r = store.reservations[booking.reservation_id]
    assert r.state is ReservationState.COMPLETED
    assert r.closed
    assert r.finalized_at == at(9, 50)
    checkout = store.events[result.check_out_id]
    assert checkout.kind is AttendanceKind.CHECK_OUT
    assert checkout.method is AttendanceMethod.QR


def test_check_out_without_session(container, prof, booking):
    with pytest.raises(PreconditionError, match="No active session"):
        container.checkin_service.check_out(current_user=prof, room_id=1, now=at(9, 50))


def test_check_out_in_wrong_room(container, prof, booking):
    _check_in(container, prof, at(9))

    with pytest.raises(PreconditionError, match="No active session"):
        container.checkin_service.check_out(current_user=prof, room_id=2, now=at(9, 50))


def test_check_out_by_qr_after_room_was_retired(container, store, prof, admin, booking):
    _check_in(container, prof, at(9))
    container.room_service.update_room(current_user=admin, room_id=1, retired=True)

    result = container.checkin_service.check_out(current_user=prof, qr="room-1:v1", now=at(9, 30))
    assert store.reservations[result.reservation_id].state is ReservationState.COMPLETED


def test_second_check_out_is_rejected(container, prof, booking):
    _check_in(container, prof, at(9))
    container.checkin_service.check_out(current_user=prof, room_id=1, now=at(9, 50))

    with pytest.raises(PreconditionError):
        container.checkin_service.check_out(current_user=prof, room_id=1, now=at(9, 51))


def test_history_lists_own_events_newest_first(container, prof, booking):
    _check_in(container, prof, at(9))
    container.checkin_service.check_out(current_user=prof, room_id=1, now=at(9, 50))

    events = container.checkin_service.history(current_user=prof, limit=5)

    assert [e.kind for e in events] == [AttendanceKind.CHECK_OUT, AttendanceKind.CHECK_IN]
