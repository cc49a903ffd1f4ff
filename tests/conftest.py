from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

import pytest
from werkzeug.security import generate_password_hash

from room_reservation.attendance.model import AttendanceEvent
from room_reservation.container import assemble_container
from room_reservation.core.enums import AttendanceKind, ReservationState, ReservationStatus, Role
from room_reservation.core.exceptions import ConcurrencyError, InfrastructureError, PreconditionError
from room_reservation.reservations.conflicts import has_conflict, intervals_overlap
from room_reservation.reservations.model import AppliedChange, Reservation, ReservationReportRow, StateChange
from room_reservation.reservations.windows import LifecyclePolicy
from room_reservation.rooms.model import Room
from room_reservation.users.model import User

MANILA = timezone(timedelta(hours=8))


def at(hour: int, minute: int = 0, second: int = 0, *, day: int = 3) -> datetime:
    """Business time on 2025-03-<day> in UTC+08:00."""
    return datetime(2025, 3, day, hour, minute, second, tzinfo=MANILA)


class InMemoryStore:
    """Shared state behind the fake repositories.

    ``transaction()`` restores a snapshot when the body raises, like a rolled
    back database transaction. ``fail_next_event_insert`` makes the next
    attendance insert blow up after the reservation row was already updated.
    """

    def __init__(self):
        self.users: dict[int, User] = {}
        self.rooms: dict[int, Room] = {}
        self.reservations: dict[int, Reservation] = {}
        self.events: dict[int, AttendanceEvent] = {}
        self._ids = {"room": 0, "reservation": 0, "event": 0}

        self.fail_next_event_insert = False
        self.before_apply: list[Callable[[], None]] = []
        self.committed_batches: list[int] = []
        self.writes = 0

    def next_id(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    @contextmanager
    def transaction(self):
        snapshot = (dict(self.reservations), dict(self.events), dict(self._ids), self.writes)
        try:
            yield
        except Exception:
            self.reservations, self.events, self._ids, self.writes = snapshot
            raise

    def add_user(self, user: User) -> User:
        self.users[user.user_id] = user
        return user

    def add_room(self, name: str, capacity: int = 20, *, retired: bool = False, qr_epoch: int = 1) -> Room:
        room = Room(room_id=self.next_id("room"), name=name, capacity=capacity, retired=retired, qr_epoch=qr_epoch)
        self.rooms[room.room_id] = room
        return room

    def add_reservation(
        self,
        *,
        room_id: int,
        owner_id: int,
        start_at: datetime,
        end_at: datetime,
        state: ReservationState = ReservationState.SCHEDULED,
    ) -> Reservation:
        reservation = Reservation(
            reservation_id=self.next_id("reservation"),
            room_id=room_id,
            owner_id=owner_id,
            start_at=start_at,
            end_at=end_at,
            status=state.status,
            closed=state.closed,
        )
        self.reservations[reservation.reservation_id] = reservation
        return reservation

    def events_for(self, reservation_id: int) -> list[AttendanceEvent]:
        return [e for e in self.events.values() if e.reservation_id == reservation_id]


class InMemoryUsers:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._store.users.get(int(user_id))

    def get_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self._store.users.values() if u.username == username), None)


class InMemoryRooms:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, room_id: int) -> Optional[Room]:
        return self._store.rooms.get(int(room_id))

    def list_all(self) -> Sequence[Room]:
        return sorted(self._store.rooms.values(), key=lambda r: r.name)

    def create(self, *, name: str, capacity: int) -> int:
        return self._store.add_room(name, capacity).room_id

    def update(self, *, room_id: int, name: str, capacity: int, retired: bool, qr_epoch: int) -> bool:
        room = self._store.rooms.get(int(room_id))
        if not room:
            return False
        self._store.rooms[room.room_id] = replace(room, name=name, capacity=capacity, retired=retired, qr_epoch=qr_epoch)
        return True


class InMemoryAttendance:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def list_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceEvent]:
        items = [e for e in self._store.events.values() if e.user_id == user_id]
        items.sort(key=lambda e: (e.occurred_at, e.event_id), reverse=True)
        return items[:limit]

    def list_for_reservation(self, reservation_id: int) -> Sequence[AttendanceEvent]:
        return sorted(self._store.events_for(reservation_id), key=lambda e: e.event_id)


class InMemoryReservations:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, reservation_id: int) -> Optional[Reservation]:
        return self._store.reservations.get(int(reservation_id))

    def _check_slot(self, room_id: int, start_at: datetime, end_at: datetime, exclude: Optional[int] = None) -> None:
        if int(room_id) not in self._store.rooms:
            raise PreconditionError("Room is not available")
        if has_conflict(
            self._store.reservations.values(),
            room_id=int(room_id),
            start_at=start_at,
            end_at=end_at,
            exclude_reservation_id=exclude,
        ):
            raise PreconditionError("Time slot is already booked")

    def create(self, *, room_id: int, owner_id: int, start_at: datetime, end_at: datetime, created_at: datetime) -> int:
        with self._store.transaction():
            self._check_slot(room_id, start_at, end_at)
            reservation = Reservation(
                reservation_id=self._store.next_id("reservation"),
                room_id=int(room_id),
                owner_id=int(owner_id),
                start_at=start_at,
                end_at=end_at,
                status=ReservationStatus.SCHEDULED,
                created_at=created_at,
                updated_at=created_at,
            )
            self._store.reservations[reservation.reservation_id] = reservation
            self._store.writes += 1
            return reservation.reservation_id

    def reschedule(self, *, reservation_id: int, start_at: datetime, end_at: datetime, changed_at: datetime) -> bool:
        with self._store.transaction():
            current = self._store.reservations.get(int(reservation_id))
            if not current:
                return False
            self._check_slot(current.room_id, start_at, end_at, exclude=current.reservation_id)
            if current.state is not ReservationState.SCHEDULED:
                return False
            self._store.reservations[current.reservation_id] = replace(
                current, start_at=start_at, end_at=end_at, updated_at=changed_at
            )
            self._store.writes += 1
            return True

    def list_blocking(self, room_id: int, *, start_at: datetime, end_at: datetime) -> Sequence[Reservation]:
        return [
            r
            for r in self._store.reservations.values()
            if r.room_id == int(room_id) and r.state.blocks_room and intervals_overlap(start_at, end_at, r.start_at, r.end_at)
        ]

    def list_in_state(self, state: ReservationState):
        return [r for _, r in sorted(self._store.reservations.items()) if r.state is state]

    def find_for_user_in_room(self, *, room_id: int, user_id: int, state: ReservationState) -> Sequence[Reservation]:
        items = [
            r
            for r in self._store.reservations.values()
            if r.room_id == int(room_id) and r.owner_id == int(user_id) and r.state is state
        ]
        return sorted(items, key=lambda r: r.start_at)

    def find_open_session(self, user_id: int) -> Optional[Reservation]:
        return next(
            (
                r
                for r in self._store.reservations.values()
                if r.owner_id == int(user_id) and r.state is ReservationState.IN_SESSION
            ),
            None,
        )

    def list_for_owner(self, owner_id: int, *, limit: int) -> Sequence[Reservation]:
        items = [r for r in self._store.reservations.values() if r.owner_id == int(owner_id)]
        items.sort(key=lambda r: r.start_at, reverse=True)
        return items[:limit]

    def apply_changes(self, changes: Sequence[StateChange], *, strict: bool = True) -> Sequence[AppliedChange]:
        while self._store.before_apply:
            self._store.before_apply.pop(0)()

        applied: list[AppliedChange] = []
        if not changes:
            return applied

        with self._store.transaction():
            for change in changes:
                current = self._store.reservations.get(change.reservation_id)
                if not current or current.state is not change.expected:
                    if strict:
                        raise ConcurrencyError("Reservation was changed by someone else, reload and try again")
                    continue
                if change.target is ReservationState.IN_SESSION and any(
                    r.owner_id == current.owner_id
                    and r.reservation_id != current.reservation_id
                    and r.state is ReservationState.IN_SESSION
                    for r in self._store.reservations.values()
                ):
                    if strict:
                        raise PreconditionError("You already have an active session")
                    continue

                self._store.reservations[current.reservation_id] = replace(
                    current,
                    status=change.target.status,
                    closed=change.target.closed,
                    finalized_at=current.finalized_at or change.finalized_at,
                    updated_at=change.changed_at,
                )
                self._store.writes += 1

                event_id = None
                if change.event is not None:
                    if self._store.fail_next_event_insert:
                        self._store.fail_next_event_insert = False
                        raise InfrastructureError("simulated store failure")
                    ev = change.event
                    # Round-trip through JSON like the signals column does.
                    signals = json.loads(json.dumps(ev.signals)) if ev.signals is not None else None
                    event_id = self._store.next_id("event")
                    self._store.events[event_id] = AttendanceEvent(
                        event_id=event_id,
                        reservation_id=ev.reservation_id,
                        room_id=ev.room_id,
                        user_id=ev.user_id,
                        kind=ev.kind,
                        method=ev.method,
                        occurred_at=ev.occurred_at,
                        signals=signals,
                    )
                    self._store.writes += 1
                applied.append(AppliedChange(reservation_id=change.reservation_id, event_id=event_id))

        self._store.committed_batches.append(len(changes))
        return applied

    def get_report_rows(self, *, start_at: datetime, end_at: datetime, room_id: Optional[int] = None):
        rows = []
        for r in sorted(self._store.reservations.values(), key=lambda x: (x.start_at, x.reservation_id)):
            if not (start_at <= r.start_at < end_at):
                continue
            if room_id is not None and r.room_id != int(room_id):
                continue
            events = self._store.events_for(r.reservation_id)
            ci = next((e for e in events if e.kind is AttendanceKind.CHECK_IN), None)
            co = next((e for e in events if e.kind is AttendanceKind.CHECK_OUT), None)
            rows.append(
                ReservationReportRow(
                    reservation_id=r.reservation_id,
                    room_id=r.room_id,
                    room_name=self._store.rooms[r.room_id].name,
                    owner_id=r.owner_id,
                    owner_name=self._store.users[r.owner_id].full_name,
                    start_at=r.start_at,
                    end_at=r.end_at,
                    status=r.status,
                    closed=r.closed,
                    checked_in_at=ci.occurred_at if ci else None,
                    checked_out_at=co.occurred_at if co else None,
                    check_out_method=co.method if co else None,
                )
            )
        return rows


@pytest.fixture
def fixed_now() -> datetime:
    return at(8, 0)


@pytest.fixture
def policy() -> LifecyclePolicy:
    return LifecyclePolicy(tz=MANILA)


@pytest.fixture
def store() -> InMemoryStore:
    s = InMemoryStore()
    s.add_user(User(1, "Admin", "admin", generate_password_hash("admin123"), Role.ADMIN))
    s.add_user(User(2, "Prof. Reyes", "reyes", generate_password_hash("prof123"), Role.PROFESSOR))
    s.add_user(User(3, "Prof. Santos", "santos", generate_password_hash("prof123"), Role.PROFESSOR))
    s.add_user(User(4, "Prof. Former", "former", generate_password_hash("prof123"), Role.PROFESSOR, is_active=False))
    s.add_room("Room 101", 30)
    s.add_room("Room 102", 12)
    s.add_room("Old Lab", 8, retired=True, qr_epoch=2)
    return s


@pytest.fixture
def admin(store) -> User:
    return store.users[1]


@pytest.fixture
def prof(store) -> User:
    return store.users[2]


@pytest.fixture
def other_prof(store) -> User:
    return store.users[3]


@pytest.fixture
def container(store, policy):
    return assemble_container(
        users_repo=InMemoryUsers(store),
        rooms_repo=InMemoryRooms(store),
        reservations_repo=InMemoryReservations(store),
        attendance_repo=InMemoryAttendance(store),
        policy=policy,
    )
