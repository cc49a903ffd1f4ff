from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..attendance.model import NewAttendanceEvent
from ..core.enums import AttendanceMethod, ReservationState, ReservationStatus


@dataclass(frozen=True)
class Reservation:
    """Domain entity: a claim on one room for [start_at, end_at)."""

    reservation_id: int
    room_id: int
    owner_id: int
    start_at: datetime
    end_at: datetime
    status: ReservationStatus
    closed: bool = False
    finalized_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.start_at >= self.end_at:
            raise ValueError("Reservation start time must be earlier than end time.")

    @property
    def state(self) -> ReservationState:
        return ReservationState.from_columns(self.status, self.closed)


@dataclass(frozen=True)
class StateChange:
    """A conditional write: move ``reservation_id`` from ``expected`` to ``target``.

    The store applies it only if the persisted state still equals ``expected``.
    ``event`` is written in the same transaction when present.
    """

    reservation_id: int
    expected: ReservationState
    target: ReservationState
    changed_at: datetime
    event: Optional[NewAttendanceEvent] = None

    @property
    def finalized_at(self) -> Optional[datetime]:
        return self.changed_at if self.target.closed else None

    @property
    def write_count(self) -> int:
        return 2 if self.event else 1


@dataclass(frozen=True)
class AppliedChange:
    reservation_id: int
    event_id: Optional[int] = None


@dataclass(frozen=True)
class ReservationReportRow:
    """Read-model for reports (reservation joined with room, owner and attendance)."""

    reservation_id: int
    room_id: int
    room_name: str
    owner_id: int
    owner_name: str
    start_at: datetime
    end_at: datetime
    status: ReservationStatus
    closed: bool
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    check_out_method: Optional[AttendanceMethod] = None

    @property
    def state(self) -> ReservationState:
        return ReservationState.from_columns(self.status, self.closed)
