from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    ADMIN = "admin"
    PROFESSOR = "professor"


class ReservationStatus(str, Enum):
    """Status column as stored in the database."""

    SCHEDULED = "SCHEDULED"
    IN_SESSION = "IN_SESSION"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"
    CANCELLED = "CANCELLED"


class ReservationState(str, Enum):
    """Lifecycle state of a reservation.

    Folds the stored ``status`` + ``closed`` pair into one value so that
    combinations such as an open COMPLETED reservation cannot be expressed.
    """

    SCHEDULED = "SCHEDULED"
    IN_SESSION = "IN_SESSION"
    COMPLETED = "COMPLETED"
    NO_SHOW_OPEN = "NO_SHOW_OPEN"
    NO_SHOW_CLOSED = "NO_SHOW_CLOSED"
    CANCELLED = "CANCELLED"

    @property
    def status(self) -> ReservationStatus:
        return _STATE_COLUMNS[self][0]

    @property
    def closed(self) -> bool:
        return _STATE_COLUMNS[self][1]

    @property
    def blocks_room(self) -> bool:
        """Whether the reservation still holds its time slot."""
        return self in (ReservationState.SCHEDULED, ReservationState.IN_SESSION)

    @classmethod
    def from_columns(cls, status: ReservationStatus, closed: bool) -> "ReservationState":
        status = ReservationStatus(status)
        closed = bool(closed)
        for state, columns in _STATE_COLUMNS.items():
            if columns == (status, closed):
                return state
        if status == ReservationStatus.SCHEDULED and closed:
            # Legacy rows cancelled before the CANCELLED status existed.
            return cls.CANCELLED
        raise ValueError(f"Invalid reservation columns: status={status.value} closed={closed}")


_STATE_COLUMNS: dict[ReservationState, tuple[ReservationStatus, bool]] = {
    ReservationState.SCHEDULED: (ReservationStatus.SCHEDULED, False),
    ReservationState.IN_SESSION: (ReservationStatus.IN_SESSION, False),
    ReservationState.COMPLETED: (ReservationStatus.COMPLETED, True),
    ReservationState.NO_SHOW_OPEN: (ReservationStatus.NO_SHOW, False),
    ReservationState.NO_SHOW_CLOSED: (ReservationStatus.NO_SHOW, True),
    ReservationState.CANCELLED: (ReservationStatus.CANCELLED, True),
}


class LifecycleEvent(str, Enum):
    """Trigger that moves a reservation between states."""

    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"
    AUTO_CHECK_OUT = "AUTO_CHECK_OUT"
    MARK_NO_SHOW = "MARK_NO_SHOW"
    CLOSE_NO_SHOW = "CLOSE_NO_SHOW"
    CANCEL = "CANCEL"
    RESCHEDULE = "RESCHEDULE"


class AttendanceKind(str, Enum):
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"


class AttendanceMethod(str, Enum):
    """QR: scanned by the user. AUTO: written by the sweeper."""

    QR = "QR"
    AUTO = "AUTO"
