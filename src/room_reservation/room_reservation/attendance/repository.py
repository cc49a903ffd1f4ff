from __future__ import annotations

from typing import Protocol, Sequence

from .model import AttendanceEvent


class AttendanceRepository(Protocol):
    """Read side of the attendance ledger.

    Events are only ever written together with a reservation transition, see
    ReservationRepository.apply_changes.
    """

    def list_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceEvent]:
        raise NotImplementedError

    def list_for_reservation(self, reservation_id: int) -> Sequence[AttendanceEvent]:
        raise NotImplementedError
