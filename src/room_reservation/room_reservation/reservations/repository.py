from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import ReservationState
from .model import AppliedChange, Reservation, ReservationReportRow, StateChange


class ReservationRepository(Protocol):
    def get_by_id(self, reservation_id: int) -> Optional[Reservation]:
        raise NotImplementedError

    def create(self, *, room_id: int, owner_id: int, start_at: datetime, end_at: datetime, created_at: datetime) -> int:
        """Insert a SCHEDULED, open reservation.

        Implementations serialize bookings per room and re-check conflicts in the
        same transaction; a collision raises PreconditionError.
        """

        raise NotImplementedError

    def reschedule(self, *, reservation_id: int, start_at: datetime, end_at: datetime, changed_at: datetime) -> bool:
        """Move the window of a reservation that is still SCHEDULED and open.

        Returns False when the reservation changed state meanwhile; raises
        PreconditionError if the new window collides with another booking.
        """

        raise NotImplementedError

    def list_blocking(self, room_id: int, *, start_at: datetime, end_at: datetime) -> Sequence[Reservation]:
        """SCHEDULED / IN_SESSION open reservations on the room overlapping the window."""

        raise NotImplementedError

    def list_in_state(self, state: ReservationState) -> Iterable[Reservation]:
        raise NotImplementedError

    def find_for_user_in_room(self, *, room_id: int, user_id: int, state: ReservationState) -> Sequence[Reservation]:
        """Ordered by start time."""

        raise NotImplementedError

    def find_open_session(self, user_id: int) -> Optional[Reservation]:
        """The user's IN_SESSION reservation in any room, if any."""

        raise NotImplementedError

    def list_for_owner(self, owner_id: int, *, limit: int) -> Sequence[Reservation]:
        raise NotImplementedError

    def apply_changes(self, changes: Sequence[StateChange], *, strict: bool = True) -> Sequence[AppliedChange]:
        """Apply conditional state changes (and their events) in one transaction.

        strict=True: any change whose expected state no longer matches raises
        ConcurrencyError and nothing is written.
        strict=False: such changes are skipped; the others commit.

        A change into IN_SESSION also requires that its owner holds no other
        IN_SESSION reservation, checked under a lock on the owner. Under
        strict=True a violation raises PreconditionError.
        """

        raise NotImplementedError

    def get_report_rows(
        self,
        *,
        start_at: datetime,
        end_at: datetime,
        room_id: Optional[int] = None,
    ) -> Sequence[ReservationReportRow]:
        raise NotImplementedError
