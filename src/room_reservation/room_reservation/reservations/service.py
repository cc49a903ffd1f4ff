from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import now_in
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import LifecycleEvent
from ..core.exceptions import AuthorizationError, ConcurrencyError, NotFoundError, PreconditionError, ValidationError
from ..rooms.service import RoomService
from ..users.model import User
from ..users.service import require_booking_privilege
from .conflicts import has_conflict
from .model import Reservation
from .repository import ReservationRepository
from .state_machine import next_state, plan_change
from .windows import LifecyclePolicy

logger = logging.getLogger(__name__)


def _require_window(start_at: datetime, end_at: datetime) -> None:
    for value, name in ((start_at, "startAt"), (end_at, "endAt")):
        if not isinstance(value, datetime) or value.tzinfo is None:
            raise ValidationError(f"{name} must be a timestamp with a UTC offset")
    if start_at >= end_at:
        raise ValidationError("Start time must be before end time")


class ReservationService:
    """Create / update / cancel entry points guarding the booking rules."""

    def __init__(self, reservations: ReservationRepository, rooms: RoomService, *, policy: LifecyclePolicy):
        self._reservations = reservations
        self._rooms = rooms
        self._policy = policy

    def has_conflict(
        self,
        room_id: int,
        start_at: datetime,
        end_at: datetime,
        exclude_reservation_id: Optional[int] = None,
    ) -> bool:
        existing = self._reservations.list_blocking(int(room_id), start_at=start_at, end_at=end_at)
        return has_conflict(
            existing,
            room_id=int(room_id),
            start_at=start_at,
            end_at=end_at,
            exclude_reservation_id=exclude_reservation_id,
        )

    def create_reservation(
        self,
        *,
        current_user: User,
        room_id: int,
        start_at: datetime,
        end_at: datetime,
        now: Optional[datetime] = None,
    ) -> int:
        _require_window(start_at, end_at)
        require_booking_privilege(current_user)

        self._rooms.require_bookable(room_id)
        if self.has_conflict(room_id, start_at, end_at):
            raise PreconditionError("Time slot is already booked")

        reservation_id = self._reservations.create(
            room_id=int(room_id),
            owner_id=current_user.user_id,
            start_at=start_at,
            end_at=end_at,
            created_at=now or now_in(self._policy.tz),
        )
        logger.info(
            "Reservation %s created: room=%s user=%s %s..%s",
            reservation_id,
            room_id,
            current_user.user_id,
            self._policy.localize(start_at).isoformat(),
            self._policy.localize(end_at).isoformat(),
        )
        return reservation_id

    def update_reservation(
        self,
        *,
        current_user: User,
        reservation_id: int,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> int:
        if start_at is not None and end_at is not None:
            _require_window(start_at, end_at)

        reservation = self._get_owned(current_user, reservation_id)
        require_booking_privilege(current_user)
        next_state(reservation.state, LifecycleEvent.RESCHEDULE)

        if start_at is None and end_at is None:
            return reservation.reservation_id

        new_start = start_at or reservation.start_at
        new_end = end_at or reservation.end_at
        _require_window(new_start, new_end)

        if self.has_conflict(reservation.room_id, new_start, new_end, exclude_reservation_id=reservation.reservation_id):
            raise PreconditionError("Time slot is already booked")

        if not self._reservations.reschedule(
            reservation_id=reservation.reservation_id,
            start_at=new_start,
            end_at=new_end,
            changed_at=now or now_in(self._policy.tz),
        ):
            raise ConcurrencyError("Reservation was changed by someone else, reload and try again")

        logger.info("Reservation %s rescheduled by user %s", reservation.reservation_id, current_user.user_id)
        return reservation.reservation_id

    def cancel_reservation(
        self,
        *,
        current_user: User,
        reservation_id: int,
        now: Optional[datetime] = None,
    ) -> int:
        reservation = self._get_owned(current_user, reservation_id)
        require_booking_privilege(current_user)

        change = plan_change(reservation, LifecycleEvent.CANCEL, at=now or now_in(self._policy.tz))
        self._reservations.apply_changes([change], strict=True)

        logger.info("Reservation %s cancelled by user %s", reservation.reservation_id, current_user.user_id)
        return reservation.reservation_id

    def get_reservation(self, *, current_user: User, reservation_id: int) -> Reservation:
        reservation = self._reservations.get_by_id(int(reservation_id))
        if not reservation:
            raise NotFoundError("Reservation not found")
        if reservation.owner_id != current_user.user_id and not current_user.is_admin:
            raise AuthorizationError("You can only view your own reservations")
        return reservation

    def list_my_reservations(self, *, current_user: User, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[Reservation]:
        return self._reservations.list_for_owner(current_user.user_id, limit=int(limit))

    def _get_owned(self, current_user: User, reservation_id: int) -> Reservation:
        reservation = self._reservations.get_by_id(int(reservation_id))
        if not reservation:
            raise NotFoundError("Reservation not found")
        if reservation.owner_id != current_user.user_id:
            raise AuthorizationError("You can only change your own reservations")
        return reservation
