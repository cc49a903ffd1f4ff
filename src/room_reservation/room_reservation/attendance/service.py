from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence

from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceKind, AttendanceMethod, LifecycleEvent, ReservationState
from ..core.exceptions import PreconditionError, ValidationError
from ..reservations.repository import ReservationRepository
from ..reservations.state_machine import plan_change
from ..reservations.windows import LifecyclePolicy
from ..rooms.model import Room, parse_qr_payload
from ..rooms.service import RoomService
from ..users.model import User
from ..users.service import require_booking_privilege
from .model import AttendanceEvent, NewAttendanceEvent
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckInResult:
    check_in_id: int
    reservation_id: int
    start_time: datetime


@dataclass(frozen=True)
class CheckOutResult:
    check_out_id: int
    reservation_id: int
    end_time: datetime


class CheckInService:
    """Records QR check-ins/check-outs against the caller's reservation."""

    def __init__(
        self,
        reservations: ReservationRepository,
        attendance: AttendanceRepository,
        rooms: RoomService,
        *,
        policy: LifecyclePolicy,
    ):
        self._reservations = reservations
        self._attendance = attendance
        self._rooms = rooms
        self._policy = policy

    def _resolve_room(self, room_id: Optional[int], qr: Optional[str]) -> Room:
        if qr:
            room = self._rooms.resolve_scan(qr)
            if room_id is not None and int(room_id) != room.room_id:
                raise ValidationError("QR code does not match the selected room")
            return room
        if room_id is None:
            raise ValidationError("roomId or qr is required")
        return self._rooms.require_bookable(room_id)

    def check_in(
        self,
        *,
        current_user: User,
        now: datetime,
        room_id: Optional[int] = None,
        qr: Optional[str] = None,
        signals: Optional[dict[str, Any]] = None,
    ) -> CheckInResult:
        if signals is not None and not isinstance(signals, dict):
            raise ValidationError("signals must be an object")
        require_booking_privilege(current_user)
        room = self._resolve_room(room_id, qr)

        if self._reservations.find_open_session(current_user.user_id):
            raise PreconditionError("You already have an active session")

        candidates = self._reservations.find_for_user_in_room(
            room_id=room.room_id,
            user_id=current_user.user_id,
            state=ReservationState.SCHEDULED,
        )
        reservation = next((r for r in candidates if self._policy.is_within_check_in_window(r.start_at, now)), None)
        if not reservation:
            raise PreconditionError("No valid reservation found for check-in")

        change = plan_change(
            reservation,
            LifecycleEvent.CHECK_IN,
            at=now,
            attendance=NewAttendanceEvent(
                reservation_id=reservation.reservation_id,
                room_id=room.room_id,
                user_id=current_user.user_id,
                kind=AttendanceKind.CHECK_IN,
                method=AttendanceMethod.QR,
                occurred_at=now,
                signals=signals,
            ),
        )
        applied = self._reservations.apply_changes([change], strict=True)[0]
        logger.info(
            "Check-in %s: reservation=%s room=%s user=%s",
            applied.event_id,
            reservation.reservation_id,
            room.room_id,
            current_user.user_id,
        )
        return CheckInResult(
            check_in_id=int(applied.event_id),
            reservation_id=reservation.reservation_id,
            start_time=self._policy.localize(reservation.start_at),
        )

    def check_out(
        self,
        *,
        current_user: User,
        now: datetime,
        room_id: Optional[int] = None,
        qr: Optional[str] = None,
    ) -> CheckOutResult:
        require_booking_privilege(current_user)
        # Checking out of a room retired mid-session is still allowed.
        if qr:
            room_id = parse_qr_payload(qr).room_id
        if room_id is None:
            raise ValidationError("roomId or qr is required")

        sessions = self._reservations.find_for_user_in_room(
            room_id=int(room_id),
            user_id=current_user.user_id,
            state=ReservationState.IN_SESSION,
        )
        if not sessions:
            raise PreconditionError("No active session found")
        session = sessions[0]

        change = plan_change(
            session,
            LifecycleEvent.CHECK_OUT,
            at=now,
            attendance=NewAttendanceEvent(
                reservation_id=session.reservation_id,
                room_id=session.room_id,
                user_id=current_user.user_id,
                kind=AttendanceKind.CHECK_OUT,
                method=AttendanceMethod.QR,
                occurred_at=now,
            ),
        )
        applied = self._reservations.apply_changes([change], strict=True)[0]
        logger.info(
            "Check-out %s: reservation=%s room=%s user=%s",
            applied.event_id,
            session.reservation_id,
            session.room_id,
            current_user.user_id,
        )
        return CheckOutResult(
            check_out_id=int(applied.event_id),
            reservation_id=session.reservation_id,
            end_time=self._policy.localize(now),
        )

    def history(self, *, current_user: User, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceEvent]:
        return self._attendance.list_recent_for_user(current_user.user_id, int(limit))
