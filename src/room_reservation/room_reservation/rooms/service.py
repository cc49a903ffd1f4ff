from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Sequence

from ..common.validators import require_non_empty, require_positive_int
from ..core.exceptions import NotFoundError, PreconditionError, ValidationError
from ..users.model import User
from ..users.service import require_admin
from .model import Room, parse_qr_payload
from .repository import RoomRepository

logger = logging.getLogger(__name__)


class RoomService:
    def __init__(self, rooms: RoomRepository):
        self._rooms = rooms

    def list_rooms(self, *, include_retired: bool = False) -> Sequence[Room]:
        rooms = self._rooms.list_all()
        if include_retired:
            return list(rooms)
        return [r for r in rooms if not r.retired]

    def get_room(self, room_id: int) -> Room:
        room = self._rooms.get_by_id(int(room_id))
        if not room:
            raise NotFoundError("Room not found")
        return room

    def require_bookable(self, room_id: int) -> Room:
        """Room must exist and not be retired; used by booking and check-in."""
        room = self._rooms.get_by_id(int(room_id))
        if not room or room.retired:
            raise PreconditionError("Room is not available")
        return room

    def resolve_scan(self, payload: str) -> Room:
        """Map a scanned QR payload to a live room, rejecting codes printed before the last epoch bump."""
        qr = parse_qr_payload(payload)
        room = self.require_bookable(qr.room_id)
        if qr.epoch is not None and qr.epoch != room.qr_epoch:
            raise PreconditionError("This QR code has been replaced, scan the current code on the door")
        return room

    def create_room(self, *, current_user: User, name: str, capacity) -> Room:
        require_admin(current_user)
        name = require_non_empty(name, "Room name")
        capacity = require_positive_int(capacity, "Capacity")
        room_id = self._rooms.create(name=name, capacity=capacity)
        logger.info("Room %s created by user %s", room_id, current_user.user_id)
        return self.get_room(room_id)

    def update_room(
        self,
        *,
        current_user: User,
        room_id: int,
        name: Optional[str] = None,
        capacity=None,
        retired: Optional[bool] = None,
        bump_qr: bool = False,
    ) -> Room:
        require_admin(current_user)
        room = self.get_room(room_id)

        updated = room
        if name is not None:
            updated = replace(updated, name=require_non_empty(name, "Room name"))
        if capacity is not None:
            updated = replace(updated, capacity=require_positive_int(capacity, "Capacity"))
        if retired is not None:
            if not isinstance(retired, bool):
                raise ValidationError("retired must be true or false")
            updated = replace(updated, retired=retired)

        # Retiring a room invalidates the printed QR code.
        if bump_qr or (updated.retired and not room.retired):
            updated = replace(updated, qr_epoch=room.qr_epoch + 1)

        if updated == room:
            return room

        if not self._rooms.update(
            room_id=updated.room_id,
            name=updated.name,
            capacity=updated.capacity,
            retired=updated.retired,
            qr_epoch=updated.qr_epoch,
        ):
            raise NotFoundError("Room not found")
        logger.info("Room %s updated by user %s (qr_epoch=%s)", room.room_id, current_user.user_id, updated.qr_epoch)
        return updated
