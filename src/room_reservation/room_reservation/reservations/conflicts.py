from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from ..core.exceptions import ValidationError
from .model import Reservation


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Return True when two time intervals overlap.

    Intervals are treated as half-open ranges: [start, end)
    so 09:00-10:00 and 10:00-11:00 do not conflict.
    """
    return start_a < end_b and end_a > start_b


def find_conflicts(
    existing: Iterable[Reservation],
    *,
    room_id: int,
    start_at: datetime,
    end_at: datetime,
    exclude_reservation_id: Optional[int] = None,
) -> list[Reservation]:
    """Reservations on ``room_id`` that still hold the room and overlap [start_at, end_at)."""
    if start_at >= end_at:
        raise ValidationError("Start time must be before end time")

    return [
        r
        for r in existing
        if r.room_id == room_id
        and r.reservation_id != exclude_reservation_id
        and r.state.blocks_room
        and intervals_overlap(start_at, end_at, r.start_at, r.end_at)
    ]


def has_conflict(
    existing: Iterable[Reservation],
    *,
    room_id: int,
    start_at: datetime,
    end_at: datetime,
    exclude_reservation_id: Optional[int] = None,
) -> bool:
    return bool(
        find_conflicts(
            existing,
            room_id=room_id,
            start_at=start_at,
            end_at=end_at,
            exclude_reservation_id=exclude_reservation_id,
        )
    )
