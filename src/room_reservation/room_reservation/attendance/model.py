from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..core.enums import AttendanceKind, AttendanceMethod


@dataclass(frozen=True)
class NewAttendanceEvent:
    """Attendance event not yet written; the id is assigned by the store."""

    reservation_id: int
    room_id: int
    user_id: int
    kind: AttendanceKind
    method: AttendanceMethod
    occurred_at: datetime
    signals: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class AttendanceEvent:
    """Domain entity: append-only check-in / check-out record."""

    event_id: int
    reservation_id: int
    room_id: int
    user_id: int
    kind: AttendanceKind
    method: AttendanceMethod
    occurred_at: datetime
    signals: Optional[dict[str, Any]] = None
