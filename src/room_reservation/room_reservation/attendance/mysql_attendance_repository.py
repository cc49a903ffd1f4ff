from __future__ import annotations

import json
from typing import Any, Dict, Sequence

from ..core.enums import AttendanceKind, AttendanceMethod
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, from_db_datetime
from .model import AttendanceEvent
from .repository import AttendanceRepository

_COLUMNS = "event_id, reservation_id, room_id, user_id, kind, method, occurred_at, signals"


def _to_event(row: Dict[str, Any]) -> AttendanceEvent:
    signals = row.get("signals")
    if isinstance(signals, (bytes, bytearray)):
        signals = signals.decode("utf-8")
    if isinstance(signals, str):
        signals = json.loads(signals)
    return AttendanceEvent(
        event_id=int(row["event_id"]),
        reservation_id=int(row["reservation_id"]),
        room_id=int(row["room_id"]),
        user_id=int(row["user_id"]),
        kind=AttendanceKind(row["kind"]),
        method=AttendanceMethod(row["method"]),
        occurred_at=from_db_datetime(row["occurred_at"]),
        signals=signals,
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_events
                WHERE user_id=%s
                ORDER BY occurred_at DESC, event_id DESC
                LIMIT %s
                """,
                (int(user_id), int(limit)),
            )
            return [_to_event(r) for r in fetchall(cur)]

    def list_for_reservation(self, reservation_id: int) -> Sequence[AttendanceEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_events WHERE reservation_id=%s ORDER BY event_id ASC",
                (int(reservation_id),),
            )
            return [_to_event(r) for r in fetchall(cur)]
