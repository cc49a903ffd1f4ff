from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Room
from .repository import RoomRepository

_COLUMNS = "room_id, name, capacity, is_retired, qr_epoch"


def _to_room(row: Dict[str, Any]) -> Room:
    return Room(
        room_id=int(row["room_id"]),
        name=row["name"],
        capacity=int(row["capacity"]),
        retired=bool(row["is_retired"]),
        qr_epoch=int(row["qr_epoch"]),
    )


class MySQLRoomRepository(RoomRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, room_id: int) -> Optional[Room]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM rooms WHERE room_id=%s", (int(room_id),))
            row = fetchone(cur)
            return _to_room(row) if row else None

    def list_all(self) -> Sequence[Room]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM rooms ORDER BY is_retired ASC, name ASC")
            return [_to_room(r) for r in fetchall(cur)]

    def create(self, *, name: str, capacity: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO rooms(name, capacity, is_retired, qr_epoch) VALUES(%s,%s,0,1)",
                (name, int(capacity)),
            )
            return int(cur.lastrowid)

    def update(self, *, room_id: int, name: str, capacity: int, retired: bool, qr_epoch: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE rooms
                SET name=%s, capacity=%s, is_retired=%s, qr_epoch=%s
                WHERE room_id=%s
                """,
                (name, int(capacity), 1 if retired else 0, int(qr_epoch), int(room_id)),
            )
            return cur.rowcount > 0
