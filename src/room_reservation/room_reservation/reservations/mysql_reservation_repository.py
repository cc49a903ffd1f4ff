from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterator, Optional, Sequence

from ..core.enums import AttendanceMethod, ReservationState, ReservationStatus
from ..core.exceptions import ConcurrencyError, PreconditionError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, to_db_datetime
from .conflicts import has_conflict
from .model import AppliedChange, Reservation, ReservationReportRow, StateChange
from .repository import ReservationRepository

logger = logging.getLogger(__name__)

_COLUMNS = "reservation_id, room_id, user_id, start_at, end_at, status, closed, finalized_at, created_at, updated_at"
_BLOCKING = (ReservationStatus.SCHEDULED.value, ReservationStatus.IN_SESSION.value)


def _to_reservation(row: Dict[str, Any]) -> Reservation:
    return Reservation(
        reservation_id=int(row["reservation_id"]),
        room_id=int(row["room_id"]),
        owner_id=int(row["user_id"]),
        start_at=from_db_datetime(row["start_at"]),
        end_at=from_db_datetime(row["end_at"]),
        status=ReservationStatus(row["status"]),
        closed=bool(row["closed"]),
        finalized_at=from_db_datetime(row.get("finalized_at")),
        created_at=from_db_datetime(row.get("created_at")),
        updated_at=from_db_datetime(row.get("updated_at")),
    )


class MySQLReservationRepository(ReservationRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, scan_page_size: int = 1000):
        self._conn_factory = conn_factory
        self._scan_page_size = int(scan_page_size)

    def get_by_id(self, reservation_id: int) -> Optional[Reservation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM reservations WHERE reservation_id=%s", (int(reservation_id),))
            row = fetchone(cur)
            return _to_reservation(row) if row else None

    def _lock_room_and_check(
        self,
        cur,
        *,
        room_id: int,
        start_at: datetime,
        end_at: datetime,
        exclude_reservation_id: Optional[int] = None,
    ) -> None:
        # Row lock on the room serializes concurrent bookings of the same room.
        cur.execute("SELECT room_id FROM rooms WHERE room_id=%s FOR UPDATE", (int(room_id),))
        if not fetchone(cur):
            raise PreconditionError("Room is not available")

        cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM reservations
            WHERE room_id=%s AND closed=0 AND status IN (%s,%s)
              AND start_at < %s AND end_at > %s
            """,
            (int(room_id), *_BLOCKING, to_db_datetime(end_at), to_db_datetime(start_at)),
        )
        existing = [_to_reservation(r) for r in fetchall(cur)]
        if has_conflict(
            existing,
            room_id=int(room_id),
            start_at=start_at,
            end_at=end_at,
            exclude_reservation_id=exclude_reservation_id,
        ):
            raise PreconditionError("Time slot is already booked")

    def _lock_owner_has_other_session(self, cur, reservation_id: int) -> bool:
        cur.execute("SELECT user_id FROM reservations WHERE reservation_id=%s", (int(reservation_id),))
        row = fetchone(cur)
        if not row:
            return False
        owner_id = int(row["user_id"])
        # Row lock on the owner serializes concurrent check-ins by the same user.
        cur.execute("SELECT user_id FROM users WHERE user_id=%s FOR UPDATE", (owner_id,))
        fetchone(cur)
        cur.execute(
            """
            SELECT reservation_id
            FROM reservations
            WHERE user_id=%s AND status=%s AND closed=0 AND reservation_id<>%s
            LIMIT 1
            """,
            (owner_id, ReservationStatus.IN_SESSION.value, int(reservation_id)),
        )
        return fetchone(cur) is not None

    def create(self, *, room_id: int, owner_id: int, start_at: datetime, end_at: datetime, created_at: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            self._lock_room_and_check(cur, room_id=room_id, start_at=start_at, end_at=end_at)
            cur.execute(
                """
                INSERT INTO reservations(room_id, user_id, start_at, end_at, status, closed, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,0,%s,%s)
                """,
                (
                    int(room_id),
                    int(owner_id),
                    to_db_datetime(start_at),
                    to_db_datetime(end_at),
                    ReservationStatus.SCHEDULED.value,
                    to_db_datetime(created_at),
                    to_db_datetime(created_at),
                ),
            )
            return int(cur.lastrowid)

    def reschedule(self, *, reservation_id: int, start_at: datetime, end_at: datetime, changed_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT room_id FROM reservations WHERE reservation_id=%s", (int(reservation_id),))
            row = fetchone(cur)
            if not row:
                return False
            self._lock_room_and_check(
                cur,
                room_id=int(row["room_id"]),
                start_at=start_at,
                end_at=end_at,
                exclude_reservation_id=int(reservation_id),
            )
            cur.execute(
                """
                UPDATE reservations
                SET start_at=%s, end_at=%s, updated_at=%s
                WHERE reservation_id=%s AND status=%s AND closed=0
                """,
                (
                    to_db_datetime(start_at),
                    to_db_datetime(end_at),
                    to_db_datetime(changed_at),
                    int(reservation_id),
                    ReservationStatus.SCHEDULED.value,
                ),
            )
            return cur.rowcount > 0

    def list_blocking(self, room_id: int, *, start_at: datetime, end_at: datetime) -> Sequence[Reservation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM reservations
                WHERE room_id=%s AND closed=0 AND status IN (%s,%s)
                  AND start_at < %s AND end_at > %s
                ORDER BY start_at ASC
                """,
                (int(room_id), *_BLOCKING, to_db_datetime(end_at), to_db_datetime(start_at)),
            )
            return [_to_reservation(r) for r in fetchall(cur)]

    def list_in_state(self, state: ReservationState) -> Iterator[Reservation]:
        # Keyset pagination keeps each read short while the sweeper writes in between.
        last_id = 0
        while True:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM reservations
                    WHERE status=%s AND closed=%s AND reservation_id > %s
                    ORDER BY reservation_id ASC
                    LIMIT %s
                    """,
                    (state.status.value, 1 if state.closed else 0, last_id, self._scan_page_size),
                )
                rows = fetchall(cur)
            if not rows:
                return
            for r in rows:
                yield _to_reservation(r)
            last_id = int(rows[-1]["reservation_id"])
            if len(rows) < self._scan_page_size:
                return

    def find_for_user_in_room(self, *, room_id: int, user_id: int, state: ReservationState) -> Sequence[Reservation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM reservations
                WHERE room_id=%s AND user_id=%s AND status=%s AND closed=%s
                ORDER BY start_at ASC
                """,
                (int(room_id), int(user_id), state.status.value, 1 if state.closed else 0),
            )
            return [_to_reservation(r) for r in fetchall(cur)]

    def find_open_session(self, user_id: int) -> Optional[Reservation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM reservations
                WHERE user_id=%s AND status=%s AND closed=0
                ORDER BY start_at ASC
                LIMIT 1
                """,
                (int(user_id), ReservationStatus.IN_SESSION.value),
            )
            row = fetchone(cur)
            return _to_reservation(row) if row else None

    def list_for_owner(self, owner_id: int, *, limit: int) -> Sequence[Reservation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM reservations
                WHERE user_id=%s
                ORDER BY start_at DESC
                LIMIT %s
                """,
                (int(owner_id), int(limit)),
            )
            return [_to_reservation(r) for r in fetchall(cur)]

    def apply_changes(self, changes: Sequence[StateChange], *, strict: bool = True) -> Sequence[AppliedChange]:
        applied: list[AppliedChange] = []
        if not changes:
            return applied

        with db_cursor(self._conn_factory) as (_, cur):
            for change in changes:
                if change.target is ReservationState.IN_SESSION and self._lock_owner_has_other_session(
                    cur, change.reservation_id
                ):
                    if strict:
                        raise PreconditionError("You already have an active session")
                    logger.info("Skipped reservation %s: owner already has an active session", change.reservation_id)
                    continue

                cur.execute(
                    """
                    UPDATE reservations
                    SET status=%s, closed=%s, finalized_at=COALESCE(finalized_at, %s), updated_at=%s
                    WHERE reservation_id=%s AND status=%s AND closed=%s
                    """,
                    (
                        change.target.status.value,
                        1 if change.target.closed else 0,
                        to_db_datetime(change.finalized_at),
                        to_db_datetime(change.changed_at),
                        int(change.reservation_id),
                        change.expected.status.value,
                        1 if change.expected.closed else 0,
                    ),
                )
                if cur.rowcount != 1:
                    if strict:
                        raise ConcurrencyError("Reservation was changed by someone else, reload and try again")
                    logger.info(
                        "Skipped reservation %s: no longer %s",
                        change.reservation_id,
                        change.expected.value,
                    )
                    continue

                event_id = None
                if change.event is not None:
                    ev = change.event
                    cur.execute(
                        """
                        INSERT INTO attendance_events(reservation_id, room_id, user_id, kind, method, occurred_at, signals)
                        VALUES(%s,%s,%s,%s,%s,%s,%s)
                        """,
                        (
                            int(ev.reservation_id),
                            int(ev.room_id),
                            int(ev.user_id),
                            ev.kind.value,
                            ev.method.value,
                            to_db_datetime(ev.occurred_at),
                            json.dumps(ev.signals) if ev.signals is not None else None,
                        ),
                    )
                    event_id = int(cur.lastrowid)
                applied.append(AppliedChange(reservation_id=change.reservation_id, event_id=event_id))
        return applied

    def get_report_rows(
        self,
        *,
        start_at: datetime,
        end_at: datetime,
        room_id: Optional[int] = None,
    ) -> Sequence[ReservationReportRow]:
        clauses = ["r.start_at >= %s", "r.start_at < %s"]
        params: list[object] = [to_db_datetime(start_at), to_db_datetime(end_at)]
        if room_id is not None:
            clauses.append("r.room_id=%s")
            params.append(int(room_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT
                    r.reservation_id, r.room_id, rm.name AS room_name,
                    r.user_id, u.full_name,
                    r.start_at, r.end_at, r.status, r.closed,
                    ci.occurred_at AS checked_in_at,
                    co.occurred_at AS checked_out_at,
                    co.method AS check_out_method
                FROM reservations r
                JOIN rooms rm ON rm.room_id = r.room_id
                JOIN users u ON u.user_id = r.user_id
                LEFT JOIN attendance_events ci ON ci.reservation_id = r.reservation_id AND ci.kind = 'CHECK_IN'
                LEFT JOIN attendance_events co ON co.reservation_id = r.reservation_id AND co.kind = 'CHECK_OUT'
                WHERE {where}
                ORDER BY r.start_at ASC, r.reservation_id ASC
                """,
                tuple(params),
            )
            rows = fetchall(cur)

            return [
                ReservationReportRow(
                    reservation_id=int(r["reservation_id"]),
                    room_id=int(r["room_id"]),
                    room_name=r["room_name"],
                    owner_id=int(r["user_id"]),
                    owner_name=r["full_name"],
                    start_at=from_db_datetime(r["start_at"]),
                    end_at=from_db_datetime(r["end_at"]),
                    status=ReservationStatus(r["status"]),
                    closed=bool(r["closed"]),
                    checked_in_at=from_db_datetime(r.get("checked_in_at")),
                    checked_out_at=from_db_datetime(r.get("checked_out_at")),
                    check_out_method=AttendanceMethod(r["check_out_method"]) if r.get("check_out_method") else None,
                )
                for r in rows
            ]
