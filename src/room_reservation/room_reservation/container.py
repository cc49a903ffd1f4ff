from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import CheckInService
from .core.constants import SWEEPER_MAX_WRITES_PER_BATCH
from .database.connection import DBConfig, DatabaseConnection
from .reports.service import ReservationReportService
from .reservations.mysql_reservation_repository import MySQLReservationRepository
from .reservations.repository import ReservationRepository
from .reservations.service import ReservationService
from .reservations.windows import LifecyclePolicy
from .rooms.mysql_room_repository import MySQLRoomRepository
from .rooms.repository import RoomRepository
from .rooms.service import RoomService
from .sweeper.service import SweeperService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    policy: LifecyclePolicy

    users_repo: UserRepository
    rooms_repo: RoomRepository
    reservations_repo: ReservationRepository
    attendance_repo: AttendanceRepository

    auth_service: AuthService
    room_service: RoomService
    reservation_service: ReservationService
    checkin_service: CheckInService
    sweeper_service: SweeperService
    report_service: ReservationReportService


def assemble_container(
    *,
    users_repo: UserRepository,
    rooms_repo: RoomRepository,
    reservations_repo: ReservationRepository,
    attendance_repo: AttendanceRepository,
    policy: Optional[LifecyclePolicy] = None,
    max_writes_per_batch: int = SWEEPER_MAX_WRITES_PER_BATCH,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services on top of the given repositories."""
    policy = policy or LifecyclePolicy()

    auth_service = AuthService(users_repo)
    room_service = RoomService(rooms_repo)
    reservation_service = ReservationService(reservations_repo, room_service, policy=policy)
    checkin_service = CheckInService(reservations_repo, attendance_repo, room_service, policy=policy)
    sweeper_service = SweeperService(reservations_repo, policy=policy, max_writes_per_batch=max_writes_per_batch)
    report_service = ReservationReportService(reservations_repo, policy=policy)

    return Container(
        conn=conn,
        policy=policy,
        users_repo=users_repo,
        rooms_repo=rooms_repo,
        reservations_repo=reservations_repo,
        attendance_repo=attendance_repo,
        auth_service=auth_service,
        room_service=room_service,
        reservation_service=reservation_service,
        checkin_service=checkin_service,
        sweeper_service=sweeper_service,
        report_service=report_service,
    )


def build_container(*, db_config: dict, settings=None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    policy = LifecyclePolicy.from_settings(settings) if settings is not None else LifecyclePolicy()

    return assemble_container(
        users_repo=MySQLUserRepository(conn),
        rooms_repo=MySQLRoomRepository(conn),
        reservations_repo=MySQLReservationRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        policy=policy,
        max_writes_per_batch=int(getattr(settings, "SWEEPER_MAX_WRITES_PER_BATCH", SWEEPER_MAX_WRITES_PER_BATCH)),
        conn=conn,
    )
