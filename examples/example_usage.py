"""Example: call the service layer directly (no Flask).

Controllers are thin; booking and check-in rules live in the services.
"""

import importlib
from datetime import timedelta

from config import get_settings_module

from room_reservation.common.datetime_utils import now_in
from room_reservation.container import build_container


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, settings=settings)

    prof = container.auth_service.authenticate("reyes", "prof123")
    room = container.room_service.list_rooms()[0]

    start = now_in(container.policy.tz).replace(second=0, microsecond=0) + timedelta(minutes=5)
    reservation_id = container.reservation_service.create_reservation(
        current_user=prof,
        room_id=room.room_id,
        start_at=start,
        end_at=start + timedelta(hours=1),
    )
    print("reserved", reservation_id, "in", room.name)

    result = container.checkin_service.check_in(current_user=prof, now=now_in(container.policy.tz), qr=room.qr_payload)
    print("checked in", result)


if __name__ == "__main__":
    main()
