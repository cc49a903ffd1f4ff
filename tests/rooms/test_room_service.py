import pytest

from room_reservation.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from room_reservation.rooms.model import QrPayload, parse_qr_payload


def test_list_hides_retired_rooms_by_default(container):
    names = [r.name for r in container.room_service.list_rooms()]
    assert "Old Lab" not in names
    assert "Old Lab" in [r.name for r in container.room_service.list_rooms(include_retired=True)]


def test_admin_creates_room(container, admin, store):
    room = container.room_service.create_room(current_user=admin, name="  Seminar A ", capacity="40")

    assert room.name == "Seminar A"
    assert room.capacity == 40
    assert room.qr_epoch == 1
    assert store.rooms[room.room_id] == room


def test_professor_cannot_manage_rooms(container, prof):
    with pytest.raises(AuthorizationError):
        container.room_service.create_room(current_user=prof, name="X", capacity=4)
    with pytest.raises(AuthorizationError):
        container.room_service.update_room(current_user=prof, room_id=1, retired=True)


@pytest.mark.parametrize("name, capacity", [("", 10), ("Lab", 0), ("Lab", "many"), ("Lab", True)])
def test_room_input_is_validated(container, admin, name, capacity):
    with pytest.raises(ValidationError):
        container.room_service.create_room(current_user=admin, name=name, capacity=capacity)


def test_retiring_bumps_qr_epoch(container, admin, store):
    room = container.room_service.update_room(current_user=admin, room_id=1, retired=True)

    assert room.retired
    assert room.qr_epoch == 2
    assert store.rooms[1].qr_payload == "room-1:v2"


def test_explicit_qr_bump_and_rename(container, admin):
    room = container.room_service.update_room(current_user=admin, room_id=2, name="Room 102B", bump_qr=True)

    assert room.name == "Room 102B"
    assert room.qr_epoch == 2


def test_noop_update_keeps_epoch(container, admin):
    room = container.room_service.update_room(current_user=admin, room_id=2)
    assert room.qr_epoch == 1


def test_update_missing_room(container, admin):
    with pytest.raises(NotFoundError):
        container.room_service.update_room(current_user=admin, room_id=99, name="X")


def test_resolve_scan(container):
    assert container.room_service.resolve_scan("room-1:v1").room_id == 1
    assert container.room_service.resolve_scan("room-2").room_id == 2
    with pytest.raises(PreconditionError):
        container.room_service.resolve_scan("room-3:v2")
    with pytest.raises(PreconditionError):
        container.room_service.resolve_scan("room-1:v0")


def test_parse_qr_payload():
    assert parse_qr_payload("room-12:v3") == QrPayload(room_id=12, epoch=3)
    assert parse_qr_payload(" room-7 ") == QrPayload(room_id=7)
    for bad in ("", "room-", "room-1:3", "ROOM-1", None):
        with pytest.raises(ValidationError):
            parse_qr_payload(bad)
