from __future__ import annotations

from functools import wraps

from flask import Flask, g, jsonify, request, session

from ..common.api import json_body
from ..container import Container
from ..users.service import require_admin
from .model import Room


def room_to_dict(room: Room) -> dict:
    return {
        "roomId": room.room_id,
        "name": room.name,
        "capacity": room.capacity,
        "retired": room.retired,
        "qrEpoch": room.qr_epoch,
    }


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.current_user = container.auth_service.current_user(session.get("user_id"))
            return view(*args, **kwargs)

        return wrapper

    def admin_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.current_user = container.auth_service.current_user(session.get("user_id"))
            require_admin(g.current_user)
            return view(*args, **kwargs)

        return wrapper

    @app.route("/api/rooms", methods=["GET"], endpoint="list_rooms")
    @login_required
    def list_rooms():
        include_retired = request.args.get("all") == "1" and g.current_user.is_admin
        rooms = container.room_service.list_rooms(include_retired=include_retired)
        return jsonify([room_to_dict(r) for r in rooms])

    @app.route("/api/rooms", methods=["POST"], endpoint="create_room")
    @admin_required
    def create_room():
        data = json_body()
        room = container.room_service.create_room(
            current_user=g.current_user,
            name=data.get("name", ""),
            capacity=data.get("capacity"),
        )
        return jsonify(room_to_dict(room)), 201

    @app.route("/api/rooms/<int:room_id>", methods=["PATCH"], endpoint="update_room")
    @admin_required
    def update_room(room_id: int):
        data = json_body()
        room = container.room_service.update_room(
            current_user=g.current_user,
            room_id=room_id,
            name=data.get("name"),
            capacity=data.get("capacity"),
            retired=data.get("retired"),
            bump_qr=bool(data.get("bumpQr", False)),
        )
        return jsonify(room_to_dict(room))

    @app.route("/api/rooms/<int:room_id>/qr", methods=["GET"], endpoint="room_qr")
    @admin_required
    def room_qr(room_id: int):
        room = container.room_service.get_room(room_id)
        return jsonify({"roomId": room.room_id, "qrEpoch": room.qr_epoch, "payload": room.qr_payload})
