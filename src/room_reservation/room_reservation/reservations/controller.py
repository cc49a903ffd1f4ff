from __future__ import annotations

from functools import wraps

from flask import Flask, g, jsonify, request, session

from ..common.api import json_body
from ..common.datetime_utils import parse_iso_datetime, to_iso
from ..common.validators import require_id, require_positive_int
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from .model import Reservation


def register(app: Flask, container: Container) -> None:
    tz = container.policy.tz

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.current_user = container.auth_service.current_user(session.get("user_id"))
            return view(*args, **kwargs)

        return wrapper

    def _optional_ts(data: dict, key: str):
        value = data.get(key)
        return parse_iso_datetime(value, key) if value is not None else None

    def _to_dict(r: Reservation) -> dict:
        state = r.state
        return {
            "reservationId": r.reservation_id,
            "roomId": r.room_id,
            "ownerId": r.owner_id,
            "startAt": to_iso(r.start_at, tz),
            "endAt": to_iso(r.end_at, tz),
            "status": r.status.value,
            "state": state.value,
            "closed": r.closed,
            "finalizedAt": to_iso(r.finalized_at, tz),
        }

    @app.route("/api/reservations", methods=["POST"], endpoint="create_reservation")
    @login_required
    def create_reservation():
        data = json_body()
        room_id = require_id(data.get("roomId"), "roomId")
        start_at = parse_iso_datetime(data.get("startAt"), "startAt")
        end_at = parse_iso_datetime(data.get("endAt"), "endAt")

        reservation_id = container.reservation_service.create_reservation(
            current_user=g.current_user,
            room_id=room_id,
            start_at=start_at,
            end_at=end_at,
        )
        return jsonify({"reservationId": reservation_id}), 201

    @app.route("/api/reservations", methods=["GET"], endpoint="my_reservations")
    @login_required
    def my_reservations():
        limit = require_positive_int(request.args.get("limit", DEFAULT_HISTORY_LIMIT), "limit")
        rows = container.reservation_service.list_my_reservations(current_user=g.current_user, limit=limit)
        return jsonify([_to_dict(r) for r in rows])

    @app.route("/api/reservations/<int:reservation_id>", methods=["GET"], endpoint="get_reservation")
    @login_required
    def get_reservation(reservation_id: int):
        r = container.reservation_service.get_reservation(current_user=g.current_user, reservation_id=reservation_id)
        return jsonify(_to_dict(r))

    @app.route("/api/reservations/<int:reservation_id>", methods=["PATCH"], endpoint="update_reservation")
    @login_required
    def update_reservation(reservation_id: int):
        data = json_body()
        updated_id = container.reservation_service.update_reservation(
            current_user=g.current_user,
            reservation_id=reservation_id,
            start_at=_optional_ts(data, "startAt"),
            end_at=_optional_ts(data, "endAt"),
        )
        return jsonify({"reservationId": updated_id})

    @app.route("/api/reservations/<int:reservation_id>/cancel", methods=["POST"], endpoint="cancel_reservation")
    @login_required
    def cancel_reservation(reservation_id: int):
        cancelled_id = container.reservation_service.cancel_reservation(
            current_user=g.current_user,
            reservation_id=reservation_id,
        )
        return jsonify({"reservationId": cancelled_id})
