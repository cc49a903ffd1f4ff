from __future__ import annotations

from functools import wraps

from flask import Flask, g, jsonify, request, session

from ..common.api import json_body
from ..common.datetime_utils import parse_iso_datetime, to_iso
from ..common.validators import require_id, require_positive_int
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT


def register(app: Flask, container: Container) -> None:
    tz = container.policy.tz

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.current_user = container.auth_service.current_user(session.get("user_id"))
            return view(*args, **kwargs)

        return wrapper

    def _room_args(data: dict) -> dict:
        room_id = data.get("roomId")
        qr = data.get("qr")
        if qr is not None and not isinstance(qr, str):
            qr = str(qr)
        return {
            "room_id": require_id(room_id, "roomId") if room_id is not None else None,
            "qr": qr or None,
        }

    @app.route("/api/checkin", methods=["POST"], endpoint="checkin")
    @login_required
    def checkin():
        data = json_body()
        room_args = _room_args(data)
        now = parse_iso_datetime(data.get("nowISO"), "nowISO")

        result = container.checkin_service.check_in(
            current_user=g.current_user,
            now=now,
            signals=data.get("signals"),
            **room_args,
        )
        return jsonify(
            {
                "checkInId": result.check_in_id,
                "reservationId": result.reservation_id,
                "startTime": to_iso(result.start_time, tz),
            }
        )

    @app.route("/api/checkout", methods=["POST"], endpoint="checkout")
    @login_required
    def checkout():
        data = json_body()
        room_args = _room_args(data)
        now = parse_iso_datetime(data.get("nowISO"), "nowISO")

        result = container.checkin_service.check_out(current_user=g.current_user, now=now, **room_args)
        return jsonify(
            {
                "checkOutId": result.check_out_id,
                "reservationId": result.reservation_id,
                "endTime": to_iso(result.end_time, tz),
            }
        )

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_history")
    @login_required
    def attendance_history():
        limit = require_positive_int(request.args.get("limit", DEFAULT_HISTORY_LIMIT), "limit")
        events = container.checkin_service.history(current_user=g.current_user, limit=limit)
        return jsonify(
            [
                {
                    "eventId": e.event_id,
                    "reservationId": e.reservation_id,
                    "roomId": e.room_id,
                    "kind": e.kind.value,
                    "method": e.method.value,
                    "timestamp": to_iso(e.occurred_at, tz),
                }
                for e in events
            ]
        )
