from __future__ import annotations

from functools import wraps

from flask import Flask, g, jsonify, session

from ..common.api import json_body
from ..common.datetime_utils import now_in, parse_iso_datetime
from ..container import Container
from ..core.exceptions import ValidationError
from ..users.service import require_admin
from .jobs import run_finalize_sweep, run_no_show_sweep


def register(app: Flask, container: Container) -> None:
    def admin_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.current_user = container.auth_service.current_user(session.get("user_id"))
            require_admin(g.current_user)
            return view(*args, **kwargs)

        return wrapper

    def _sweep_time():
        # An admin may replay a sweep as of a past instant, never a future one.
        value = json_body().get("nowISO")
        if value is None:
            return None
        when = parse_iso_datetime(value, "nowISO")
        if when > now_in(container.policy.tz):
            raise ValidationError("nowISO must not be in the future")
        return when

    @app.route("/api/admin/sweeps/no-show", methods=["POST"], endpoint="sweep_no_show")
    @admin_required
    def sweep_no_show():
        return jsonify(run_no_show_sweep(container, _sweep_time()).as_dict())

    @app.route("/api/admin/sweeps/finalize", methods=["POST"], endpoint="sweep_finalize")
    @admin_required
    def sweep_finalize():
        return jsonify(run_finalize_sweep(container, _sweep_time()).as_dict())
