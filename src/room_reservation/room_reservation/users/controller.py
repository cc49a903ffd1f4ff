from __future__ import annotations

from datetime import timedelta
from functools import wraps

from flask import Flask, g, jsonify, session

from ..common.api import json_body
from ..container import Container
from .model import User


def user_to_dict(user: User) -> dict:
    return {
        "userId": user.user_id,
        "fullName": user.full_name,
        "username": user.username,
        "role": user.role.value,
    }


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.current_user = container.auth_service.current_user(session.get("user_id"))
            return view(*args, **kwargs)

        return wrapper

    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        user = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("remember"))
        app.permanent_session_lifetime = timedelta(days=7)
        session["user_id"] = user.user_id
        session["role"] = user.role.value

        return jsonify(user_to_dict(user))

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"ok": True})

    @app.route("/api/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        return jsonify(user_to_dict(g.current_user))
