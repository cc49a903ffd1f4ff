"""JSON request/response helpers shared by the controllers."""
from __future__ import annotations

import logging
from typing import Any

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.exceptions import DomainError, ValidationError

logger = logging.getLogger(__name__)


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def error_body(kind: str, message: str) -> dict:
    return {"error": {"kind": kind, "message": message}}


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        if e.http_status >= 500:
            logger.exception("Request %s %s failed", request.method, request.path)
            return jsonify(error_body(e.kind, "Internal error, please try again")), e.http_status
        return jsonify(error_body(e.kind, str(e))), e.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        kind = "NOT_FOUND" if e.code == 404 else "INVALID_ARGUMENT"
        return jsonify(error_body(kind, e.description or e.name)), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify(error_body("INTERNAL", "Internal error, please try again")), 500
