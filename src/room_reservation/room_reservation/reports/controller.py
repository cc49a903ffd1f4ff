from __future__ import annotations

import csv
import io
from datetime import timedelta
from functools import wraps

from flask import Flask, g, jsonify, request, session

from ..common.datetime_utils import now_in, parse_iso_date
from ..common.validators import require_id
from ..container import Container
from ..core.constants import DEFAULT_REPORT_DAYS
from ..users.service import require_admin
from .service import REPORT_COLUMNS


def register(app: Flask, container: Container) -> None:
    def admin_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.current_user = container.auth_service.current_user(session.get("user_id"))
            require_admin(g.current_user)
            return view(*args, **kwargs)

        return wrapper

    def _write_report_csv(*, data, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=REPORT_COLUMNS)
        writer.writeheader()
        for row in data.rows:
            writer.writerow(row)

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/admin/reports/reservations", methods=["GET"], endpoint="reservation_report")
    @admin_required
    def reservation_report():
        today = now_in(container.policy.tz).date()
        start_s = request.args.get("start")
        end_s = request.args.get("end")
        end = parse_iso_date(end_s) if end_s else today
        start = parse_iso_date(start_s) if start_s else end - timedelta(days=DEFAULT_REPORT_DAYS - 1)
        room_s = request.args.get("roomId")
        room_id = require_id(room_s, "roomId") if room_s else None

        data = container.report_service.build_reservation_report(start=start, end=end, room_id=room_id)

        if request.args.get("format") == "csv":
            filename = f"reservations_{start.strftime('%Y%m%d')}_{end.strftime('%Y%m%d')}.csv"
            return _write_report_csv(data=data, filename=filename)
        return jsonify(
            {
                "start": start.strftime("%Y-%m-%d"),
                "end": end.strftime("%Y-%m-%d"),
                "rows": data.rows,
                "summary": data.summary,
            }
        )
