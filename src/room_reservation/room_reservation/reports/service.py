from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from ..core.enums import ReservationState
from ..core.exceptions import ValidationError
from ..reservations.model import ReservationReportRow
from ..reservations.repository import ReservationRepository
from ..reservations.windows import LifecyclePolicy

REPORT_COLUMNS = [
    "reservation_id",
    "room_name",
    "owner_name",
    "date",
    "start",
    "end",
    "state",
    "check_in",
    "check_out",
    "check_out_method",
    "booked_minutes",
    "used_minutes",
]


@dataclass(frozen=True)
class ReportData:
    rows: list[dict]
    summary: list[dict]


def _hhmm(value: Optional[datetime], policy: LifecyclePolicy) -> str:
    return policy.localize(value).strftime("%H:%M") if value else "-"


def used_minutes(row: ReservationReportRow) -> int:
    """Check-out minus check-in, not below 0. A session without both ends counts 0."""
    if not row.checked_in_at or not row.checked_out_at:
        return 0
    minutes = int((row.checked_out_at - row.checked_in_at).total_seconds() // 60)
    return max(minutes, 0)


class ReservationReportService:
    def __init__(
        self,
        reservations: ReservationRepository,
        *,
        policy: LifecyclePolicy,
    ):
        self._reservations = reservations
        self._policy = policy

    def build_reservation_report(self, *, start: date, end: date, room_id: Optional[int] = None) -> ReportData:
        """Reservations starting on business days ``start``..``end`` (inclusive)."""
        if start > end:
            raise ValidationError("Report start date must not be after end date")
        tz = self._policy.tz
        query_rows = self._reservations.get_report_rows(
            start_at=datetime.combine(start, time.min, tzinfo=tz),
            end_at=datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz),
            room_id=room_id,
        )

        summary_map: dict[int, dict] = {}
        out_rows: list[dict] = []

        for r in query_rows:
            state = r.state
            booked = int((r.end_at - r.start_at).total_seconds() // 60)
            used = used_minutes(r)
            start_local = self._policy.localize(r.start_at)

            out_rows.append(
                {
                    "reservation_id": r.reservation_id,
                    "room_name": r.room_name,
                    "owner_name": r.owner_name,
                    "date": start_local.strftime("%Y-%m-%d"),
                    "start": start_local.strftime("%H:%M"),
                    "end": _hhmm(r.end_at, self._policy),
                    "state": state.value,
                    "check_in": _hhmm(r.checked_in_at, self._policy),
                    "check_out": _hhmm(r.checked_out_at, self._policy),
                    "check_out_method": r.check_out_method.value if r.check_out_method else "-",
                    "booked_minutes": booked,
                    "used_minutes": used,
                }
            )

            s = summary_map.get(r.room_id)
            if not s:
                s = {
                    "room_id": r.room_id,
                    "room_name": r.room_name,
                    "reservations": 0,
                    "completed": 0,
                    "no_show": 0,
                    "cancelled": 0,
                    "booked_minutes": 0,
                    "used_minutes": 0,
                }
                summary_map[r.room_id] = s
            s["reservations"] += 1
            if state is ReservationState.COMPLETED:
                s["completed"] += 1
            elif state in (ReservationState.NO_SHOW_OPEN, ReservationState.NO_SHOW_CLOSED):
                s["no_show"] += 1
            elif state is ReservationState.CANCELLED:
                s["cancelled"] += 1
            # Cancelled bookings never held the room.
            if state is not ReservationState.CANCELLED:
                s["booked_minutes"] += booked
            s["used_minutes"] += used

        summary = []
        for s in summary_map.values():
            booked_minutes = int(s["booked_minutes"])
            s["utilisation_pct"] = round(100.0 * s["used_minutes"] / booked_minutes, 1) if booked_minutes else 0.0
            summary.append(s)

        summary.sort(key=lambda x: x["used_minutes"], reverse=True)
        return ReportData(rows=out_rows, summary=summary)
