from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.exceptions import ValidationError

_OFFSET_RE = re.compile(r"^(?:UTC)?([+-])(\d{2}):?(\d{2})$")


def resolve_timezone(value: str) -> tzinfo:
    """Resolve ``+08:00`` / ``UTC+08:00`` style offsets or an IANA zone name."""
    value = (value or "").strip()
    m = _OFFSET_RE.match(value)
    if m:
        sign, hours, minutes = m.groups()
        delta = timedelta(hours=int(hours), minutes=int(minutes))
        return timezone(-delta if sign == "-" else delta)
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {value!r}")


def parse_iso_datetime(value: str, field_name: str = "timestamp") -> datetime:
    """Parse an ISO-8601 timestamp that carries an explicit UTC offset.

    Naive timestamps are rejected: business windows are evaluated in a fixed
    civil timezone, so a missing offset would make the instant ambiguous.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid ISO-8601 timestamp")
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise ValidationError(f"{field_name} must include a UTC offset (e.g. +08:00)")
    return parsed


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError("Date must be formatted as YYYY-MM-DD")


def now_in(tz: tzinfo) -> datetime:
    """Current time in the given timezone.

    Note: Wrapped so tests can patch it.
    """
    return datetime.now(tz)


def to_iso(value: datetime | None, tz: tzinfo) -> str | None:
    if value is None:
        return None
    return value.astimezone(tz).isoformat()
