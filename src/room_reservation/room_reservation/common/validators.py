from __future__ import annotations

from typing import Any

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_id(value: Any, field_name: str) -> int:
    """Accept a positive integer id given as int or digit string."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} is not valid")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        raise ValidationError(f"{field_name} is not valid")
    if parsed <= 0:
        raise ValidationError(f"{field_name} is not valid")
    return parsed


def require_positive_int(value: Any, field_name: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if isinstance(value, bool) or parsed < 1:
        raise ValidationError(f"{field_name} must be at least 1")
    return parsed
