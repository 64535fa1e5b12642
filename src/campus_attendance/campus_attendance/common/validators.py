from __future__ import annotations

from typing import Any, Mapping, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_mapping(value: Any, field_name: str) -> Optional[Mapping[str, Any]]:
    """Accept a JSON object or nothing; anything else is rejected."""
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValidationError(f"{field_name} must be an object")
    return value


def require_int(value: Any, field_name: str, *, min_value: Optional[int] = None, max_value: Optional[int] = None) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if min_value is not None and number < min_value:
        raise ValidationError(f"{field_name} must be at least {min_value}")
    if max_value is not None and number > max_value:
        raise ValidationError(f"{field_name} must be at most {max_value}")
    return number


def require_float(value: Any, field_name: str, *, min_value: Optional[float] = None, max_value: Optional[float] = None) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if number != number:
        raise ValidationError(f"{field_name} must be a number")
    out_of_range = (min_value is not None and number < min_value) or (max_value is not None and number > max_value)
    if out_of_range and max_value is None:
        raise ValidationError(f"{field_name} must be at least {min_value}")
    if out_of_range:
        raise ValidationError(f"{field_name} must be between {min_value} and {max_value}")
    return number


def require_latitude(value: Any, field_name: str = "latitude") -> float:
    return require_float(value, field_name, min_value=-90.0, max_value=90.0)


def require_longitude(value: Any, field_name: str = "longitude") -> float:
    return require_float(value, field_name, min_value=-180.0, max_value=180.0)
