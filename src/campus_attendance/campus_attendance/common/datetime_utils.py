from __future__ import annotations

from datetime import date, datetime

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str, field_name: str = "datetime") -> datetime:
    """Parse an ISO-8601 timestamp into a naive local datetime.

    Browsers send ``toISOString()`` values ending in ``Z``; aware values are
    converted to local time so they compare with ``now_local()``.
    """

    if not value or not isinstance(value, str):
        raise ValidationError(f"{field_name} is required")
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid ISO-8601 timestamp")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
