"""
Small helpers shared by models and services.
"""

import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from app.exceptions import ValidationError


def utcnow() -> datetime:
    """
    Return the current time as a naive UTC datetime.

    All timestamps are stored naive (UTC implied) so that SQLite and
    SQL Server round-trip them identically.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def ceil_days(delta_seconds: float) -> int:
    """Convert a duration in seconds to whole days, rounding up."""
    return math.ceil(delta_seconds / 86400)


def parse_datetime(value, field_name: str) -> datetime:
    """
    Parse an ISO-8601 date or datetime from request input into naive UTC.

    Raises:
        ValidationError: If the value is missing or not ISO-8601.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except (TypeError, ValueError) as exc:
            raise ValidationError(
                f"{field_name} must be an ISO-8601 date."
            ) from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
