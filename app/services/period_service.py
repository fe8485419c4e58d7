"""
Period service — calendar bucket keys used to partition derived metrics.

A period is a plain string:

  - monthly:   ``YYYY-MM``  (e.g. ``2024-03``)
  - quarterly: ``YYYY-Qn``  (quarter = ceil(month / 3))
  - yearly:    ``YYYY``

Keys of one type sort chronologically as strings, which the
environmental service relies on for its "strictly earlier" filter.
"""

import math
import re
from datetime import datetime

from app.exceptions import ValidationError
from app.models.gamification import PERIOD_TYPES
from app.utils import utcnow

_PERIOD_PATTERNS: dict[str, re.Pattern] = {
    "monthly": re.compile(r"^(?P<year>\d{4})-(?P<month>0[1-9]|1[0-2])$"),
    "quarterly": re.compile(r"^(?P<year>\d{4})-Q(?P<quarter>[1-4])$"),
    "yearly": re.compile(r"^(?P<year>\d{4})$"),
}


def current_period(period_type: str = "monthly", now: datetime | None = None) -> str:
    """
    Build the period key containing ``now``.

    Raises:
        ValidationError: If ``period_type`` is not monthly/quarterly/yearly.
    """
    _check_period_type(period_type)
    now = now or utcnow()

    if period_type == "monthly":
        return f"{now.year}-{now.month:02d}"
    if period_type == "quarterly":
        return f"{now.year}-Q{math.ceil(now.month / 3)}"
    return str(now.year)


def resolve_period(
    period: str | None,
    period_type: str = "monthly",
    now: datetime | None = None,
) -> str:
    """
    Return ``period`` if given (after validating its shape), otherwise
    the current period of ``period_type``.
    """
    _check_period_type(period_type)
    if not period:
        return current_period(period_type, now)
    if not _PERIOD_PATTERNS[period_type].match(period):
        raise ValidationError(
            f"Period '{period}' is not a valid {period_type} period."
        )
    return period


def period_type_of(period: str) -> str:
    """
    Infer the period type from a period key's shape.

    Raises:
        ValidationError: If the key matches none of the known shapes.
    """
    for period_type, pattern in _PERIOD_PATTERNS.items():
        if pattern.match(period):
            return period_type
    raise ValidationError(f"Unrecognized period '{period}'.")


def period_bounds(period: str) -> tuple[datetime, datetime]:
    """
    Return the half-open ``[start, end)`` datetime range of a period.

    Example::

        period_bounds("2024-02")  # (2024-02-01 00:00, 2024-03-01 00:00)
        period_bounds("2024-Q4")  # (2024-10-01 00:00, 2025-01-01 00:00)
    """
    period_type = period_type_of(period)
    match = _PERIOD_PATTERNS[period_type].match(period)
    year = int(match.group("year"))

    if period_type == "monthly":
        first_month, months = int(match.group("month")), 1
    elif period_type == "quarterly":
        first_month, months = (int(match.group("quarter")) - 1) * 3 + 1, 3
    else:
        first_month, months = 1, 12

    start = datetime(year, first_month, 1)
    end_year, end_month = divmod(first_month - 1 + months, 12)
    end = datetime(year + end_year, end_month + 1, 1)
    return start, end


def _check_period_type(period_type: str) -> None:
    if period_type not in PERIOD_TYPES:
        raise ValidationError(
            f"Unknown period type '{period_type}'. "
            f"Valid options: {', '.join(PERIOD_TYPES)}"
        )
