"""
Tests for the shared rounding and date helpers.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from app.exceptions import ValidationError
from app.utils import ceil_days, parse_datetime, round_half_up


class TestRounding:
    def test_half_rounds_up(self):
        assert round_half_up(87.5) == 88
        assert round_half_up(40.5) == 41
        assert round_half_up(Decimal("2.49")) == 2

    def test_ceil_days(self):
        assert ceil_days(86400) == 1
        assert ceil_days(86401) == 2
        assert ceil_days(-3600) == 0


class TestParseDatetime:
    def test_date_only(self):
        assert parse_datetime("2024-03-01", "d") == datetime(2024, 3, 1)

    def test_zulu_converted_to_naive_utc(self):
        assert parse_datetime("2024-03-01T10:00:00Z", "d") == datetime(2024, 3, 1, 10)

    def test_offset_converted_to_utc(self):
        assert parse_datetime("2024-03-01T10:00:00+02:00", "d") == datetime(
            2024, 3, 1, 8
        )

    @pytest.mark.parametrize("value", [None, "", "soon"])
    def test_invalid_values(self, value):
        with pytest.raises(ValidationError):
            parse_datetime(value, "renewal_date")
