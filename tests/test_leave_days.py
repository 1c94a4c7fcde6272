"""Day calculator — inclusive day counts, half days, rounding helpers."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from backoffice.common.exceptions import ValidationException
from backoffice.leave.calculations import floor, js_round, leave_days, month_share


class TestLeaveDays:

    def test_three_day_range(self):
        assert leave_days(date(2025, 1, 10), date(2025, 1, 12)) == Decimal("3")

    def test_single_day(self):
        assert leave_days(date(2025, 1, 10), date(2025, 1, 10)) == Decimal("1")

    @pytest.mark.parametrize("span", [0, 1, 6, 30, 59, 364])
    def test_inclusive_count_matches_calendar(self, span):
        start = date(2024, 2, 20)
        assert leave_days(start, start + timedelta(days=span)) == Decimal(span + 1)

    def test_range_across_leap_day(self):
        assert leave_days(date(2024, 2, 28), date(2024, 3, 1)) == Decimal("3")

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationException) as exc_info:
            leave_days(date(2025, 1, 12), date(2025, 1, 10))
        assert "leave_end_date" in exc_info.value.errors

    def test_half_day_single_date(self):
        assert leave_days(date(2025, 3, 5), date(2025, 3, 5), is_half_day=True) == Decimal("0.5")

    @pytest.mark.parametrize("span", [1, 2, 10])
    def test_half_day_over_range_rejected(self, span):
        start = date(2025, 3, 5)
        with pytest.raises(ValidationException) as exc_info:
            leave_days(start, start + timedelta(days=span), is_half_day=True)
        assert "is_half_day" in exc_info.value.errors


class TestRounding:

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2.5", "3"),
            ("3.5", "4"),
            ("2.4", "2"),
            ("-2.5", "-2"),
            ("-2.6", "-3"),
            ("0", "0"),
        ],
    )
    def test_js_round_half_up_toward_positive_infinity(self, value, expected):
        assert js_round(Decimal(value)) == Decimal(expected)

    def test_floor(self):
        assert floor(Decimal("4.67")) == Decimal("4")
        assert floor(Decimal("-0.5")) == Decimal("-1")

    def test_month_share(self):
        assert month_share(Decimal("12"), 1) == Decimal("1")
        assert month_share(Decimal("8"), 6) == Decimal("4")
        assert month_share(Decimal("14"), 0) == Decimal("0")
