"""Leave day arithmetic and the rounding helpers shared by balance and allocation."""

from __future__ import annotations

from datetime import date
from decimal import ROUND_FLOOR, Decimal

from backoffice.common.exceptions import ValidationException

HALF_DAY = Decimal("0.5")
MONTHS_PER_YEAR = 12


def leave_days(start: date, end: date, is_half_day: bool = False) -> Decimal:
    """Inclusive number of leave days between *start* and *end*.

    2025-01-10 → 2025-01-12 is 3 days. A half-day is exactly 0.5 and
    must start and end on the same date.
    """
    if end < start:
        raise ValidationException(
            {"leave_end_date": ["End date must be on or after start date."]}
        )
    if is_half_day:
        if start != end:
            raise ValidationException(
                {"is_half_day": ["Half-day leave must span a single day."]}
            )
        return HALF_DAY
    return Decimal((end - start).days + 1)


# ── Rounding ────────────────────────────────────────────────────────

def js_round(value: Decimal) -> Decimal:
    """Round half toward +infinity: 2.5 → 3, -2.5 → -2."""
    return (Decimal(value) + HALF_DAY).to_integral_value(rounding=ROUND_FLOOR)


def floor(value: Decimal) -> Decimal:
    return Decimal(value).to_integral_value(rounding=ROUND_FLOOR)


def month_share(allocated: Decimal, months: int) -> Decimal:
    """Portion of a yearly allocation covering *months* months."""
    return Decimal(allocated) * months / MONTHS_PER_YEAR
