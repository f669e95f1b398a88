"""PricingCalculator - turns a fixed lesson price into a group-buying price."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from groupbuy.pricing.models import PriceQuote

_ONE = Decimal(1)
_HUNDRED = Decimal(100)


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(_ONE, rounding=ROUND_HALF_UP))


def compute_price(amount: int, min_student: int, current_student: int) -> PriceQuote:
    """Compute the per-student price and discount rate.

    Below ``min_student`` the group hasn't reached critical mass and every
    student is quoted the full amount. From ``min_student`` on, the amount is
    split evenly, rounding half up.

    Args:
        amount: Total lesson price, non-negative.
        min_student: Minimum head-count for the split, at least 1.
        current_student: Current head-count, non-negative.

    Returns:
        PriceQuote with per-student amount and discount percentage.

    Raises:
        ValueError: If a precondition is violated.
    """
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")
    if min_student < 1:
        raise ValueError(f"min_student must be at least 1, got {min_student}")
    if current_student < 0:
        raise ValueError(f"current_student must be non-negative, got {current_student}")

    if current_student < min_student:
        return PriceQuote(
            amount=amount,
            min_student=min_student,
            current_student=current_student,
            per_student=amount,
            discount_rate_percent=0,
        )

    per_student = _round_half_up(Decimal(amount) / Decimal(current_student))
    if amount == 0:
        discount = 0
    else:
        discount = _round_half_up((Decimal(amount - per_student) / Decimal(amount)) * _HUNDRED)

    return PriceQuote(
        amount=amount,
        min_student=min_student,
        current_student=current_student,
        per_student=per_student,
        discount_rate_percent=discount,
    )


def price_schedule(amount: int, min_student: int, max_student: int) -> list[PriceQuote]:
    """Quote every head-count from 0 up to ``max_student``.

    Args:
        amount: Total lesson price.
        min_student: Minimum head-count for the split.
        max_student: Lesson capacity, at least ``min_student``.

    Returns:
        One quote per head-count, in ascending order.
    """
    if max_student < min_student:
        raise ValueError(
            f"max_student ({max_student}) must be at least min_student ({min_student})"
        )
    return [compute_price(amount, min_student, n) for n in range(max_student + 1)]
