"""Data models for the Pricing module."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PriceQuote:
    """Per-student price for a lesson at a given head-count.

    Attributes:
        amount: Total lesson price.
        min_student: Head-count at which the price starts to split.
        current_student: Head-count the quote was computed for.
        per_student: Amount each student pays.
        discount_rate_percent: Discount relative to the full amount, 0-100.
    """

    amount: int
    min_student: int
    current_student: int
    per_student: int
    discount_rate_percent: int

    @property
    def is_discounted(self) -> bool:
        """Whether the group has reached the size where the price drops."""
        return self.current_student >= self.min_student
