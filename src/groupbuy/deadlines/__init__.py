"""Deadlines - Recruiting deadline derivation and the injected clock."""

from groupbuy.deadlines.clock import Clock, FixedClock, SystemClock
from groupbuy.deadlines.scheduler import (
    DEFAULT_LEAD_DAYS,
    compute_deadline,
    is_before_deadline,
)

__all__ = [
    "DEFAULT_LEAD_DAYS",
    "Clock",
    "FixedClock",
    "SystemClock",
    "compute_deadline",
    "is_before_deadline",
]
