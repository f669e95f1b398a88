"""DeadlineScheduler - derives the recruiting deadline from a lesson's start date."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, tzinfo

DEFAULT_LEAD_DAYS = 7


def compute_deadline(start_date: date, lead_days: int = DEFAULT_LEAD_DAYS) -> date:
    """Compute the recruiting deadline for a lesson.

    Args:
        start_date: First day of the lesson.
        lead_days: Days between the deadline and the start date, at least 1.

    Returns:
        The deadline date, strictly before ``start_date``.

    Raises:
        ValueError: If ``lead_days`` is less than 1.
    """
    if lead_days < 1:
        raise ValueError(f"lead_days must be at least 1, got {lead_days}")
    return start_date - timedelta(days=lead_days)


def is_before_deadline(now: datetime, deadline: date, tz: tzinfo = UTC) -> bool:
    """Check whether ``now`` falls in the free-cancellation window.

    The deadline day itself already belongs to the refund-request window.

    Args:
        now: Current time. Naive values are read as UTC.
        deadline: Recruiting deadline of the lesson.
        tz: Zone whose calendar decides which day ``now`` falls on.

    Returns:
        True if the local date of ``now`` is strictly before ``deadline``.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(tz).date() < deadline
