"""Clock implementations supplying the current time."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Interface for a source of the current time."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Clock frozen at a settable instant. Used by tests and dry runs."""

    def __init__(self, instant: datetime) -> None:
        self._instant = _ensure_aware(instant)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        """Move the clock to a new instant."""
        self._instant = _ensure_aware(instant)

    def advance(self, delta: timedelta) -> None:
        """Move the clock forward by ``delta``."""
        self._instant = self._instant + delta


def _ensure_aware(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant
