"""Exceptions for the Lifecycle module.

Decision failures (full lesson, closed window, ...) are not raised by the
lifecycles; they come back as ``TransitionResult`` errors, which callers may
``unwrap`` into TransitionRejectedError. The rest cover broken invariants.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from groupbuy.lifecycle.models import ErrorKind


class LifecycleError(Exception):
    """Base exception for lifecycle errors."""

    pass


class CapacityError(LifecycleError):
    """A capacity delta would push current_student outside [0, max_student]."""

    pass


class NotLessonOwnerError(LifecycleError):
    """A teacher tried to change a lesson they do not own."""

    pass


class TransitionRejectedError(LifecycleError):
    """Raised by ``TransitionResult.unwrap`` when the operation was rejected.

    Attributes:
        kind: The ErrorKind of the rejection.
        message: Human-readable explanation.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
