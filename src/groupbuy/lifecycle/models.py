"""Data models for the Lifecycle module."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

from groupbuy.lifecycle.exceptions import TransitionRejectedError

T = TypeVar("T")


class ErrorKind(StrEnum):
    """Why a lifecycle operation was rejected."""

    LESSON_NOT_ACTIVE = "LESSON_NOT_ACTIVE"
    LESSON_FULL = "LESSON_FULL"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ALREADY_ENROLLED = "ALREADY_ENROLLED"
    CANCELLATION_WINDOW_CLOSED = "CANCELLATION_WINDOW_CLOSED"
    CANCELLATION_WINDOW_STILL_OPEN = "CANCELLATION_WINDOW_STILL_OPEN"
    ALREADY_FINALIZED = "ALREADY_FINALIZED"
    NOT_IN_REFUND_REQUESTED_STATE = "NOT_IN_REFUND_REQUESTED_STATE"

    @property
    def code(self) -> str:
        """Stable client-facing error code."""
        return _ERROR_CODES[self]

    @property
    def default_message(self) -> str:
        """User-facing explanation, with guidance where a different call applies."""
        return _DEFAULT_MESSAGES[self]


_ERROR_CODES: dict[ErrorKind, str] = {
    ErrorKind.LESSON_NOT_ACTIVE: "LESSON4001",
    ErrorKind.LESSON_FULL: "LESSON4002",
    ErrorKind.INVALID_TRANSITION: "LESSON4003",
    ErrorKind.ALREADY_ENROLLED: "ENROLLMENT4001",
    ErrorKind.CANCELLATION_WINDOW_CLOSED: "ENROLLMENT4004",
    ErrorKind.CANCELLATION_WINDOW_STILL_OPEN: "ENROLLMENT4005",
    ErrorKind.ALREADY_FINALIZED: "ENROLLMENT4006",
    ErrorKind.NOT_IN_REFUND_REQUESTED_STATE: "ENROLLMENT4007",
}

_DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.LESSON_NOT_ACTIVE: "Lesson is not accepting enrollments",
    ErrorKind.LESSON_FULL: "Lesson has no open seats",
    ErrorKind.INVALID_TRANSITION: "Lesson status cannot change from its current status",
    ErrorKind.ALREADY_ENROLLED: "Student is already enrolled in this lesson",
    ErrorKind.CANCELLATION_WINDOW_CLOSED: (
        "Recruiting deadline has passed; request a refund instead"
    ),
    ErrorKind.CANCELLATION_WINDOW_STILL_OPEN: (
        "Recruiting deadline has not passed yet; cancel the enrollment instead"
    ),
    ErrorKind.ALREADY_FINALIZED: "Enrollment was already canceled or refunded",
    ErrorKind.NOT_IN_REFUND_REQUESTED_STATE: "Enrollment has no pending refund request",
}


@dataclass
class TransitionResult(Generic[T]):
    """Outcome of a lifecycle operation.

    Attributes:
        value: The entity after the operation (set on success).
        error: Why the operation was rejected (set on failure).
        message: Human-readable explanation of the error.
    """

    value: T | None = None
    error: ErrorKind | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the operation was applied."""
        return self.error is None

    @classmethod
    def success(cls, value: T) -> TransitionResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind, message: str | None = None) -> TransitionResult[T]:
        return cls(error=error, message=message or error.default_message)

    def unwrap(self) -> T:
        """Return the value, or raise if the operation was rejected.

        Raises:
            TransitionRejectedError: If the result carries an error.
        """
        if self.error is not None:
            raise TransitionRejectedError(self.error, self.message or self.error.default_message)
        return self.value  # type: ignore[return-value]
