"""Lifecycle package - Lesson and Enrollment state machines."""

from groupbuy.lifecycle.enrollments import EnrollmentLifecycle
from groupbuy.lifecycle.exceptions import (
    CapacityError,
    LifecycleError,
    NotLessonOwnerError,
    TransitionRejectedError,
)
from groupbuy.lifecycle.lessons import LessonLifecycle
from groupbuy.lifecycle.locks import LessonLocks
from groupbuy.lifecycle.models import ErrorKind, TransitionResult

__all__ = [
    "CapacityError",
    "EnrollmentLifecycle",
    "ErrorKind",
    "LessonLifecycle",
    "LessonLocks",
    "LifecycleError",
    "NotLessonOwnerError",
    "TransitionRejectedError",
    "TransitionResult",
]
