"""State Store - Persistent storage for lessons and enrollments."""

from groupbuy.state_store.exceptions import (
    EnrollmentNotFoundError,
    InvalidLessonError,
    LessonNotFoundError,
    StateStoreError,
)
from groupbuy.state_store.models import (
    Enrollment,
    EnrollmentStatus,
    Lesson,
    LessonStatus,
    LessonType,
)
from groupbuy.state_store.store import StateStore

__all__ = [
    "Enrollment",
    "EnrollmentNotFoundError",
    "EnrollmentStatus",
    "InvalidLessonError",
    "Lesson",
    "LessonNotFoundError",
    "LessonStatus",
    "LessonType",
    "StateStore",
    "StateStoreError",
]
