"""Custom exceptions for State Store."""


class StateStoreError(Exception):
    """Base exception for State Store errors."""


class LessonNotFoundError(StateStoreError):
    """Lesson with given ID does not exist."""


class EnrollmentNotFoundError(StateStoreError):
    """Enrollment with given ID does not exist."""


class InvalidLessonError(StateStoreError):
    """Lesson fields violate an invariant (student bounds, dates, amount)."""
