"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from collections.abc import Generator  # noqa: TC003
from typing import Annotated

from fastapi import Depends

from groupbuy.events import EventManager
from groupbuy.lifecycle import EnrollmentLifecycle, LessonLifecycle
from groupbuy.state_store import StateStore

# Global StateStore instance (initialized on app startup)
_state_store: StateStore | None = None


def init_state_store(db_path: str = "groupbuy.db") -> StateStore:
    """Initialize the global StateStore instance."""
    global _state_store  # noqa: PLW0603
    _state_store = StateStore(db_path)
    return _state_store


def close_state_store() -> None:
    """Close the global StateStore instance."""
    global _state_store  # noqa: PLW0603
    if _state_store is not None:
        _state_store.close()
        _state_store = None


def get_state_store() -> Generator[StateStore, None, None]:
    """Dependency that provides the StateStore instance."""
    if _state_store is None:
        raise RuntimeError("StateStore not initialized. Call init_state_store() first.")
    yield _state_store


# Type alias for dependency injection
StateStoreDep = Annotated[StateStore, Depends(get_state_store)]

# Global lifecycle instances (initialized on app startup)
_lessons: LessonLifecycle | None = None
_enrollments: EnrollmentLifecycle | None = None


def init_lifecycles(lessons: LessonLifecycle, enrollments: EnrollmentLifecycle) -> None:
    """Initialize the global lifecycle instances."""
    global _lessons, _enrollments  # noqa: PLW0603
    _lessons = lessons
    _enrollments = enrollments


def close_lifecycles() -> None:
    """Drop the global lifecycle instances."""
    global _lessons, _enrollments  # noqa: PLW0603
    _lessons = None
    _enrollments = None


def get_lesson_lifecycle() -> Generator[LessonLifecycle, None, None]:
    """Dependency that provides the LessonLifecycle instance."""
    if _lessons is None:
        raise RuntimeError("LessonLifecycle not initialized. Call init_lifecycles() first.")
    yield _lessons


def get_enrollment_lifecycle() -> Generator[EnrollmentLifecycle, None, None]:
    """Dependency that provides the EnrollmentLifecycle instance."""
    if _enrollments is None:
        raise RuntimeError("EnrollmentLifecycle not initialized. Call init_lifecycles() first.")
    yield _enrollments


# Type aliases for dependency injection
LessonLifecycleDep = Annotated[LessonLifecycle, Depends(get_lesson_lifecycle)]
EnrollmentLifecycleDep = Annotated[EnrollmentLifecycle, Depends(get_enrollment_lifecycle)]

# Global EventManager instance
_event_manager: EventManager | None = None


def init_event_manager() -> EventManager:
    """Initialize the global EventManager instance."""
    global _event_manager  # noqa: PLW0603
    _event_manager = EventManager()
    return _event_manager


def close_event_manager() -> None:
    """Drop the global EventManager instance."""
    global _event_manager  # noqa: PLW0603
    _event_manager = None


def get_event_manager() -> Generator[EventManager, None, None]:
    """Dependency that provides the EventManager instance."""
    if _event_manager is None:
        raise RuntimeError("EventManager not initialized. Call init_event_manager() first.")
    yield _event_manager


# Type alias for dependency injection
EventManagerDep = Annotated[EventManager, Depends(get_event_manager)]
