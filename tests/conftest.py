"""Shared pytest fixtures and configuration."""

from datetime import UTC, date, datetime

import pytest

from groupbuy.config import Settings
from groupbuy.deadlines import FixedClock
from groupbuy.events import EventManager
from groupbuy.lifecycle import EnrollmentLifecycle, LessonLifecycle
from groupbuy.state_store import StateStore


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


# Shared fixtures

# Lessons in the shared fixtures start on 2024-06-10, so the deadline is 2024-06-03
LESSON_START = date(2024, 6, 10)
LESSON_END = date(2024, 6, 30)
BEFORE_DEADLINE = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)
AFTER_DEADLINE = datetime(2024, 6, 5, 12, 0, tzinfo=UTC)


@pytest.fixture
def store():
    """Create an in-memory StateStore."""
    s = StateStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def event_manager():
    """Create an EventManager instance."""
    return EventManager()


@pytest.fixture
def clock():
    """Clock frozen before the recruiting deadline of the default lesson."""
    return FixedClock(BEFORE_DEADLINE)


@pytest.fixture
def lessons(store: StateStore, event_manager: EventManager, clock: FixedClock):
    """LessonLifecycle over the in-memory store with a fixed clock."""
    return LessonLifecycle(
        state_store=store,
        event_manager=event_manager,
        clock=clock,
        settings=Settings(db_path=":memory:"),
    )


@pytest.fixture
def enrollments(store: StateStore, lessons: LessonLifecycle, event_manager: EventManager):
    """EnrollmentLifecycle sharing the lesson lifecycle's clock and locks."""
    return EnrollmentLifecycle(state_store=store, lessons=lessons, event_manager=event_manager)


@pytest.fixture
def make_lesson(lessons: LessonLifecycle):
    """Factory creating lessons with sensible defaults."""

    def _make(**overrides):
        fields = {
            "teacher_id": "teacher-1",
            "title": "Algebra bootcamp",
            "amount": 200000,
            "min_student": 4,
            "max_student": 6,
            "start_date": LESSON_START,
            "end_date": LESSON_END,
        }
        fields.update(overrides)
        return lessons.create_lesson(**fields)

    return _make
