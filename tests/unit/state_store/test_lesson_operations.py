"""Unit tests for StateStore lesson operations."""

import threading
from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from groupbuy.state_store import (
    InvalidLessonError,
    Lesson,
    LessonNotFoundError,
    LessonStatus,
    LessonType,
    StateStore,
)


def _create(store: StateStore, **overrides) -> Lesson:
    fields = {
        "teacher_id": "teacher-1",
        "title": "Algebra",
        "amount": 200000,
        "min_student": 4,
        "max_student": 6,
        "start_date": date(2024, 6, 10),
        "end_date": date(2024, 6, 30),
        "deadline": date(2024, 6, 3),
    }
    fields.update(overrides)
    return store.create_lesson(**fields)


@pytest.mark.unit
class TestCreateLesson:
    """Tests for create_lesson."""

    def test_create_lesson_minimal(self, store: StateStore) -> None:
        """Create with required fields only."""
        lesson = _create(store)

        assert lesson.id is not None
        assert lesson.status == LessonStatus.ACTIVE.value
        assert lesson.current_student == 0
        assert lesson.deadline == date(2024, 6, 3)
        assert lesson.created_at is not None
        assert lesson.updated_at is not None

    def test_create_lesson_all_fields(self, store: StateStore) -> None:
        """Optional descriptive fields are stored."""
        lesson = _create(
            store,
            description="Weekly problem sets",
            subject="Math",
            school_level="HIGH",
            grade=2,
            region="Seoul",
        )

        assert lesson.description == "Weekly problem sets"
        assert lesson.subject == "Math"
        assert lesson.school_level == "HIGH"
        assert lesson.grade == 2
        assert lesson.region == "Seoul"

    def test_online_lesson_has_no_region(self, store: StateStore) -> None:
        """Region is dropped for online lessons."""
        lesson = _create(store, lesson_type=LessonType.ONLINE, region="Seoul")

        assert lesson.lesson_type == "ONLINE"
        assert lesson.region is None

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"amount": -1}, "amount"),
            ({"min_student": 0}, "min_student"),
            ({"max_student": 3}, "max_student"),
            ({"end_date": date(2024, 6, 9)}, "start_date"),
            ({"deadline": date(2024, 6, 10)}, "deadline"),
        ],
    )
    def test_create_lesson_invalid(self, store: StateStore, overrides: dict, message: str) -> None:
        """Broken invariants raise InvalidLessonError."""
        with pytest.raises(InvalidLessonError, match=message):
            _create(store, **overrides)

        assert store.list_lessons() == []


@pytest.mark.unit
class TestGetLesson:
    """Tests for get_lesson."""

    def test_get_lesson_exists(self, store: StateStore) -> None:
        """Returns the stored lesson."""
        created = _create(store)

        retrieved = store.get_lesson(created.id)

        assert retrieved.id == created.id
        assert retrieved.title == "Algebra"
        assert retrieved.start_date == date(2024, 6, 10)

    def test_get_lesson_not_found(self, store: StateStore) -> None:
        """LessonNotFoundError for unknown IDs."""
        with pytest.raises(LessonNotFoundError, match="nonexistent"):
            store.get_lesson("nonexistent")


@pytest.mark.unit
class TestListLessons:
    """Tests for list_lessons."""

    def test_list_lessons_ordered_by_start(self, store: StateStore) -> None:
        """Soonest start date first."""
        later = _create(
            store,
            start_date=date(2024, 7, 10),
            end_date=date(2024, 7, 30),
            deadline=date(2024, 7, 3),
        )
        sooner = _create(store)

        assert [lesson.id for lesson in store.list_lessons()] == [sooner.id, later.id]

    def test_list_lessons_filter_teacher(self, store: StateStore) -> None:
        """Filter by owning teacher."""
        mine = _create(store, teacher_id="teacher-1")
        _create(store, teacher_id="teacher-2")

        result = store.list_lessons(teacher_id="teacher-1")

        assert [lesson.id for lesson in result] == [mine.id]

    def test_list_lessons_filter_status(self, store: StateStore) -> None:
        """Filter by lesson status."""
        lesson = _create(store)
        _create(store)
        with store.transaction() as session:
            store.lock_lesson(session, lesson.id).lesson_status = LessonStatus.CLOSED

        result = store.list_lessons(status=LessonStatus.CLOSED)

        assert [item.id for item in result] == [lesson.id]

    def test_list_lessons_pagination(self, store: StateStore) -> None:
        """limit and offset page through results."""
        for _ in range(5):
            _create(store)

        assert len(store.list_lessons(limit=2)) == 2
        assert len(store.list_lessons(limit=10, offset=3)) == 2


@pytest.mark.unit
class TestTransaction:
    """Tests for the transaction scope and row helpers."""

    def test_transaction_commits(self, store: StateStore) -> None:
        """Changes are visible after the block."""
        lesson = _create(store)

        with store.transaction() as session:
            store.lock_lesson(session, lesson.id).title = "Geometry"

        assert store.get_lesson(lesson.id).title == "Geometry"

    def test_transaction_rolls_back_on_error(self, store: StateStore) -> None:
        """An exception discards the block's changes."""
        lesson = _create(store)

        with pytest.raises(RuntimeError), store.transaction() as session:
            store.lock_lesson(session, lesson.id).title = "Geometry"
            session.flush()
            raise RuntimeError("boom")

        assert store.get_lesson(lesson.id).title == "Algebra"

    def test_lock_lesson_not_found(self, store: StateStore) -> None:
        """lock_lesson raises for unknown IDs."""
        with pytest.raises(LessonNotFoundError), store.transaction() as session:
            store.lock_lesson(session, "nonexistent")

    def test_counter_above_capacity_rejected_by_database(self, store: StateStore) -> None:
        """The schema refuses current_student above max_student."""
        lesson = _create(store)

        with pytest.raises(IntegrityError), store.transaction() as session:
            store.lock_lesson(session, lesson.id).current_student = 7

        assert store.get_lesson(lesson.id).current_student == 0

    def test_read_inside_transaction_keeps_pending_write(self, store: StateStore) -> None:
        """A read in the middle of a transaction sees its flushed change and doesn't undo it."""
        lesson = _create(store)

        with store.transaction() as session:
            store.lock_lesson(session, lesson.id).current_student = 1
            session.flush()
            assert store.get_lesson(lesson.id).current_student == 1
            assert store.list_lessons()[0].current_student == 1

        assert store.get_lesson(lesson.id).current_student == 1

    def test_memory_reader_waits_for_open_transaction(self, store: StateStore) -> None:
        """On the shared in-memory connection another thread's read waits for the commit."""
        lesson = _create(store)
        seen: list[int] = []

        def read() -> None:
            seen.append(store.get_lesson(lesson.id).current_student)

        reader = threading.Thread(target=read)
        with store.transaction() as session:
            store.lock_lesson(session, lesson.id).current_student = 1
            session.flush()
            reader.start()
            reader.join(timeout=0.2)
            assert reader.is_alive()

        reader.join(timeout=5)
        assert seen == [1]
        assert store.get_lesson(lesson.id).current_student == 1
