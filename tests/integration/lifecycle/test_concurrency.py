"""Integration tests for concurrent enrollment transitions against a SQLite file."""

import tempfile
import threading
from collections import Counter
from datetime import UTC, date, datetime
from pathlib import Path

import pytest

from groupbuy.config import Settings
from groupbuy.deadlines import FixedClock
from groupbuy.events import EventManager
from groupbuy.lifecycle import EnrollmentLifecycle, ErrorKind, LessonLifecycle
from groupbuy.state_store import EnrollmentStatus, LessonStatus, StateStore

BEFORE_DEADLINE = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def file_store():
    """StateStore backed by a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = f.name
    s = StateStore(path)
    yield s
    s.close()
    Path(path).unlink(missing_ok=True)
    Path(f"{path}-wal").unlink(missing_ok=True)
    Path(f"{path}-shm").unlink(missing_ok=True)


@pytest.fixture
def lifecycles(file_store: StateStore):
    """Lesson and enrollment lifecycles sharing one lock registry."""
    event_manager = EventManager()
    lessons = LessonLifecycle(
        state_store=file_store,
        event_manager=event_manager,
        clock=FixedClock(BEFORE_DEADLINE),
        settings=Settings(),
    )
    enrollments = EnrollmentLifecycle(
        state_store=file_store, lessons=lessons, event_manager=event_manager
    )
    return lessons, enrollments


def _create_lesson(lessons: LessonLifecycle, **overrides):
    fields = {
        "teacher_id": "teacher-1",
        "title": "Algebra bootcamp",
        "amount": 200000,
        "min_student": 1,
        "max_student": 1,
        "start_date": date(2024, 6, 10),
        "end_date": date(2024, 6, 30),
    }
    fields.update(overrides)
    return lessons.create_lesson(**fields)


def _run_concurrently(targets) -> list:
    """Start every callable at the same moment and collect the results."""
    barrier = threading.Barrier(len(targets))
    results = [None] * len(targets)
    errors: list[BaseException] = []

    def worker(index: int, target) -> None:
        barrier.wait()
        try:
            results[index] = target()
        except BaseException as e:  # noqa: BLE001
            errors.append(e)

    threads = [
        threading.Thread(target=worker, args=(i, target)) for i, target in enumerate(targets)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert errors == []
    return results


@pytest.mark.integration
class TestConcurrentEnrollment:
    """Racing enrollments never overbook a lesson."""

    def test_last_seat_goes_to_exactly_one_student(
        self, lifecycles, file_store: StateStore
    ) -> None:
        """Twenty students race for one seat."""
        lessons, enrollments = lifecycles
        lesson = _create_lesson(lessons)

        results = _run_concurrently(
            [lambda i=i: enrollments.enroll(lesson.id, f"s-{i}") for i in range(20)]
        )

        outcomes = Counter("ok" if r.ok else r.error for r in results)
        assert outcomes == {"ok": 1, ErrorKind.LESSON_FULL: 19}

        stored = file_store.get_lesson(lesson.id)
        assert stored.current_student == 1
        assert stored.lesson_status == LessonStatus.CLOSED
        assert len(file_store.list_enrollments(lesson_id=lesson.id)) == 1

    def test_larger_lesson_never_exceeds_capacity(
        self, lifecycles, file_store: StateStore
    ) -> None:
        """Thirty students race for five seats."""
        lessons, enrollments = lifecycles
        lesson = _create_lesson(lessons, min_student=3, max_student=5)

        results = _run_concurrently(
            [lambda i=i: enrollments.enroll(lesson.id, f"s-{i}") for i in range(30)]
        )

        assert sum(1 for r in results if r.ok) == 5
        stored = file_store.get_lesson(lesson.id)
        assert stored.current_student == 5
        enrolled = file_store.list_enrollments(
            lesson_id=lesson.id, status=EnrollmentStatus.ENROLLED
        )
        assert len(enrolled) == 5

    def test_parallel_lessons_keep_separate_counters(
        self, lifecycles, file_store: StateStore
    ) -> None:
        """Writers on different lessons wait for each other instead of failing."""
        lessons, enrollments = lifecycles
        first = _create_lesson(lessons, min_student=2, max_student=10)
        second = _create_lesson(lessons, min_student=2, max_student=10)

        targets = []
        for i in range(8):
            targets.append(lambda i=i: enrollments.enroll(first.id, f"a-{i}"))
            targets.append(lambda i=i: enrollments.enroll(second.id, f"b-{i}"))
        results = _run_concurrently(targets)

        assert all(r.ok for r in results)
        assert file_store.get_lesson(first.id).current_student == 8
        assert file_store.get_lesson(second.id).current_student == 8

    def test_same_student_enrolls_once(self, lifecycles, file_store: StateStore) -> None:
        """Duplicate requests from one student take a single seat."""
        lessons, enrollments = lifecycles
        lesson = _create_lesson(lessons, min_student=2, max_student=6)

        results = _run_concurrently([lambda: enrollments.enroll(lesson.id, "s-1")] * 5)

        outcomes = Counter("ok" if r.ok else r.error for r in results)
        assert outcomes == {"ok": 1, ErrorKind.ALREADY_ENROLLED: 4}
        assert file_store.get_lesson(lesson.id).current_student == 1


@pytest.mark.integration
class TestConcurrentCancellation:
    """Racing cancellations release a seat once."""

    def test_duplicate_cancel_releases_one_seat(
        self, lifecycles, file_store: StateStore
    ) -> None:
        """Two cancels of the same enrollment: one wins, one is rejected."""
        lessons, enrollments = lifecycles
        lesson = _create_lesson(lessons, min_student=2, max_student=6)
        enrollments.enroll(lesson.id, "s-1")
        enrollment = enrollments.enroll(lesson.id, "s-2").value

        results = _run_concurrently([lambda: enrollments.cancel(enrollment.id)] * 2)

        outcomes = Counter("ok" if r.ok else r.error for r in results)
        assert outcomes == {"ok": 1, ErrorKind.ALREADY_FINALIZED: 1}
        assert file_store.get_lesson(lesson.id).current_student == 1
        assert (
            file_store.get_enrollment(enrollment.id).enrollment_status
            == EnrollmentStatus.CANCELED
        )

    def test_cancel_and_enroll_interleave(self, lifecycles, file_store: StateStore) -> None:
        """A freed seat is taken by at most one of the racing students."""
        lessons, enrollments = lifecycles
        lesson = _create_lesson(lessons, min_student=1, max_student=2)
        holder = enrollments.enroll(lesson.id, "s-0").value
        enrollments.enroll(lesson.id, "s-1")

        targets = [lambda: enrollments.cancel(holder.id)]
        targets += [lambda i=i: enrollments.enroll(lesson.id, f"s-{i}") for i in range(2, 6)]
        results = _run_concurrently(targets)

        assert results[0].ok
        stored = file_store.get_lesson(lesson.id)
        assert stored.current_student <= stored.max_student
        enrolled = file_store.list_enrollments(
            lesson_id=lesson.id, status=EnrollmentStatus.ENROLLED
        )
        assert len(enrolled) == stored.current_student


@pytest.mark.integration
class TestReadsDuringWrites:
    """Plain reads on a file database don't queue behind an open write."""

    def test_read_returns_committed_snapshot(self, lifecycles, file_store: StateStore) -> None:
        """A reader sees the last commit while a write is still open."""
        lessons, _ = lifecycles
        lesson = _create_lesson(lessons)
        seen: list[str] = []

        def read() -> None:
            seen.append(file_store.get_lesson(lesson.id).title)

        reader = threading.Thread(target=read)
        with file_store.transaction() as session:
            file_store.lock_lesson(session, lesson.id).title = "Geometry"
            session.flush()
            reader.start()
            reader.join(timeout=5)
            assert not reader.is_alive()

        assert seen == ["Algebra bootcamp"]
        assert file_store.get_lesson(lesson.id).title == "Geometry"
