"""StateStore - Main API for State Store operations."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from groupbuy.state_store.database import Database
from groupbuy.state_store.exceptions import (
    EnrollmentNotFoundError,
    InvalidLessonError,
    LessonNotFoundError,
)
from groupbuy.state_store.models import (
    Enrollment,
    EnrollmentStatus,
    Lesson,
    LessonStatus,
    LessonType,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import date

    from sqlalchemy.orm import Session


def validate_lesson_fields(
    amount: int,
    min_student: int,
    max_student: int,
    start_date: date,
    end_date: date,
    deadline: date,
) -> None:
    """Check the invariants a lesson row must satisfy.

    Raises:
        InvalidLessonError: If any invariant is violated.
    """
    if amount < 0:
        raise InvalidLessonError(f"amount must be non-negative, got {amount}")
    if min_student < 1:
        raise InvalidLessonError(f"min_student must be at least 1, got {min_student}")
    if max_student < min_student:
        raise InvalidLessonError(
            f"max_student ({max_student}) must be at least min_student ({min_student})"
        )
    if start_date > end_date:
        raise InvalidLessonError(f"start_date ({start_date}) is after end_date ({end_date})")
    if deadline >= start_date:
        raise InvalidLessonError(f"deadline ({deadline}) must be before start_date ({start_date})")


class StateStore:
    """Main API for State Store operations.

    Provides reads for Lessons and Enrollments and the transaction scope the
    lifecycles write through.
    """

    def __init__(self, db_path: str = "groupbuy.db") -> None:
        """Initialize State Store with SQLite database.

        Creates database and tables if they don't exist.

        Args:
            db_path: Path to SQLite database file
        """
        self._db = Database(db_path)
        self._db.create_tables()
        # An in-memory database is a single connection; any session closing
        # on it rolls back whatever else is in flight, so sessions take turns
        self._memory_lock = threading.RLock() if self._db.is_memory else None
        self._local = threading.local()

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if self._memory_lock is None:
            yield
            return
        with self._memory_lock:
            yield

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Open a session that commits on success and rolls back on error.

        Reads made through this store on the same thread while the block is
        open run in this session and see its uncommitted changes.

        Yields:
            The session to read and write through.
        """
        with self._exclusive():
            session = self._db.get_session(immediate=True)
            self._local.session = session
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                self._local.session = None
                session.close()

    @contextmanager
    def _read_session(self) -> Iterator[Session]:
        active = getattr(self._local, "session", None)
        if active is not None:
            yield active
            return
        with self._exclusive():
            session = self._db.get_session()
            try:
                yield session
            finally:
                session.close()

    # --- Row locking helpers (inside a transaction) ---

    @staticmethod
    def lock_lesson(session: Session, lesson_id: str) -> Lesson:
        """Load a lesson for update within ``session``.

        Raises:
            LessonNotFoundError: If lesson doesn't exist
        """
        stmt = select(Lesson).where(Lesson.id == lesson_id).with_for_update()
        lesson = session.execute(stmt).scalar_one_or_none()
        if lesson is None:
            raise LessonNotFoundError(f"Lesson with id '{lesson_id}' not found")
        return lesson

    @staticmethod
    def lock_enrollment(session: Session, enrollment_id: str) -> Enrollment:
        """Load an enrollment for update within ``session``.

        Raises:
            EnrollmentNotFoundError: If enrollment doesn't exist
        """
        stmt = select(Enrollment).where(Enrollment.id == enrollment_id).with_for_update()
        enrollment = session.execute(stmt).scalar_one_or_none()
        if enrollment is None:
            raise EnrollmentNotFoundError(f"Enrollment with id '{enrollment_id}' not found")
        return enrollment

    # --- Lesson Operations ---

    def create_lesson(
        self,
        teacher_id: str,
        title: str,
        amount: int,
        min_student: int,
        max_student: int,
        start_date: date,
        end_date: date,
        deadline: date,
        description: str = "",
        subject: str | None = None,
        school_level: str | None = None,
        grade: int | None = None,
        lesson_type: LessonType = LessonType.OFFLINE,
        region: str | None = None,
    ) -> Lesson:
        """Create a new lesson in ACTIVE status with no students.

        Args:
            teacher_id: Owning teacher's ID
            title: Lesson title
            amount: Total lesson price
            min_student: Head-count at which the price starts to split
            max_student: Lesson capacity
            start_date: First lesson day
            end_date: Last lesson day
            deadline: Recruiting deadline, before start_date
            description: Lesson description
            subject: Subject name (optional)
            school_level: School level (optional)
            grade: School grade (optional)
            lesson_type: ONLINE or OFFLINE
            region: Region for offline lessons (optional)

        Returns:
            Created Lesson object with generated ID

        Raises:
            InvalidLessonError: If the fields violate a lesson invariant
        """
        validate_lesson_fields(amount, min_student, max_student, start_date, end_date, deadline)
        lesson_type = LessonType(lesson_type)

        with self.transaction() as session:
            lesson = Lesson(
                teacher_id=teacher_id,
                title=title,
                description=description,
                subject=subject,
                school_level=school_level,
                grade=grade,
                lesson_type=lesson_type.value,
                region=None if lesson_type == LessonType.ONLINE else region,
                amount=amount,
                min_student=min_student,
                max_student=max_student,
                start_date=start_date,
                end_date=end_date,
                deadline=deadline,
            )
            session.add(lesson)
            session.flush()
            session.refresh(lesson)
            return lesson

    def get_lesson(self, lesson_id: str) -> Lesson:
        """Get lesson by ID.

        Args:
            lesson_id: The lesson's unique ID

        Returns:
            The Lesson object

        Raises:
            LessonNotFoundError: If lesson doesn't exist
        """
        with self._read_session() as session:
            lesson = session.get(Lesson, lesson_id)
            if lesson is None:
                raise LessonNotFoundError(f"Lesson with id '{lesson_id}' not found")
            return lesson

    def list_lessons(
        self,
        teacher_id: str | None = None,
        status: LessonStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Lesson]:
        """List lessons with optional filters.

        Args:
            teacher_id: Filter by owning teacher (optional)
            status: Filter by lesson status (optional)
            limit: Max results to return
            offset: Offset for pagination

        Returns:
            List of lessons, soonest start date first
        """
        with self._read_session() as session:
            stmt = select(Lesson)

            if teacher_id is not None:
                stmt = stmt.where(Lesson.teacher_id == teacher_id)
            if status is not None:
                stmt = stmt.where(Lesson.status == status.value)

            stmt = stmt.order_by(Lesson.start_date, Lesson.id).limit(limit).offset(offset)
            result = session.execute(stmt)
            return list(result.scalars().all())

    # --- Enrollment Operations ---

    def get_enrollment(self, enrollment_id: str) -> Enrollment:
        """Get enrollment by ID.

        Args:
            enrollment_id: The enrollment's unique ID

        Returns:
            The Enrollment object

        Raises:
            EnrollmentNotFoundError: If enrollment doesn't exist
        """
        with self._read_session() as session:
            enrollment = session.get(Enrollment, enrollment_id)
            if enrollment is None:
                raise EnrollmentNotFoundError(f"Enrollment with id '{enrollment_id}' not found")
            return enrollment

    def list_enrollments(
        self,
        lesson_id: str | None = None,
        student_id: str | None = None,
        status: EnrollmentStatus | None = None,
    ) -> list[Enrollment]:
        """List enrollments with optional filters.

        Args:
            lesson_id: Filter by lesson (optional)
            student_id: Filter by student (optional)
            status: Filter by enrollment status (optional)

        Returns:
            List of enrollments, oldest first
        """
        with self._read_session() as session:
            stmt = select(Enrollment)

            if lesson_id is not None:
                stmt = stmt.where(Enrollment.lesson_id == lesson_id)
            if student_id is not None:
                stmt = stmt.where(Enrollment.student_id == student_id)
            if status is not None:
                stmt = stmt.where(Enrollment.status == status.value)

            stmt = stmt.order_by(Enrollment.enrolled_at, Enrollment.id)
            result = session.execute(stmt)
            return list(result.scalars().all())

    def count_enrolled(self, lesson_id: str) -> int:
        """Count a lesson's enrollments in ENROLLED status.

        Args:
            lesson_id: The lesson's unique ID

        Returns:
            Number of seats actually held
        """
        with self._read_session() as session:
            stmt = select(func.count(Enrollment.id)).where(
                Enrollment.lesson_id == lesson_id,
                Enrollment.status == EnrollmentStatus.ENROLLED.value,
            )
            return int(session.execute(stmt).scalar_one())
