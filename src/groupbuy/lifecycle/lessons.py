"""LessonLifecycle - state machine over a lesson's status and seat counter."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from groupbuy.config import Settings
from groupbuy.deadlines import SystemClock, compute_deadline
from groupbuy.lifecycle.exceptions import CapacityError
from groupbuy.lifecycle.locks import LessonLocks
from groupbuy.lifecycle.models import ErrorKind, TransitionResult
from groupbuy.pricing import compute_price
from groupbuy.state_store import (
    Enrollment,
    InvalidLessonError,
    LessonStatus,
    LessonType,
)
from groupbuy.state_store.store import validate_lesson_fields

if TYPE_CHECKING:
    from datetime import date

    from groupbuy.events import EventManager
    from groupbuy.deadlines import Clock
    from groupbuy.pricing import PriceQuote
    from groupbuy.state_store import Lesson, StateStore

logger = logging.getLogger(__name__)

# Statuses a teacher may move a lesson out of
_OPEN_STATUSES = (LessonStatus.ACTIVE, LessonStatus.CLOSED)


class LessonLifecycle:
    """Manages lesson creation, teacher edits and status transitions.

    The lesson's ``current_student`` counter is written only by
    ``apply_capacity_delta``, which EnrollmentLifecycle calls inside the same
    transaction that changes the enrollment.
    """

    def __init__(
        self,
        state_store: StateStore,
        event_manager: EventManager,
        clock: Clock | None = None,
        settings: Settings | None = None,
        locks: LessonLocks | None = None,
    ) -> None:
        """Initialize the LessonLifecycle.

        Args:
            state_store: StateStore instance for lesson persistence.
            event_manager: EventManager instance for emitting events.
            clock: Source of the current time. Defaults to the system clock.
            settings: Engine settings (deadline lead time, timezone).
            locks: Per-lesson lock registry shared with EnrollmentLifecycle.
        """
        self.state_store = state_store
        self.event_manager = event_manager
        self.clock = clock if clock is not None else SystemClock()
        self.settings = settings if settings is not None else Settings()
        self.locks = locks if locks is not None else LessonLocks()

    # --- Teacher commands ---

    def create_lesson(
        self,
        teacher_id: str,
        title: str,
        amount: int,
        min_student: int,
        max_student: int,
        start_date: date,
        end_date: date,
        description: str = "",
        subject: str | None = None,
        school_level: str | None = None,
        grade: int | None = None,
        lesson_type: LessonType = LessonType.OFFLINE,
        region: str | None = None,
    ) -> Lesson:
        """Create a lesson, deriving its recruiting deadline from the start date.

        Returns:
            The created Lesson in ACTIVE status.

        Raises:
            InvalidLessonError: If the fields violate a lesson invariant.
        """
        deadline = compute_deadline(start_date, self.settings.deadline_lead_days)
        lesson = self.state_store.create_lesson(
            teacher_id=teacher_id,
            title=title,
            amount=amount,
            min_student=min_student,
            max_student=max_student,
            start_date=start_date,
            end_date=end_date,
            deadline=deadline,
            description=description,
            subject=subject,
            school_level=school_level,
            grade=grade,
            lesson_type=lesson_type,
            region=region,
        )

        logger.info(
            "Created lesson %s for teacher %s (deadline %s)", lesson.id, teacher_id, deadline
        )
        self.event_manager.emit_lesson_created(lesson.id, teacher_id, lesson.status)
        return lesson

    def update_lesson(  # noqa: PLR0912
        self,
        lesson_id: str,
        title: str | None = None,
        description: str | None = None,
        subject: str | None = None,
        school_level: str | None = None,
        grade: int | None = None,
        lesson_type: LessonType | None = None,
        region: str | None = None,
        amount: int | None = None,
        min_student: int | None = None,
        max_student: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Lesson:
        """Apply a teacher edit. Only provided fields are updated.

        A new start date moves the deadline with it. The seat counter and the
        status are not editable here.

        Returns:
            The updated Lesson.

        Raises:
            LessonNotFoundError: If lesson doesn't exist.
            InvalidLessonError: If the edit breaks an invariant, shrinks capacity
                below the enrolled head-count, or reprices a started lesson
                that already has enrollments.
        """
        with self.locks.hold(lesson_id), self.state_store.transaction() as session:
            lesson = self.state_store.lock_lesson(session, lesson_id)
            previous_status = lesson.status

            new_amount = lesson.amount if amount is None else amount
            new_min = lesson.min_student if min_student is None else min_student
            new_max = lesson.max_student if max_student is None else max_student
            new_start = lesson.start_date if start_date is None else start_date
            new_end = lesson.end_date if end_date is None else end_date
            new_deadline = (
                lesson.deadline
                if start_date is None
                else compute_deadline(new_start, self.settings.deadline_lead_days)
            )

            validate_lesson_fields(new_amount, new_min, new_max, new_start, new_end, new_deadline)

            if new_max < lesson.current_student:
                raise InvalidLessonError(
                    f"max_student ({new_max}) is below the enrolled count "
                    f"({lesson.current_student})"
                )

            if new_amount != lesson.amount:
                today = self.clock.now().astimezone(self.settings.zone).date()
                stmt = select(Enrollment.id).where(Enrollment.lesson_id == lesson_id).limit(1)
                has_enrollments = session.execute(stmt).first() is not None
                if has_enrollments and today >= lesson.start_date:
                    raise InvalidLessonError(
                        "amount cannot change after the lesson has started with enrollments"
                    )

            if title is not None:
                lesson.title = title
            if description is not None:
                lesson.description = description
            if subject is not None:
                lesson.subject = subject
            if school_level is not None:
                lesson.school_level = school_level
            if grade is not None:
                lesson.grade = grade
            if lesson_type is not None:
                lesson.lesson_type = LessonType(lesson_type).value
                if lesson_type == LessonType.ONLINE:
                    lesson.region = None
            if region is not None and lesson.lesson_type != LessonType.ONLINE.value:
                lesson.region = region

            lesson.amount = new_amount
            lesson.min_student = new_min
            lesson.max_student = new_max
            lesson.start_date = new_start
            lesson.end_date = new_end
            if new_deadline != lesson.deadline:
                logger.info(
                    "Lesson %s deadline moved from %s to %s",
                    lesson_id,
                    lesson.deadline,
                    new_deadline,
                )
            lesson.deadline = new_deadline

            self._close_if_full(lesson)
            session.flush()
            session.refresh(lesson)

        logger.info("Updated lesson %s", lesson_id)
        self.event_manager.emit_lesson_updated(lesson.id, lesson.deadline.isoformat())
        if lesson.status != previous_status:
            self.event_manager.emit_lesson_status_changed(lesson.id, lesson.status, previous_status)
        return lesson

    def set_status(self, lesson_id: str, new_status: LessonStatus) -> TransitionResult[Lesson]:
        """Explicit teacher transition among ACTIVE, CLOSED and CANCELED.

        Any target is permitted from ACTIVE or CLOSED. CANCELED is terminal.
        Existing enrollments are left as they are.

        Args:
            lesson_id: The lesson's unique ID.
            new_status: Target status.

        Returns:
            TransitionResult with the lesson, or INVALID_TRANSITION.

        Raises:
            LessonNotFoundError: If lesson doesn't exist.
        """
        new_status = LessonStatus(new_status)
        with self.locks.hold(lesson_id), self.state_store.transaction() as session:
            lesson = self.state_store.lock_lesson(session, lesson_id)
            previous_status = lesson.lesson_status

            if previous_status not in _OPEN_STATUSES:
                logger.warning(
                    "Rejected status change of lesson %s from %s to %s",
                    lesson_id,
                    previous_status.value,
                    new_status.value,
                )
                return TransitionResult.failure(
                    ErrorKind.INVALID_TRANSITION,
                    f"Lesson is {previous_status.value} and cannot become {new_status.value}",
                )

            lesson.lesson_status = new_status
            session.flush()
            session.refresh(lesson)

        if new_status != previous_status:
            logger.info(
                "Lesson %s transitioned from %s to %s",
                lesson_id,
                previous_status.value,
                new_status.value,
            )
            self.event_manager.emit_lesson_status_changed(
                lesson_id, new_status.value, previous_status.value
            )
        return TransitionResult.success(lesson)

    # --- Capacity ---

    def apply_capacity_delta(self, lesson: Lesson, delta: int) -> None:
        """Move the lesson's seat counter by one.

        Must be called with the lesson's lock held, on a lesson loaded in the
        transaction that also changes the enrollment. Reaching capacity while
        ACTIVE closes recruiting; freeing a seat never reopens it.

        Args:
            lesson: Lesson attached to the current session.
            delta: +1 for a taken seat, -1 for a freed seat.

        Raises:
            ValueError: If delta is not +1 or -1.
            CapacityError: If the counter would leave [0, max_student].
        """
        if delta not in (1, -1):
            raise ValueError(f"capacity delta must be +1 or -1, got {delta}")

        new_count = lesson.current_student + delta
        if new_count < 0 or new_count > lesson.max_student:
            raise CapacityError(
                f"Lesson {lesson.id} would hold {new_count} of {lesson.max_student} seats"
            )

        lesson.current_student = new_count
        logger.debug(
            "Lesson %s capacity %+d -> %d/%d", lesson.id, delta, new_count, lesson.max_student
        )
        self._close_if_full(lesson)

    def _close_if_full(self, lesson: Lesson) -> None:
        if lesson.lesson_status == LessonStatus.ACTIVE and lesson.is_full:
            lesson.lesson_status = LessonStatus.CLOSED
            logger.info("Lesson %s is full, recruiting closed", lesson.id)

    # --- Pricing ---

    def quote(self, lesson_id: str) -> PriceQuote:
        """Current per-student price of a lesson, recomputed from the stored counter.

        Raises:
            LessonNotFoundError: If lesson doesn't exist.
        """
        lesson = self.state_store.get_lesson(lesson_id)
        return compute_price(lesson.amount, lesson.min_student, lesson.current_student)

