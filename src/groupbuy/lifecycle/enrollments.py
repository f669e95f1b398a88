"""EnrollmentLifecycle - state machine over a single student's seat in a lesson."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from groupbuy.deadlines import is_before_deadline
from groupbuy.events import EventType
from groupbuy.lifecycle.models import ErrorKind, TransitionResult
from groupbuy.state_store import Enrollment, EnrollmentStatus, LessonStatus

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.orm import Session

    from groupbuy.events import EventManager
    from groupbuy.lifecycle.lessons import LessonLifecycle
    from groupbuy.state_store import Lesson, StateStore

logger = logging.getLogger(__name__)


class EnrollmentLifecycle:
    """Drives enrollments through ENROLLED, CANCELED, REFUND_REQUESTED and REFUNDED.

    Before the lesson's recruiting deadline a student may only cancel (full
    refund, seat freed at once). From the deadline on a student may only
    request a refund, which also frees the seat and then waits for the
    settlement collaborator to approve it.

    Every transition runs under the lesson's lock in one transaction together
    with the capacity delta it causes.
    """

    def __init__(
        self,
        state_store: StateStore,
        lessons: LessonLifecycle,
        event_manager: EventManager,
    ) -> None:
        """Initialize the EnrollmentLifecycle.

        Args:
            state_store: StateStore instance for enrollment persistence.
            lessons: LessonLifecycle owning the seat counters, clock and locks.
            event_manager: EventManager instance for emitting events.
        """
        self.state_store = state_store
        self.lessons = lessons
        self.event_manager = event_manager

    def _now(self) -> datetime:
        return self.lessons.clock.now()

    def _before_deadline(self, now: datetime, lesson: Lesson) -> bool:
        return is_before_deadline(now, lesson.deadline, self.lessons.settings.zone)

    def enroll(self, lesson_id: str, student_id: str) -> TransitionResult[Enrollment]:
        """Take a seat in a lesson.

        Args:
            lesson_id: The lesson's unique ID.
            student_id: The enrolling student's ID.

        Returns:
            TransitionResult with the new ENROLLED enrollment, or one of
            LESSON_NOT_ACTIVE, LESSON_FULL, ALREADY_ENROLLED.

        Raises:
            LessonNotFoundError: If lesson doesn't exist.
        """
        with self.lessons.locks.hold(lesson_id), self.state_store.transaction() as session:
            lesson = self.state_store.lock_lesson(session, lesson_id)
            status = lesson.lesson_status

            # A lesson closed because it filled up reports LESSON_FULL
            if status == LessonStatus.CANCELED:
                result = TransitionResult.failure(ErrorKind.LESSON_NOT_ACTIVE)
            elif lesson.is_full:
                result = TransitionResult.failure(ErrorKind.LESSON_FULL)
            elif status != LessonStatus.ACTIVE:
                result = TransitionResult.failure(ErrorKind.LESSON_NOT_ACTIVE)
            elif self._holds_seat(session, lesson_id, student_id):
                result = TransitionResult.failure(ErrorKind.ALREADY_ENROLLED)
            else:
                enrollment = Enrollment(
                    lesson_id=lesson_id,
                    student_id=student_id,
                    enrolled_at=self._now(),
                )
                session.add(enrollment)
                self.lessons.apply_capacity_delta(lesson, +1)
                session.flush()
                session.refresh(lesson)
                result = TransitionResult.success(enrollment)

        if not result.ok:
            logger.info(
                "Rejected enrollment of student %s in lesson %s: %s",
                student_id,
                lesson_id,
                result.error,
            )
            return result

        enrollment = result.value
        logger.info(
            "Student %s enrolled in lesson %s (%d/%d)",
            student_id,
            lesson_id,
            lesson.current_student,
            lesson.max_student,
        )
        self.event_manager.emit_enrollment(
            EventType.ENROLLMENT_CREATED,
            enrollment.id,
            lesson_id,
            student_id,
            enrollment.status,
        )
        self._emit_capacity(lesson, status)
        return result

    def cancel(self, enrollment_id: str) -> TransitionResult[Enrollment]:
        """Cancel an enrollment before the recruiting deadline.

        Args:
            enrollment_id: The enrollment's unique ID.

        Returns:
            TransitionResult with the CANCELED enrollment, or one of
            ALREADY_FINALIZED, CANCELLATION_WINDOW_CLOSED.

        Raises:
            EnrollmentNotFoundError: If enrollment doesn't exist.
        """
        return self._release_seat(
            enrollment_id,
            target=EnrollmentStatus.CANCELED,
            before_deadline_required=True,
        )

    def request_refund(self, enrollment_id: str) -> TransitionResult[Enrollment]:
        """Request a refund from the recruiting deadline on.

        The seat is freed immediately; the money moves once the settlement
        collaborator approves the refund.

        Args:
            enrollment_id: The enrollment's unique ID.

        Returns:
            TransitionResult with the REFUND_REQUESTED enrollment, or one of
            ALREADY_FINALIZED, CANCELLATION_WINDOW_STILL_OPEN.

        Raises:
            EnrollmentNotFoundError: If enrollment doesn't exist.
        """
        return self._release_seat(
            enrollment_id,
            target=EnrollmentStatus.REFUND_REQUESTED,
            before_deadline_required=False,
        )

    def approve_refund(self, enrollment_id: str) -> TransitionResult[Enrollment]:
        """Mark a requested refund as paid out.

        Args:
            enrollment_id: The enrollment's unique ID.

        Returns:
            TransitionResult with the REFUNDED enrollment, or
            NOT_IN_REFUND_REQUESTED_STATE.

        Raises:
            EnrollmentNotFoundError: If enrollment doesn't exist.
        """
        lesson_id = self.state_store.get_enrollment(enrollment_id).lesson_id

        with self.lessons.locks.hold(lesson_id), self.state_store.transaction() as session:
            enrollment = self.state_store.lock_enrollment(session, enrollment_id)
            if enrollment.enrollment_status != EnrollmentStatus.REFUND_REQUESTED:
                result = TransitionResult.failure(ErrorKind.NOT_IN_REFUND_REQUESTED_STATE)
            else:
                enrollment.enrollment_status = EnrollmentStatus.REFUNDED
                enrollment.refunded_at = self._now()
                result = TransitionResult.success(enrollment)

        if not result.ok:
            logger.info("Rejected refund approval of enrollment %s: %s", enrollment_id, result.error)
            return result

        logger.info("Refund approved for enrollment %s", enrollment_id)
        self.event_manager.emit_enrollment(
            EventType.REFUND_APPROVED,
            enrollment.id,
            enrollment.lesson_id,
            enrollment.student_id,
            enrollment.status,
        )
        return result

    def _release_seat(
        self,
        enrollment_id: str,
        target: EnrollmentStatus,
        before_deadline_required: bool,
    ) -> TransitionResult[Enrollment]:
        """Move an ENROLLED enrollment to ``target`` and free its seat.

        ``before_deadline_required`` selects which side of the deadline the
        transition is legal on.
        """
        lesson_id = self.state_store.get_enrollment(enrollment_id).lesson_id

        with self.lessons.locks.hold(lesson_id), self.state_store.transaction() as session:
            enrollment = self.state_store.lock_enrollment(session, enrollment_id)
            lesson = self.state_store.lock_lesson(session, lesson_id)
            status = lesson.lesson_status
            now = self._now()
            before_deadline = self._before_deadline(now, lesson)

            if enrollment.enrollment_status != EnrollmentStatus.ENROLLED:
                result = TransitionResult.failure(ErrorKind.ALREADY_FINALIZED)
            elif before_deadline_required and not before_deadline:
                result = TransitionResult.failure(ErrorKind.CANCELLATION_WINDOW_CLOSED)
            elif not before_deadline_required and before_deadline:
                result = TransitionResult.failure(ErrorKind.CANCELLATION_WINDOW_STILL_OPEN)
            else:
                enrollment.enrollment_status = target
                if target == EnrollmentStatus.CANCELED:
                    enrollment.canceled_at = now
                else:
                    enrollment.refund_requested_at = now
                self.lessons.apply_capacity_delta(lesson, -1)
                session.flush()
                session.refresh(lesson)
                result = TransitionResult.success(enrollment)

        if not result.ok:
            logger.info(
                "Rejected %s of enrollment %s: %s",
                target.value,
                enrollment_id,
                result.error,
            )
            return result

        logger.info(
            "Enrollment %s transitioned to %s, lesson %s now %d/%d",
            enrollment_id,
            target.value,
            lesson_id,
            lesson.current_student,
            lesson.max_student,
        )
        event_type = (
            EventType.ENROLLMENT_CANCELED
            if target == EnrollmentStatus.CANCELED
            else EventType.REFUND_REQUESTED
        )
        self.event_manager.emit_enrollment(
            event_type,
            enrollment.id,
            lesson_id,
            enrollment.student_id,
            enrollment.status,
        )
        self._emit_capacity(lesson, status)
        return result

    @staticmethod
    def _holds_seat(session: Session, lesson_id: str, student_id: str) -> bool:
        stmt = select(Enrollment.id).where(
            Enrollment.lesson_id == lesson_id,
            Enrollment.student_id == student_id,
            Enrollment.status == EnrollmentStatus.ENROLLED.value,
        )
        return session.execute(stmt).first() is not None

    def _emit_capacity(self, lesson: Lesson, previous_status: LessonStatus) -> None:
        self.event_manager.emit_capacity_changed(
            lesson.id, lesson.current_student, lesson.max_student
        )
        if lesson.lesson_status != previous_status:
            self.event_manager.emit_lesson_status_changed(
                lesson.id, lesson.status, previous_status.value
            )
