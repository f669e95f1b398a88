"""SQLAlchemy models for State Store."""

from __future__ import annotations

import uuid
from datetime import date, datetime  # noqa: TC003 - used at runtime for SQLAlchemy
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


class LessonStatus(StrEnum):
    """Lesson status enum."""

    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    CANCELED = "CANCELED"


class EnrollmentStatus(StrEnum):
    """Enrollment status enum."""

    ENROLLED = "ENROLLED"
    CANCELED = "CANCELED"
    REFUND_REQUESTED = "REFUND_REQUESTED"
    REFUNDED = "REFUNDED"


class LessonType(StrEnum):
    """Where the lesson takes place."""

    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Lesson(Base):
    """Lesson model - a group lesson recruited at a group-buying price."""

    __tablename__ = "lessons"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_lessons_amount_non_negative"),
        CheckConstraint("min_student >= 1", name="ck_lessons_min_student_positive"),
        CheckConstraint("max_student >= min_student", name="ck_lessons_max_gte_min"),
        CheckConstraint("current_student >= 0", name="ck_lessons_current_non_negative"),
        CheckConstraint("current_student <= max_student", name="ck_lessons_current_lte_max"),
        CheckConstraint("start_date <= end_date", name="ck_lessons_start_lte_end"),
        CheckConstraint("deadline < start_date", name="ck_lessons_deadline_before_start"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    teacher_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[str | None] = mapped_column(String(100), nullable=True)
    school_level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    grade: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lesson_type: Mapped[str] = mapped_column(String(20), nullable=False)
    region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    min_student: Mapped[int] = mapped_column(Integer, nullable=False)
    max_student: Mapped[int] = mapped_column(Integer, nullable=False)
    current_student: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    deadline: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    enrollments: Mapped[list[Enrollment]] = relationship(
        "Enrollment", back_populates="lesson", cascade="all, delete-orphan"
    )

    def __init__(
        self,
        teacher_id: str,
        title: str,
        amount: int,
        min_student: int,
        max_student: int,
        start_date: date,
        end_date: date,
        deadline: date,
        id: str | None = None,
        description: str = "",
        subject: str | None = None,
        school_level: str | None = None,
        grade: int | None = None,
        lesson_type: str | None = None,
        region: str | None = None,
        current_student: int = 0,
        status: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.teacher_id = teacher_id
        self.title = title
        self.description = description
        self.subject = subject
        self.school_level = school_level
        self.grade = grade
        self.lesson_type = lesson_type if lesson_type is not None else LessonType.OFFLINE.value
        self.region = region
        self.amount = amount
        self.min_student = min_student
        self.max_student = max_student
        self.current_student = current_student
        self.start_date = start_date
        self.end_date = end_date
        self.deadline = deadline
        self.status = status if status is not None else LessonStatus.ACTIVE.value

    @property
    def lesson_status(self) -> LessonStatus:
        """Get status as LessonStatus enum."""
        return LessonStatus(self.status)

    @lesson_status.setter
    def lesson_status(self, value: LessonStatus) -> None:
        """Set status from LessonStatus enum."""
        self.status = value.value

    @property
    def is_full(self) -> bool:
        """Whether every seat is taken."""
        return self.current_student >= self.max_student

    def __repr__(self) -> str:
        return (
            f"<Lesson(id={self.id!r}, title={self.title!r}, status={self.status!r}, "
            f"students={self.current_student}/{self.max_student})>"
        )


class Enrollment(Base):
    """Enrollment model - one student's seat in a lesson."""

    __tablename__ = "enrollments"
    __table_args__ = (Index("ix_enrollments_lesson_status", "lesson_id", "status"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    lesson_id: Mapped[str] = mapped_column(String(36), ForeignKey("lessons.id"), nullable=False)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    enrolled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    refund_requested_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    lesson: Mapped[Lesson] = relationship("Lesson", back_populates="enrollments")

    def __init__(
        self,
        lesson_id: str,
        student_id: str,
        enrolled_at: datetime,
        id: str | None = None,
        status: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.lesson_id = lesson_id
        self.student_id = student_id
        self.enrolled_at = enrolled_at
        self.status = status if status is not None else EnrollmentStatus.ENROLLED.value
        self.canceled_at = None
        self.refund_requested_at = None
        self.refunded_at = None

    @property
    def enrollment_status(self) -> EnrollmentStatus:
        """Get status as EnrollmentStatus enum."""
        return EnrollmentStatus(self.status)

    @enrollment_status.setter
    def enrollment_status(self, value: EnrollmentStatus) -> None:
        """Set status from EnrollmentStatus enum."""
        self.status = value.value

    def __repr__(self) -> str:
        return (
            f"<Enrollment(id={self.id!r}, lesson_id={self.lesson_id!r}, "
            f"student_id={self.student_id!r}, status={self.status!r})>"
        )
