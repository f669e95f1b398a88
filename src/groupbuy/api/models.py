"""Pydantic models for REST API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from groupbuy.state_store import EnrollmentStatus, LessonStatus, LessonType

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    data: T | None = None
    error: str | None = None
    code: str | None = None


# Lesson models


class LessonCreate(BaseModel):
    """Request model for creating a lesson."""

    teacher_id: str = Field(..., min_length=1, max_length=64)
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="")
    subject: str | None = Field(default=None, max_length=100)
    school_level: str | None = Field(default=None, max_length=50)
    grade: int | None = Field(default=None, ge=1, le=12)
    lesson_type: LessonType = LessonType.OFFLINE
    region: str | None = Field(default=None, max_length=100)
    amount: int = Field(..., ge=0)
    min_student: int = Field(..., ge=1)
    max_student: int = Field(..., ge=1)
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_bounds(self) -> LessonCreate:
        if self.max_student < self.min_student:
            raise ValueError("max_student must be at least min_student")
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class LessonUpdate(BaseModel):
    """Request model for a teacher edit (partial update)."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    subject: str | None = Field(default=None, max_length=100)
    school_level: str | None = Field(default=None, max_length=50)
    grade: int | None = Field(default=None, ge=1, le=12)
    lesson_type: LessonType | None = None
    region: str | None = Field(default=None, max_length=100)
    amount: int | None = Field(default=None, ge=0)
    min_student: int | None = Field(default=None, ge=1)
    max_student: int | None = Field(default=None, ge=1)
    start_date: date | None = None
    end_date: date | None = None


class LessonStatusUpdate(BaseModel):
    """Request model for an explicit lesson status change."""

    status: LessonStatus


class LessonResponse(BaseModel):
    """Response model for a lesson, with its current group-buying price."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    teacher_id: str
    title: str
    description: str
    subject: str | None
    school_level: str | None
    grade: int | None
    lesson_type: str
    region: str | None
    amount: int
    min_student: int
    max_student: int
    current_student: int
    start_date: date
    end_date: date
    deadline: date
    status: str
    per_student: int
    discount_rate_percent: int
    created_at: datetime
    updated_at: datetime


def lesson_to_response(lesson: Any) -> LessonResponse:
    """Convert a Lesson model to LessonResponse, pricing it on the way."""
    from groupbuy.pricing import compute_price  # noqa: PLC0415

    quote = compute_price(lesson.amount, lesson.min_student, lesson.current_student)
    return LessonResponse(
        id=lesson.id,
        teacher_id=lesson.teacher_id,
        title=lesson.title,
        description=lesson.description,
        subject=lesson.subject,
        school_level=lesson.school_level,
        grade=lesson.grade,
        lesson_type=lesson.lesson_type,
        region=lesson.region,
        amount=lesson.amount,
        min_student=lesson.min_student,
        max_student=lesson.max_student,
        current_student=lesson.current_student,
        start_date=lesson.start_date,
        end_date=lesson.end_date,
        deadline=lesson.deadline,
        status=lesson.status,
        per_student=quote.per_student,
        discount_rate_percent=quote.discount_rate_percent,
        created_at=lesson.created_at,
        updated_at=lesson.updated_at,
    )


# Pricing models


class PriceQuoteResponse(BaseModel):
    """Response model for a price quote."""

    model_config = ConfigDict(from_attributes=True)

    current_student: int
    per_student: int
    discount_rate_percent: int


class LessonPricingResponse(BaseModel):
    """Response model for a lesson's pricing."""

    lesson_id: str
    amount: int
    min_student: int
    max_student: int
    current_student: int
    per_student: int
    discount_rate_percent: int
    schedule: list[PriceQuoteResponse] | None = None


# Enrollment models


class EnrollmentCreate(BaseModel):
    """Request model for enrolling a student."""

    lesson_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1, max_length=64)


class EnrollmentResponse(BaseModel):
    """Response model for an enrollment."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    lesson_id: str
    student_id: str
    status: EnrollmentStatus
    enrolled_at: datetime
    canceled_at: datetime | None
    refund_requested_at: datetime | None
    refunded_at: datetime | None


def enrollment_to_response(enrollment: Any) -> EnrollmentResponse:
    """Convert an Enrollment model to EnrollmentResponse."""
    return EnrollmentResponse.model_validate(enrollment)


class RosterEntryResponse(EnrollmentResponse):
    """Enrollment as listed for the lesson's teacher, with the price it pays now."""

    final_price: int
