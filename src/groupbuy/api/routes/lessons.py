"""Lesson endpoints: teacher CRUD, status changes, pricing and roster."""

from typing import Annotated

from fastapi import APIRouter, Header, Query, status

from groupbuy.api.dependencies import LessonLifecycleDep, StateStoreDep
from groupbuy.api.models import (
    APIResponse,
    LessonCreate,
    LessonPricingResponse,
    LessonResponse,
    LessonStatusUpdate,
    LessonUpdate,
    PriceQuoteResponse,
    RosterEntryResponse,
    enrollment_to_response,
    lesson_to_response,
)
from groupbuy.lifecycle import NotLessonOwnerError
from groupbuy.pricing import compute_price, price_schedule
from groupbuy.state_store import EnrollmentStatus, LessonStatus

router = APIRouter(prefix="/lessons", tags=["lessons"])


@router.get("", response_model=APIResponse[list[LessonResponse]])
def list_lessons(
    store: StateStoreDep,
    status_filter: LessonStatus | None = Query(default=None, alias="status"),
    teacher_id: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
) -> APIResponse[list[LessonResponse]]:
    """List lessons with optional filters."""
    lessons = store.list_lessons(
        teacher_id=teacher_id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    return APIResponse(data=[lesson_to_response(lesson) for lesson in lessons])


@router.post(
    "",
    response_model=APIResponse[LessonResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_lesson(
    lesson: LessonCreate, lifecycle: LessonLifecycleDep
) -> APIResponse[LessonResponse]:
    """Create a new lesson. The recruiting deadline is derived from start_date."""
    created = lifecycle.create_lesson(
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
        start_date=lesson.start_date,
        end_date=lesson.end_date,
    )
    return APIResponse(data=lesson_to_response(created))


@router.get("/{lesson_id}", response_model=APIResponse[LessonResponse])
def get_lesson(lesson_id: str, store: StateStoreDep) -> APIResponse[LessonResponse]:
    """Get a lesson by ID."""
    lesson = store.get_lesson(lesson_id)
    return APIResponse(data=lesson_to_response(lesson))


@router.patch("/{lesson_id}", response_model=APIResponse[LessonResponse])
def update_lesson(
    lesson_id: str, lesson: LessonUpdate, lifecycle: LessonLifecycleDep
) -> APIResponse[LessonResponse]:
    """Update a lesson (partial update)."""
    updated = lifecycle.update_lesson(
        lesson_id,
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
        start_date=lesson.start_date,
        end_date=lesson.end_date,
    )
    return APIResponse(data=lesson_to_response(updated))


@router.patch("/{lesson_id}/status", response_model=APIResponse[LessonResponse])
def set_lesson_status(
    lesson_id: str,
    body: LessonStatusUpdate,
    store: StateStoreDep,
    lifecycle: LessonLifecycleDep,
    x_teacher_id: Annotated[str, Header()],
) -> APIResponse[LessonResponse]:
    """Move a lesson between ACTIVE, CLOSED and CANCELED. Owner only."""
    lesson = store.get_lesson(lesson_id)
    if lesson.teacher_id != x_teacher_id:
        raise NotLessonOwnerError(f"Teacher {x_teacher_id} does not own lesson {lesson_id}")

    updated = lifecycle.set_status(lesson_id, body.status).unwrap()
    return APIResponse(data=lesson_to_response(updated))


@router.get("/{lesson_id}/pricing", response_model=APIResponse[LessonPricingResponse])
def get_lesson_pricing(
    lesson_id: str,
    store: StateStoreDep,
    schedule: bool = Query(default=False, description="Include price at every head-count"),
) -> APIResponse[LessonPricingResponse]:
    """Current per-student price of a lesson, priced from a single read."""
    lesson = store.get_lesson(lesson_id)
    quote = compute_price(lesson.amount, lesson.min_student, lesson.current_student)

    price_table = None
    if schedule:
        price_table = [
            PriceQuoteResponse.model_validate(entry)
            for entry in price_schedule(lesson.amount, lesson.min_student, lesson.max_student)
        ]

    return APIResponse(
        data=LessonPricingResponse(
            lesson_id=lesson.id,
            amount=quote.amount,
            min_student=quote.min_student,
            max_student=lesson.max_student,
            current_student=quote.current_student,
            per_student=quote.per_student,
            discount_rate_percent=quote.discount_rate_percent,
            schedule=price_table,
        )
    )


@router.get("/{lesson_id}/enrollments", response_model=APIResponse[list[RosterEntryResponse]])
def list_lesson_enrollments(
    lesson_id: str,
    store: StateStoreDep,
    lifecycle: LessonLifecycleDep,
    status_filter: EnrollmentStatus | None = Query(default=None, alias="status"),
) -> APIResponse[list[RosterEntryResponse]]:
    """Roster of a lesson, each entry priced at the lesson's current quote."""
    quote = lifecycle.quote(lesson_id)
    enrollments = store.list_enrollments(lesson_id=lesson_id, status=status_filter)

    roster = [
        RosterEntryResponse(
            **enrollment_to_response(enrollment).model_dump(),
            final_price=quote.per_student,
        )
        for enrollment in enrollments
    ]
    return APIResponse(data=roster)
