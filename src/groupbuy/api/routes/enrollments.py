"""Enrollment endpoints: enroll, cancel, refund request and refund approval."""

from fastapi import APIRouter, Query, status

from groupbuy.api.dependencies import EnrollmentLifecycleDep, StateStoreDep
from groupbuy.api.models import (
    APIResponse,
    EnrollmentCreate,
    EnrollmentResponse,
    enrollment_to_response,
)
from groupbuy.state_store import EnrollmentStatus

router = APIRouter(tags=["enrollments"])


@router.post(
    "/enrollments",
    response_model=APIResponse[EnrollmentResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_enrollment(
    body: EnrollmentCreate, lifecycle: EnrollmentLifecycleDep
) -> APIResponse[EnrollmentResponse]:
    """Enroll a student in a lesson."""
    enrollment = lifecycle.enroll(body.lesson_id, body.student_id).unwrap()
    return APIResponse(data=enrollment_to_response(enrollment))


@router.get("/enrollments/{enrollment_id}", response_model=APIResponse[EnrollmentResponse])
def get_enrollment(enrollment_id: str, store: StateStoreDep) -> APIResponse[EnrollmentResponse]:
    """Get an enrollment by ID."""
    enrollment = store.get_enrollment(enrollment_id)
    return APIResponse(data=enrollment_to_response(enrollment))


@router.get(
    "/students/{student_id}/enrollments",
    response_model=APIResponse[list[EnrollmentResponse]],
)
def list_student_enrollments(
    student_id: str,
    store: StateStoreDep,
    status_filter: EnrollmentStatus | None = Query(default=None, alias="status"),
) -> APIResponse[list[EnrollmentResponse]]:
    """List a student's enrollments, oldest first."""
    enrollments = store.list_enrollments(student_id=student_id, status=status_filter)
    return APIResponse(data=[enrollment_to_response(e) for e in enrollments])


@router.patch(
    "/enrollments/{enrollment_id}/cancel",
    response_model=APIResponse[EnrollmentResponse],
)
def cancel_enrollment(
    enrollment_id: str, lifecycle: EnrollmentLifecycleDep
) -> APIResponse[EnrollmentResponse]:
    """Cancel an enrollment before the recruiting deadline."""
    enrollment = lifecycle.cancel(enrollment_id).unwrap()
    return APIResponse(data=enrollment_to_response(enrollment))


@router.patch(
    "/enrollments/{enrollment_id}/refund",
    response_model=APIResponse[EnrollmentResponse],
)
def request_refund(
    enrollment_id: str, lifecycle: EnrollmentLifecycleDep
) -> APIResponse[EnrollmentResponse]:
    """Request a refund once the recruiting deadline has passed."""
    enrollment = lifecycle.request_refund(enrollment_id).unwrap()
    return APIResponse(data=enrollment_to_response(enrollment))


@router.patch(
    "/enrollments/{enrollment_id}/approve-refund",
    response_model=APIResponse[EnrollmentResponse],
)
def approve_refund(
    enrollment_id: str, lifecycle: EnrollmentLifecycleDep
) -> APIResponse[EnrollmentResponse]:
    """Approve a pending refund request."""
    enrollment = lifecycle.approve_refund(enrollment_id).unwrap()
    return APIResponse(data=enrollment_to_response(enrollment))
