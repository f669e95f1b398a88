"""REST API for groupbuy."""

from groupbuy.api.app import app, create_app
from groupbuy.api.models import (
    APIResponse,
    EnrollmentCreate,
    EnrollmentResponse,
    LessonCreate,
    LessonResponse,
    LessonUpdate,
)

__all__ = [
    "APIResponse",
    "EnrollmentCreate",
    "EnrollmentResponse",
    "LessonCreate",
    "LessonResponse",
    "LessonUpdate",
    "app",
    "create_app",
]
