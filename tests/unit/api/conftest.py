"""Fixtures for route tests: a bare FastAPI app wired to in-memory lifecycles."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from groupbuy.api.app import install_exception_handlers
from groupbuy.api.dependencies import (
    get_enrollment_lifecycle,
    get_event_manager,
    get_lesson_lifecycle,
    get_state_store,
)
from groupbuy.api.routes import enrollments as enrollment_routes
from groupbuy.api.routes import lessons as lesson_routes
from groupbuy.events import EventManager
from groupbuy.lifecycle import EnrollmentLifecycle, LessonLifecycle
from groupbuy.state_store import StateStore


@pytest.fixture
def app(
    store: StateStore,
    lessons: LessonLifecycle,
    enrollments: EnrollmentLifecycle,
    event_manager: EventManager,
):
    """Create a test FastAPI app with overridden dependencies."""
    app = FastAPI()

    def override_get_state_store():
        yield store

    def override_get_lesson_lifecycle():
        yield lessons

    def override_get_enrollment_lifecycle():
        yield enrollments

    def override_get_event_manager():
        yield event_manager

    app.dependency_overrides[get_state_store] = override_get_state_store
    app.dependency_overrides[get_lesson_lifecycle] = override_get_lesson_lifecycle
    app.dependency_overrides[get_enrollment_lifecycle] = override_get_enrollment_lifecycle
    app.dependency_overrides[get_event_manager] = override_get_event_manager

    install_exception_handlers(app)

    app.include_router(lesson_routes.router, prefix="/api/v1")
    app.include_router(enrollment_routes.router, prefix="/api/v1")

    return app


@pytest.fixture
def client(app: FastAPI):
    """Create a test client."""
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def lesson_payload() -> dict:
    """Body for POST /lessons."""
    return {
        "teacher_id": "teacher-1",
        "title": "Algebra bootcamp",
        "subject": "Math",
        "school_level": "HIGH",
        "grade": 2,
        "lesson_type": "OFFLINE",
        "region": "Seoul",
        "amount": 200000,
        "min_student": 4,
        "max_student": 6,
        "start_date": "2024-06-10",
        "end_date": "2024-06-30",
    }
