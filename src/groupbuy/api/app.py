"""FastAPI application setup."""

from __future__ import annotations

import dataclasses
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from groupbuy.api.dependencies import (
    close_event_manager,
    close_lifecycles,
    close_state_store,
    init_event_manager,
    init_lifecycles,
    init_state_store,
)
from groupbuy.api.models import APIResponse
from groupbuy.api.routes import enrollments, events, lessons
from groupbuy.config import Settings
from groupbuy.lifecycle import (
    EnrollmentLifecycle,
    ErrorKind,
    LessonLifecycle,
    NotLessonOwnerError,
    TransitionRejectedError,
)
from groupbuy.state_store import (
    EnrollmentNotFoundError,
    InvalidLessonError,
    LessonNotFoundError,
    StateStoreError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

# Rejections that mean "wrong side of the deadline" rather than a state conflict
_UNPROCESSABLE_KINDS = frozenset(
    {
        ErrorKind.CANCELLATION_WINDOW_CLOSED,
        ErrorKind.CANCELLATION_WINDOW_STILL_OPEN,
    }
)


def rejection_status(kind: ErrorKind) -> int:
    """HTTP status for a rejected lifecycle operation."""
    if kind in _UNPROCESSABLE_KINDS:
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    return status.HTTP_409_CONFLICT


def install_exception_handlers(app: FastAPI) -> None:
    """Map domain exceptions to APIResponse error envelopes."""

    @app.exception_handler(LessonNotFoundError)
    async def lesson_not_found_handler(
        _request: Request, _exc: LessonNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=APIResponse[None](data=None, error="Lesson not found").model_dump(),
        )

    @app.exception_handler(EnrollmentNotFoundError)
    async def enrollment_not_found_handler(
        _request: Request, _exc: EnrollmentNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=APIResponse[None](data=None, error="Enrollment not found").model_dump(),
        )

    @app.exception_handler(InvalidLessonError)
    async def invalid_lesson_handler(_request: Request, exc: InvalidLessonError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=APIResponse[None](data=None, error=str(exc)).model_dump(),
        )

    @app.exception_handler(NotLessonOwnerError)
    async def not_owner_handler(_request: Request, _exc: NotLessonOwnerError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content=APIResponse[None](
                data=None, error="Only the lesson's teacher can change it"
            ).model_dump(),
        )

    @app.exception_handler(TransitionRejectedError)
    async def transition_rejected_handler(
        _request: Request, exc: TransitionRejectedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=rejection_status(exc.kind),
            content=APIResponse[None](
                data=None, error=exc.message, code=exc.kind.code
            ).model_dump(),
        )

    @app.exception_handler(StateStoreError)
    async def state_store_error_handler(_request: Request, exc: StateStoreError) -> JSONResponse:
        logger.error("Unhandled state store error: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=APIResponse[None](data=None, error="Internal server error").model_dump(),
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    settings: Settings = app.state.settings if hasattr(app.state, "settings") else Settings()
    store = init_state_store(settings.db_path)
    event_manager = init_event_manager()

    lesson_lifecycle = LessonLifecycle(
        state_store=store, event_manager=event_manager, settings=settings
    )
    enrollment_lifecycle = EnrollmentLifecycle(
        state_store=store, lessons=lesson_lifecycle, event_manager=event_manager
    )
    init_lifecycles(lesson_lifecycle, enrollment_lifecycle)
    logger.info("groupbuy API started (db=%s, tz=%s)", settings.db_path, settings.timezone)

    yield
    # Shutdown
    close_lifecycles()
    close_event_manager()
    close_state_store()


def create_app(db_path: str | None = None, settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Database path, overriding the one in ``settings``.
        settings: Engine settings. Defaults to Settings.from_env().
    """
    settings = settings if settings is not None else Settings.from_env()
    if db_path is not None:
        settings = dataclasses.replace(settings, db_path=db_path)

    app = FastAPI(
        title="groupbuy API",
        description="REST API for group-buying lessons",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(app)

    # Include routers
    app.include_router(lessons.router, prefix="/api/v1")
    app.include_router(enrollments.router, prefix="/api/v1")
    app.include_router(events.router, prefix="/api/v1")

    return app


# Default app instance
app = create_app()
