"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from attendance_engine.api.routes import health_router, payroll_router, timeclock_router
from attendance_engine.calculators.pay_periods import InvalidPayPeriodError
from attendance_engine.config import get_settings
from attendance_engine.database import create_schema, dispose_db, init_db
from attendance_engine.errors import (
    AttendanceError,
    ConflictError,
    NoOpenEntryError,
    NotEligibleError,
    NotFoundError,
    ValidationError,
)
from attendance_engine.services.state_machine import InvalidTransitionError

logger = logging.getLogger(__name__)

# Most specific class first
ERROR_STATUS: list[tuple[type[AttendanceError], int]] = [
    (ConflictError, status.HTTP_409_CONFLICT),
    (NoOpenEntryError, status.HTTP_409_CONFLICT),
    (NotEligibleError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
]


def status_for(exc: AttendanceError) -> int:
    """HTTP status for a domain error."""
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    engine, _ = init_db()
    if get_settings().auto_create_schema:
        await create_schema(engine)
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title="Attendance Engine API",
        description="Attendance and payroll reconciliation",
        version=settings.engine_version,
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(AttendanceError)
    async def attendance_error_handler(
        request: Request, exc: AttendanceError
    ) -> JSONResponse:
        """Translate domain errors into JSON responses."""
        return JSONResponse(
            status_code=status_for(exc),
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(InvalidPayPeriodError)
    async def invalid_pay_period_handler(
        request: Request, exc: InvalidPayPeriodError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc), "code": "INVALID_PAY_PERIOD"},
        )

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(
        request: Request, exc: InvalidTransitionError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc), "code": "INVALID_TRANSITION"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(timeclock_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")

    return app
