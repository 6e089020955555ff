"""
FastAPI application for Salon Scheduler.

This is the main entry point for the HTTP API, providing:
- Bookable slot search for the public booking flow
- Block conflict pre-checks and block creation
- Appointment booking and cancellation
- Day/week calendar layout
- Health endpoint
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import FastAPI, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.api.dependencies import get_app_settings, get_db_session, get_now
from src.api.middleware import RequestLoggingMiddleware, get_request_id
from src.api.models import (
    AppointmentConflictModel,
    AppointmentResponse,
    AvailabilityResponse,
    BlockConflictRequest,
    BlockConflictResponse,
    BlockResponse,
    CalendarEventModel,
    CalendarLayoutRequest,
    CalendarResponse,
    CreateAppointmentRequest,
    CreateBlockRequest,
    ErrorResponse,
    HealthResponse,
)
from src.config import Settings
from src.database import check_connection
from src.models.appointments import Appointment
from src.services.availability import get_available_slots
from src.services.calendar_layout import CalendarEvent, compute_calendar_layout, load_calendar
from src.services.commitments import BlockConflictReport, check_block_conflict
from src.services.exceptions import (
    AppointmentNotFoundError,
    BlockConflictError,
    CommitConflictError,
    MalformedInputError,
    SchedulingError,
    StaffNotFoundError,
    UpstreamUnavailableError,
)
from src.services.reservations import (
    LineItem,
    book_appointment,
    cancel_appointment,
    create_time_block,
)

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Salon Scheduler API")
    yield
    logger.info("Shutting down Salon Scheduler API")


app = FastAPI(
    title="Salon Scheduler API",
    description="""
# Salon Scheduler API

Scheduling engine for a multi-location personal-services business.

## Read path (advisory)
- **GET /staff/{staff_id}/availability** - bookable start times
- **POST /staff/{staff_id}/block-conflicts** - appointments a new block would overlap
- **GET /calendar** - laid-out appointments and blocks for a date range

## Write path (conditional)
- **POST /appointments** - book; 409 if the slot was taken meanwhile
- **POST /blocks** - block time or reopen it; 409 on overlap unless `force`
- **POST /appointments/{id}/cancel** - release a booking

## Error Handling
- **400** - Malformed dates, times or durations
- **404** - Unknown professional or appointment
- **409** - Lost a commit race or overlapping commitments
- **422** - Request body validation error
- **503** - Store unavailable (retryable)
    """,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


# =============================================================================
# Exception Handlers
# =============================================================================


def _status_for(exc: SchedulingError) -> int:
    if isinstance(exc, (StaffNotFoundError, AppointmentNotFoundError)):
        return 404
    if isinstance(exc, MalformedInputError):
        return 400
    if isinstance(exc, CommitConflictError):
        return 409
    if isinstance(exc, UpstreamUnavailableError):
        return 503
    return 500


def _conflict_payload(report: BlockConflictReport) -> dict:
    return BlockConflictResponse(
        staff_id=report.staff_id,
        date=report.date,
        start_time=report.start_time,
        end_time=report.end_time,
        conflicting_count=report.conflicting_count,
        conflicts=[AppointmentConflictModel(**asdict(c)) for c in report.conflicts],
    ).model_dump(mode="json")


@app.exception_handler(SchedulingError)
async def scheduling_exception_handler(request, exc: SchedulingError):
    """Map scheduling errors onto HTTP status codes."""
    status_code = _status_for(exc)
    req_id = get_request_id()
    if status_code >= 500:
        logger.error(
            f"[{req_id}] Scheduling failure: {exc.message}",
            extra={"request_id": req_id, "error_type": type(exc).__name__},
            exc_info=exc.original_error,
        )
    else:
        logger.info(
            f"[{req_id}] Rejected request: {exc.message}",
            extra={"request_id": req_id, "error_type": type(exc).__name__},
        )

    details = None
    if isinstance(exc, BlockConflictError) and exc.report is not None:
        details = _conflict_payload(exc.report)

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error_type=type(exc).__name__,
            message=exc.message,
            retryable=exc.retryable,
            details=details,
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_type": "http_error",
            "message": exc.detail,
            "retryable": exc.status_code >= 500,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error_type": "internal_error",
            "message": "An unexpected error occurred",
            "retryable": True,
        },
    )


# =============================================================================
# Response builders
# =============================================================================


def _appointment_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        staff_id=appointment.staff_id,
        staff_ids=appointment.staff_ids,
        date=appointment.date,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        status=appointment.status,
        client_name=appointment.client_name,
        total=appointment.total,
    )


def _event_model(event: CalendarEvent) -> CalendarEventModel:
    return CalendarEventModel(**asdict(event), display_duration=event.display_duration)


def _event_from_model(model: CalendarEventModel) -> CalendarEvent:
    return CalendarEvent(
        id=model.id,
        type=model.type,
        start=model.start,
        end=model.end,
        staff_ids=tuple(model.staff_ids),
        date=model.date,
        kind=model.kind,
        title=model.title,
        status=model.status,
    )


# =============================================================================
# Health
# =============================================================================


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    tags=["System"],
)
def health_check(db: Session = Depends(get_db_session)) -> HealthResponse:
    """Check API health and database connectivity."""
    connected = check_connection(db)
    return HealthResponse(
        status="healthy" if connected else "unhealthy",
        version=API_VERSION,
        database_connected=connected,
    )


# =============================================================================
# Availability
# =============================================================================


@app.get(
    "/staff/{staff_id}/availability",
    response_model=AvailabilityResponse,
    summary="Bookable start times",
    description="""
Start times on the slot grid where a booking of `duration` minutes fits inside
the professional's working hours without touching an appointment or block.
On the current date, starts earlier than now plus the configured lead time
are omitted. A day off returns an empty list, not an error.

The result is advisory; booking re-checks the slot.
    """,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed date or duration"},
        404: {"model": ErrorResponse, "description": "Professional not found"},
        503: {"model": ErrorResponse, "description": "Store unavailable"},
    },
    tags=["Availability"],
)
def staff_availability(
    staff_id: UUID,
    date: str = Query(..., description="Calendar date (YYYY-MM-DD)"),
    duration: int = Query(..., description="Requested duration in minutes"),
    db: Session = Depends(get_db_session),
    now: datetime = Depends(get_now),
    settings: Settings = Depends(get_app_settings),
) -> AvailabilityResponse:
    result = get_available_slots(db, staff_id, date, duration, now=now, settings=settings)
    return AvailabilityResponse(
        staff_id=result.staff_id,
        date=result.date,
        duration_minutes=result.duration_minutes,
        closed=result.is_closed,
        lead_time_minutes=result.lead_time_minutes,
        slots=result.slots,
    )


# =============================================================================
# Blocks
# =============================================================================


@app.post(
    "/staff/{staff_id}/block-conflicts",
    response_model=BlockConflictResponse,
    summary="Check a block against existing appointments",
    tags=["Blocks"],
)
def block_conflicts(
    staff_id: UUID,
    request: BlockConflictRequest,
    db: Session = Depends(get_db_session),
) -> BlockConflictResponse:
    """List appointments that a block on the given range would overlap."""
    report = check_block_conflict(db, staff_id, request.date, request.start_time, request.end_time)
    return BlockConflictResponse(**_conflict_payload(report))


@app.post(
    "/blocks",
    response_model=BlockResponse,
    status_code=201,
    summary="Create a block or availability override",
    responses={
        409: {"model": ErrorResponse, "description": "Overlapping appointments or lost commit race"},
    },
    tags=["Blocks"],
)
def create_block(
    request: CreateBlockRequest,
    db: Session = Depends(get_db_session),
) -> BlockResponse:
    block = create_time_block(
        db,
        staff_id=request.staff_id,
        date=request.date,
        start_time=request.start_time,
        end_time=request.end_time,
        kind=request.kind,
        reason=request.reason,
        location_id=request.location_id,
        force=request.force,
    )
    db.commit()

    return BlockResponse(
        id=block.id,
        staff_id=block.staff_id,
        date=block.date,
        start_time=block.start_time,
        end_time=block.end_time,
        kind=block.kind,
        reason=block.reason,
    )


# =============================================================================
# Appointments
# =============================================================================


@app.post(
    "/appointments",
    response_model=AppointmentResponse,
    status_code=201,
    summary="Book an appointment",
    description="""
Books the interval after re-checking it under a conditional write. Public web
bookings must also fall inside the professional's working hours.
    """,
    responses={
        409: {"model": ErrorResponse, "description": "Slot taken or lost commit race"},
    },
    tags=["Appointments"],
)
def create_appointment(
    request: CreateAppointmentRequest,
    db: Session = Depends(get_db_session),
) -> AppointmentResponse:
    appointment = book_appointment(
        db,
        staff_id=request.staff_id,
        date=request.date,
        start_time=request.start_time,
        end_time=request.end_time,
        duration_minutes=request.duration_minutes,
        items=[
            LineItem(
                service_name=item.service_name,
                staff_id=item.staff_id,
                price=item.price,
                duration_minutes=item.duration_minutes,
            )
            for item in request.items
        ],
        client_name=request.client_name,
        client_phone=request.client_phone,
        location_id=request.location_id,
        origin=request.origin,
        status=request.status,
        enforce_hours=request.origin == "public_web",
    )
    db.commit()
    return _appointment_response(appointment)


@app.post(
    "/appointments/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    summary="Cancel an appointment",
    tags=["Appointments"],
)
def cancel(
    appointment_id: UUID,
    db: Session = Depends(get_db_session),
) -> AppointmentResponse:
    appointment = cancel_appointment(db, appointment_id)
    db.commit()
    return _appointment_response(appointment)


# =============================================================================
# Calendar
# =============================================================================


@app.get(
    "/calendar",
    response_model=CalendarResponse,
    summary="Laid-out calendar",
    description="Appointments and blocks between two dates with column layout for rendering.",
    tags=["Calendar"],
)
def calendar(
    start_date: str = Query(..., description="First date (YYYY-MM-DD)"),
    end_date: Optional[str] = Query(None, description="Last date, inclusive (defaults to start_date)"),
    staff_id: Optional[list[UUID]] = Query(None, description="Professionals to include"),
    db: Session = Depends(get_db_session),
) -> CalendarResponse:
    events = load_calendar(db, start_date, end_date or start_date, staff_id)
    return CalendarResponse(events=[_event_model(e) for e in events], total=len(events))


@app.post(
    "/calendar/layout",
    response_model=CalendarResponse,
    summary="Lay out caller-supplied events",
    tags=["Calendar"],
)
def calendar_layout(request: CalendarLayoutRequest) -> CalendarResponse:
    """Suppress overridden blocks and assign columns to the given events."""
    events = compute_calendar_layout(_event_from_model(m) for m in request.events)
    return CalendarResponse(events=[_event_model(e) for e in events], total=len(events))


# =============================================================================
# Run with Uvicorn
# =============================================================================


def run_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Run the API server with Uvicorn."""
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    from src.config import get_settings

    settings = get_settings()
    run_server(host=settings.api_host, port=settings.api_port, reload=settings.api_reload)
