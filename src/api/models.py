"""
Pydantic request and response models for the Salon Scheduler API.
"""

from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


# =============================================================================
# Request Models
# =============================================================================


class BlockConflictRequest(BaseModel):
    """Candidate block range to check against existing appointments."""

    date: str = Field(..., pattern=DATE_PATTERN, examples=["2026-10-19"])
    start_time: str = Field(..., pattern=TIME_PATTERN, examples=["13:00"])
    end_time: str = Field(..., pattern=TIME_PATTERN, examples=["14:00"])

    @model_validator(mode="after")
    def validate_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class CreateBlockRequest(BlockConflictRequest):
    """Request to block time or reopen blocked time."""

    staff_id: UUID
    kind: Literal["blocking", "available"] = Field(
        default="blocking",
        description="'blocking' closes time; 'available' reopens blocked time",
    )
    reason: Optional[str] = Field(None, max_length=500)
    location_id: Optional[str] = None
    force: bool = Field(
        default=False,
        description="Create a blocking block even if it overlaps appointments",
    )


class LineItemRequest(BaseModel):
    """Service line item of a booking."""

    service_name: str = Field(..., min_length=1, max_length=200)
    staff_id: Optional[UUID] = Field(
        None,
        description="Professional performing the service (defaults to the main professional)",
    )
    price: Optional[Decimal] = Field(None, ge=0)
    duration_minutes: Optional[int] = Field(None, gt=0)


class CreateAppointmentRequest(BaseModel):
    """Request to book an appointment."""

    staff_id: UUID
    date: str = Field(..., pattern=DATE_PATTERN)
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    duration_minutes: Optional[int] = Field(None, gt=0)
    items: list[LineItemRequest] = Field(default_factory=list)
    client_name: Optional[str] = Field(None, max_length=200)
    client_phone: Optional[str] = Field(None, max_length=50)
    location_id: Optional[str] = None
    origin: Literal["admin", "public_web"] = "admin"
    status: Literal[
        "reserved",
        "confirmed",
        "pending_payment",
        "deposit_paid",
        "waiting",
    ] = "reserved"

    @model_validator(mode="after")
    def validate_end_or_duration(self):
        if self.end_time is None and self.duration_minutes is None:
            raise ValueError("Either end_time or duration_minutes is required")
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class EventLayoutModel(BaseModel):
    """Horizontal placement of a calendar event."""

    column: int = 0
    total_columns: int = 1
    width_percent: float = 100.0
    left_offset_percent: float = 0.0


class CalendarEventModel(BaseModel):
    """Calendar event; `start` and `end` are decimal hours."""

    id: str
    type: Literal["appointment", "block"]
    start: float = Field(..., ge=0, le=24)
    end: float = Field(..., ge=0, le=24)
    staff_ids: list[str] = Field(..., min_length=1)
    date: Optional[str] = Field(None, pattern=DATE_PATTERN)
    kind: Optional[Literal["blocking", "available"]] = None
    title: Optional[str] = None
    status: Optional[str] = None
    layout: Optional[EventLayoutModel] = None
    display_duration: Optional[float] = Field(
        None, description="Rendered height in hours; very short events get a minimum"
    )

    @model_validator(mode="after")
    def validate_event(self):
        if self.end <= self.start:
            raise ValueError("end must be after start")
        if self.type == "block" and self.kind is None:
            raise ValueError("block events require a kind")
        return self


class CalendarLayoutRequest(BaseModel):
    """Events of one rendering window to lay out."""

    events: list[CalendarEventModel]


# =============================================================================
# Response Models
# =============================================================================


class AvailabilityResponse(BaseModel):
    """Bookable start times for one professional, date and duration."""

    staff_id: UUID
    date: str
    duration_minutes: int
    closed: bool = Field(..., description="True when the professional does not work that day")
    lead_time_minutes: int = Field(0, description="Same-day lead time applied")
    slots: list[str] = Field(default_factory=list, examples=[["09:00", "09:30"]])


class AppointmentConflictModel(BaseModel):
    """Existing appointment overlapping a candidate block."""

    appointment_id: UUID
    start_time: str
    end_time: str
    status: str
    client_name: Optional[str] = None


class BlockConflictResponse(BaseModel):
    """Conflict guard result."""

    staff_id: UUID
    date: str
    start_time: str
    end_time: str
    conflicting_count: int
    conflicts: list[AppointmentConflictModel] = Field(default_factory=list)


class BlockResponse(BaseModel):
    """Persisted block."""

    id: UUID
    staff_id: UUID
    date: str
    start_time: str
    end_time: str
    kind: str
    reason: Optional[str] = None


class AppointmentResponse(BaseModel):
    """Persisted appointment."""

    id: UUID
    staff_id: UUID
    staff_ids: list[UUID]
    date: str
    start_time: str
    end_time: str
    status: str
    client_name: Optional[str] = None
    total: Optional[Decimal] = None


class CalendarResponse(BaseModel):
    """Laid-out calendar events."""

    events: list[CalendarEventModel]
    total: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"]
    version: str
    database_connected: bool


class ErrorResponse(BaseModel):
    """Standard error response."""

    error_type: str
    message: str
    retryable: bool = False
    details: Optional[dict] = None

    @field_validator("message")
    @classmethod
    def validate_message_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message cannot be empty")
        return v
