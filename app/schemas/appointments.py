"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from app.schemas.patients import PatientSelection, PatientSummary


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    BOOKED = "booked"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AppointmentCreate(PatientSelection):
    """Schema for booking a new appointment."""

    doctor_id: int = Field(..., ge=1)
    scheduled_at: datetime = Field(..., description="Start time in ISO 8601 format")
    duration_minutes: int | None = Field(None, ge=15, le=240, description="Defaults to 30")
    notes: str | None = Field(None, max_length=1000)


class AppointmentUpdate(BaseModel):
    """Schema for rescheduling or otherwise updating an appointment."""

    scheduled_at: datetime | None = None
    duration_minutes: int | None = Field(None, ge=15, le=240)
    status: AppointmentStatus | None = None
    notes: str | None = Field(None, max_length=1000)


class DoctorSummary(BaseModel):
    """Doctor identity embedded in appointment responses."""

    id: int
    name: str
    specialization: str | None = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: int
    patient_id: int
    doctor_id: int
    scheduled_at: datetime
    ends_at: datetime
    duration_minutes: int
    status: AppointmentStatus
    created_by: int
    created_at: datetime
    updated_at: datetime
    notes: str | None = None
    patient: PatientSummary | None = None
    doctor: DoctorSummary | None = None

    model_config = {"from_attributes": True}


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering. All filters are combined with AND."""

    doctor_id: int | None = None
    patient_id: int | None = None
    date: str | None = Field(None, description="Calendar day in YYYY-MM-DD format")
    status: AppointmentStatus | None = None
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class ConflictCheckResponse(BaseModel):
    """Result of a standalone conflict check."""

    has_conflict: bool
