"""Walk-in queue schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from app.schemas.patients import PatientSelection, PatientSummary


class QueueStatus(str, Enum):
    """Queue entry status enumeration."""

    WAITING = "waiting"
    WITH_DOCTOR = "with_doctor"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class QueueEntryCreate(PatientSelection):
    """Schema for admitting a walk-in patient."""

    priority: int = Field(default=1, ge=1, le=10, description="1-10, higher = more urgent")
    notes: str | None = Field(None, max_length=1000)


class QueueStatusUpdate(BaseModel):
    """Schema for updating queue entry status."""

    status: QueueStatus
    notes: str | None = Field(None, max_length=1000)


class QueueEntryResponse(BaseModel):
    """Schema for queue entry response."""

    id: int
    patient_id: int
    queue_number: int
    priority: int
    status: QueueStatus
    created_at: datetime
    updated_at: datetime
    notes: str | None = None
    patient: PatientSummary | None = None

    model_config = {"from_attributes": True}


class QueueStats(BaseModel):
    """Queue counters for the front-desk dashboard."""

    waiting: int
    with_doctor: int
    total_today: int


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str
