"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)

from app.core.clock import clinic_now
from app.models.base import metadata

appointments = Table(
    "appointments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # References
    Column(
        "patient_id",
        Integer,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "doctor_id",
        Integer,
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    # Half-open interval [scheduled_at, ends_at), clinic-local
    Column("scheduled_at", DateTime, nullable=False),
    Column("ends_at", DateTime, nullable=False),
    Column("duration_minutes", Integer, nullable=False, default=30),
    # Status management
    Column("status", String(20), nullable=False, default="booked", index=True),
    # User id from the auth service token
    Column("created_by", Integer, nullable=False),
    Column("notes", Text, nullable=True),
    # Audit fields
    Column("created_at", DateTime, nullable=False, default=clinic_now),
    Column("updated_at", DateTime, nullable=False, default=clinic_now, onupdate=clinic_now),
    # Constraints
    CheckConstraint(
        "duration_minutes BETWEEN 15 AND 240",
        name="duration_range",
    ),
    CheckConstraint(
        "status IN ('booked', 'completed', 'cancelled')",
        name="status_values",
    ),
    CheckConstraint("ends_at > scheduled_at", name="interval_order"),
    Index("ix_appointments_doctor_scheduled", "doctor_id", "scheduled_at"),
)
