"""Queue entries table model using SQLAlchemy Core."""

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
    text,
)

from app.core.clock import clinic_now
from app.models.base import metadata

queue_entries = Table(
    "queue_entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "patient_id",
        Integer,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    # Never reused, never reset
    Column("queue_number", Integer, nullable=False, unique=True),
    # Higher number = higher priority
    Column("priority", Integer, nullable=False, default=1, index=True),
    Column("status", String(20), nullable=False, default="waiting", index=True),
    Column("notes", Text, nullable=True),
    Column("created_at", DateTime, nullable=False, default=clinic_now),
    Column("updated_at", DateTime, nullable=False, default=clinic_now, onupdate=clinic_now),
    CheckConstraint("priority BETWEEN 1 AND 10", name="priority_range"),
    CheckConstraint(
        "status IN ('waiting', 'with_doctor', 'completed', 'skipped')",
        name="status_values",
    ),
    # At most one waiting entry per patient
    Index(
        "uq_queue_entries_waiting_patient",
        "patient_id",
        unique=True,
        postgresql_where=text("status = 'waiting'"),
        sqlite_where=text("status = 'waiting'"),
    ),
    Index("ix_queue_entries_patient_status", "patient_id", "status"),
)

# Monotonic counters, incremented with UPDATE ... RETURNING
queue_counters = Table(
    "queue_counters",
    metadata,
    Column("name", String(50), primary_key=True),
    Column("value", Integer, nullable=False),
)
