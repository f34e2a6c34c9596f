"""Database models."""

from app.models.appointments import appointments
from app.models.base import metadata
from app.models.doctors import doctors
from app.models.patients import patients
from app.models.queue_entries import queue_counters, queue_entries

__all__ = [
    "appointments",
    "doctors",
    "metadata",
    "patients",
    "queue_counters",
    "queue_entries",
]
