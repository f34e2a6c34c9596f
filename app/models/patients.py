"""Patient model definition using SQLAlchemy Core."""

from sqlalchemy import Column, Date, DateTime, Integer, String, Table, Text

from app.core.clock import clinic_now
from app.models.base import metadata

patients = Table(
    "patients",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    # Phone is the natural key used for create-or-return
    Column("phone", String(20), nullable=False, unique=True),
    Column("dob", Date, nullable=True),
    Column("notes", Text, nullable=True),
    Column("created_at", DateTime, nullable=False, default=clinic_now),
)
