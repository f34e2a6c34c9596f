"""Doctor model definition using SQLAlchemy Core."""

from sqlalchemy import Column, DateTime, Integer, String, Table, Text

from app.core.clock import clinic_now
from app.models.base import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("specialization", String(100), nullable=True, index=True),
    Column("location", String(200), nullable=True),
    Column("phone", String(20), nullable=True),
    Column("notes", Text, nullable=True),
    Column("created_at", DateTime, nullable=False, default=clinic_now),
)
