"""Initial migration - create patients, doctors, appointments and queue tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "patients",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("dob", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_patients"),
        sa.UniqueConstraint("phone", name="uq_patients_phone"),
    )

    op.create_table(
        "doctors",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("specialization", sa.String(length=100), nullable=True),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_doctors"),
    )
    op.create_index("ix_doctors_specialization", "doctors", ["specialization"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("doctor_id", sa.Integer(), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(), nullable=False),
        sa.Column("ends_at", sa.DateTime(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "duration_minutes BETWEEN 15 AND 240",
            name="ck_appointments_duration_range",
        ),
        sa.CheckConstraint(
            "status IN ('booked', 'completed', 'cancelled')",
            name="ck_appointments_status_values",
        ),
        sa.CheckConstraint("ends_at > scheduled_at", name="ck_appointments_interval_order"),
        sa.ForeignKeyConstraint(
            ["patient_id"],
            ["patients.id"],
            name="fk_appointments_patient_id_patients",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["doctor_id"],
            ["doctors.id"],
            name="fk_appointments_doctor_id_doctors",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_appointments"),
    )
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_status", "appointments", ["status"])
    op.create_index(
        "ix_appointments_doctor_scheduled", "appointments", ["doctor_id", "scheduled_at"]
    )

    # No two active appointments of one doctor may overlap
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute(
        """
        ALTER TABLE appointments
        ADD CONSTRAINT ex_appointments_doctor_overlap
        EXCLUDE USING gist (
            doctor_id WITH =,
            tsrange(scheduled_at, ends_at, '[)') WITH &&
        )
        WHERE (status <> 'cancelled')
        """
    )

    op.create_table(
        "queue_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("queue_number", sa.Integer(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("priority BETWEEN 1 AND 10", name="ck_queue_entries_priority_range"),
        sa.CheckConstraint(
            "status IN ('waiting', 'with_doctor', 'completed', 'skipped')",
            name="ck_queue_entries_status_values",
        ),
        sa.ForeignKeyConstraint(
            ["patient_id"],
            ["patients.id"],
            name="fk_queue_entries_patient_id_patients",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_queue_entries"),
        sa.UniqueConstraint("queue_number", name="uq_queue_entries_queue_number"),
    )
    op.create_index("ix_queue_entries_patient_id", "queue_entries", ["patient_id"])
    op.create_index("ix_queue_entries_priority", "queue_entries", ["priority"])
    op.create_index("ix_queue_entries_status", "queue_entries", ["status"])
    op.create_index(
        "ix_queue_entries_patient_status", "queue_entries", ["patient_id", "status"]
    )
    op.create_index(
        "uq_queue_entries_waiting_patient",
        "queue_entries",
        ["patient_id"],
        unique=True,
        postgresql_where=sa.text("status = 'waiting'"),
    )

    op.create_table(
        "queue_counters",
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("name", name="pk_queue_counters"),
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table("queue_counters")
    op.drop_index("uq_queue_entries_waiting_patient", table_name="queue_entries")
    op.drop_index("ix_queue_entries_patient_status", table_name="queue_entries")
    op.drop_index("ix_queue_entries_status", table_name="queue_entries")
    op.drop_index("ix_queue_entries_priority", table_name="queue_entries")
    op.drop_index("ix_queue_entries_patient_id", table_name="queue_entries")
    op.drop_table("queue_entries")

    op.execute("ALTER TABLE appointments DROP CONSTRAINT IF EXISTS ex_appointments_doctor_overlap")
    op.drop_index("ix_appointments_doctor_scheduled", table_name="appointments")
    op.drop_index("ix_appointments_status", table_name="appointments")
    op.drop_index("ix_appointments_patient_id", table_name="appointments")
    op.drop_table("appointments")

    op.drop_index("ix_doctors_specialization", table_name="doctors")
    op.drop_table("doctors")
    op.drop_table("patients")
