"""Appointment scheduling: booking, conflict detection, rescheduling, cancellation."""

from datetime import date, datetime, timedelta
from typing import Any

import structlog
from sqlalchemy import and_, delete, insert, select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, settings
from app.core.clock import clinic_now, day_window, format_marker, to_clinic_time
from app.core.exceptions import (
    AppException,
    BadRequestException,
    ConflictException,
    InvalidStateException,
    NotFoundException,
)
from app.core.redis_client import CacheManager
from app.core.state_machine import StatusMachine
from app.database import APPOINTMENT_LOCK_NAMESPACE, acquire_xact_lock
from app.models.appointments import appointments
from app.models.doctors import doctors
from app.models.patients import patients
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentUpdate,
    DoctorSummary,
)
from app.schemas.patients import PatientSummary
from app.services.doctor_service import DoctorService
from app.services.patient_service import PatientService

logger = structlog.get_logger()

APPOINTMENT_STATUSES = StatusMachine(
    "appointment",
    {
        AppointmentStatus.BOOKED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
        AppointmentStatus.COMPLETED: (),
        AppointmentStatus.CANCELLED: (),
    },
)


class AppointmentService:
    """Service for managing appointments."""

    def __init__(
        self,
        db: AsyncSession,
        cache_manager: CacheManager | None = None,
        config: Settings = settings,
    ):
        """Initialize service with database session, optional doctor cache and settings."""
        self.db = db
        self.settings = config
        self.patients = PatientService(db)
        self.doctors = DoctorService(db, cache_manager)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def _select_with_details():
        """Select appointments joined with patient and doctor summaries."""
        return select(
            appointments,
            patients.c.name.label("patient_name"),
            patients.c.phone.label("patient_phone"),
            doctors.c.name.label("doctor_name"),
            doctors.c.specialization.label("doctor_specialization"),
        ).select_from(
            appointments.outerjoin(patients, appointments.c.patient_id == patients.c.id).outerjoin(
                doctors, appointments.c.doctor_id == doctors.c.id
            )
        )

    @staticmethod
    def _to_response(row: Row) -> AppointmentResponse:
        data = dict(row._mapping)
        patient_name = data.pop("patient_name")
        patient_phone = data.pop("patient_phone")
        doctor_name = data.pop("doctor_name")
        doctor_specialization = data.pop("doctor_specialization")

        if patient_name is not None:
            data["patient"] = PatientSummary(
                id=data["patient_id"], name=patient_name, phone=patient_phone
            )
        if doctor_name is not None:
            data["doctor"] = DoctorSummary(
                id=data["doctor_id"], name=doctor_name, specialization=doctor_specialization
            )

        return AppointmentResponse.model_validate(data)

    async def _get_row(self, appointment_id: int) -> Row:
        result = await self.db.execute(
            select(appointments).where(appointments.c.id == appointment_id)
        )
        row = result.fetchone()

        if not row:
            raise NotFoundException("Appointment not found")

        return row

    async def find_conflict(
        self,
        doctor_id: int,
        scheduled_at: datetime,
        duration_minutes: int,
        exclude_id: int | None = None,
    ) -> Row | None:
        """
        Find the earliest non-cancelled appointment overlapping a candidate slot.

        Intervals are half-open, so back-to-back appointments do not overlap.

        Args:
            doctor_id: Doctor whose schedule is checked
            scheduled_at: Candidate start
            duration_minutes: Candidate duration
            exclude_id: Appointment to ignore (the one being rescheduled)

        Returns:
            Conflicting appointment (id, scheduled_at, ends_at) or None
        """
        start = to_clinic_time(scheduled_at)
        end = start + timedelta(minutes=duration_minutes)

        conditions = [
            appointments.c.doctor_id == doctor_id,
            appointments.c.status != AppointmentStatus.CANCELLED.value,
            appointments.c.scheduled_at < end,
            appointments.c.ends_at > start,
        ]

        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        stmt = (
            select(appointments.c.id, appointments.c.scheduled_at, appointments.c.ends_at)
            .where(and_(*conditions))
            .order_by(appointments.c.scheduled_at)
            .limit(1)
        )

        result = await self.db.execute(stmt)
        return result.fetchone()

    async def has_conflict(
        self,
        doctor_id: int,
        scheduled_at: datetime,
        duration_minutes: int,
        exclude_id: int | None = None,
    ) -> bool:
        """Check whether a candidate slot overlaps the doctor's existing appointments."""
        conflict = await self.find_conflict(doctor_id, scheduled_at, duration_minutes, exclude_id)
        return conflict is not None

    def _conflict_error(self, doctor_id: int, start: datetime, conflict: Row) -> ConflictException:
        logger.info(
            "appointment_conflict_detected",
            doctor_id=doctor_id,
            requested_start=start.isoformat(),
            conflicting_appointment_id=conflict.id,
        )
        return ConflictException(
            f"Doctor {doctor_id} has a conflicting appointment from "
            f"{format_marker(conflict.scheduled_at)} to {format_marker(conflict.ends_at)} "
            f"(requested {format_marker(start)}). Please choose a different time."
        )

    async def _ensure_slot_free(
        self,
        doctor_id: int,
        start: datetime,
        duration_minutes: int,
        exclude_id: int | None = None,
    ) -> None:
        """Serialize on the doctor's schedule, then verify the slot is free."""
        await acquire_xact_lock(self.db, APPOINTMENT_LOCK_NAMESPACE, doctor_id)
        conflict = await self.find_conflict(doctor_id, start, duration_minutes, exclude_id)
        if conflict is not None:
            raise self._conflict_error(doctor_id, start, conflict)

    async def _raise_if_constraint_conflict(
        self,
        doctor_id: int,
        start: datetime,
        duration_minutes: int,
        exclude_id: int | None = None,
    ) -> None:
        """After a rejected write, report a concurrent overlapping booking as a conflict."""
        conflict = await self.find_conflict(doctor_id, start, duration_minutes, exclude_id)
        if conflict is not None:
            raise self._conflict_error(doctor_id, start, conflict) from None

    def _validate_duration(self, duration_minutes: int) -> None:
        low = self.settings.min_appointment_duration_minutes
        high = self.settings.max_appointment_duration_minutes
        if not low <= duration_minutes <= high:
            raise BadRequestException(
                f"Duration must be between {low} and {high} minutes, got {duration_minutes}"
            )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def book_appointment(
        self,
        data: AppointmentCreate,
        actor_id: int,
    ) -> AppointmentResponse:
        """
        Book a new appointment.

        The patient is resolved (and possibly created) before the conflict
        check, so a rejected booking can still leave a new patient behind.

        Args:
            data: Appointment creation data
            actor_id: ID of the front-desk user booking the appointment

        Returns:
            Created appointment

        Raises:
            BadRequestException: If the patient selection or duration is invalid
            NotFoundException: If the patient or doctor does not exist
            ConflictException: If the doctor is already booked in that slot
        """
        patient_ref = data.patient_ref()

        duration = data.duration_minutes
        if duration is None:
            duration = self.settings.default_appointment_duration_minutes
        self._validate_duration(duration)

        patient_id = await self.patients.resolve(patient_ref)
        doctor = await self.doctors.get_doctor(data.doctor_id)
        doctor_id = doctor["id"]

        start = to_clinic_time(data.scheduled_at)
        now = clinic_now()

        try:
            await self._ensure_slot_free(doctor_id, start, duration)

            stmt = (
                insert(appointments)
                .values(
                    patient_id=patient_id,
                    doctor_id=doctor_id,
                    scheduled_at=start,
                    ends_at=start + timedelta(minutes=duration),
                    duration_minutes=duration,
                    status=AppointmentStatus.BOOKED.value,
                    created_by=actor_id,
                    notes=data.notes,
                    created_at=now,
                    updated_at=now,
                )
                .returning(appointments.c.id)
            )
            result = await self.db.execute(stmt)
            appointment_id = result.scalar_one()
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            await self._raise_if_constraint_conflict(doctor_id, start, duration)
            raise
        except AppException:
            await self.db.rollback()
            raise

        logger.info(
            "appointment_booked",
            appointment_id=appointment_id,
            doctor_id=doctor_id,
            patient_id=patient_id,
            scheduled_at=start.isoformat(),
            duration_minutes=duration,
            created_by=actor_id,
        )

        return await self.get_appointment(appointment_id)

    async def get_appointment(self, appointment_id: int) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        stmt = self._select_with_details().where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        row = result.fetchone()

        if not row:
            raise NotFoundException("Appointment not found")

        return self._to_response(row)

    async def list_appointments(self, filters: AppointmentFilters) -> list[AppointmentResponse]:
        """
        List appointments ordered by start time.

        Args:
            filters: Filter and pagination parameters

        Returns:
            Matching appointments, earliest first

        Raises:
            BadRequestException: If the date filter is not YYYY-MM-DD
        """
        conditions: list[Any] = []

        if filters.doctor_id is not None:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)

        if filters.patient_id is not None:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.date:
            try:
                day = date.fromisoformat(filters.date)
            except ValueError:
                raise BadRequestException(
                    f"Invalid date '{filters.date}', expected YYYY-MM-DD"
                ) from None
            start_of_day, next_day = day_window(day)
            conditions.append(appointments.c.scheduled_at >= start_of_day)
            conditions.append(appointments.c.scheduled_at < next_day)

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        stmt = (
            self._select_with_details()
            .where(*conditions)
            .order_by(appointments.c.scheduled_at.asc(), appointments.c.id.asc())
            .limit(filters.limit)
            .offset(filters.offset)
        )

        result = await self.db.execute(stmt)
        return [self._to_response(row) for row in result.fetchall()]

    async def update_appointment(
        self,
        appointment_id: int,
        data: AppointmentUpdate,
    ) -> AppointmentResponse:
        """
        Reschedule or otherwise update an appointment.

        Only supplied fields change. Whenever the resulting appointment is
        active and its slot changes (or it is reactivated from cancelled),
        the conflict check runs again, ignoring the appointment itself.

        Args:
            appointment_id: Appointment ID
            data: Update data

        Returns:
            Updated appointment

        Raises:
            NotFoundException: If appointment not found
            ConflictException: If the new slot overlaps another appointment
            InvalidStateException: If strict transitions are on and the status change is not allowed
        """
        current = await self._get_row(appointment_id)
        current_status = AppointmentStatus(current.status)
        supplied = data.model_fields_set

        values: dict[str, Any] = {}

        start = current.scheduled_at
        duration = current.duration_minutes
        if data.scheduled_at is not None or data.duration_minutes is not None:
            if data.scheduled_at is not None:
                start = to_clinic_time(data.scheduled_at)
            if data.duration_minutes is not None:
                duration = data.duration_minutes
                self._validate_duration(duration)
            values.update(
                scheduled_at=start,
                duration_minutes=duration,
                ends_at=start + timedelta(minutes=duration),
            )

        new_status = current_status
        if data.status is not None:
            new_status = data.status
            if self.settings.strict_status_transitions and not APPOINTMENT_STATUSES.can_transition(
                current_status, new_status
            ):
                raise InvalidStateException(APPOINTMENT_STATUSES.describe(current_status, new_status))
            values["status"] = new_status.value

        if "notes" in supplied:
            values["notes"] = data.notes

        if not values:
            return await self.get_appointment(appointment_id)

        slot_changed = "scheduled_at" in values
        reactivated = (
            current_status == AppointmentStatus.CANCELLED
            and new_status != AppointmentStatus.CANCELLED
        )
        needs_check = new_status != AppointmentStatus.CANCELLED and (slot_changed or reactivated)

        values["updated_at"] = clinic_now()

        try:
            if needs_check:
                await self._ensure_slot_free(
                    current.doctor_id, start, duration, exclude_id=appointment_id
                )

            await self.db.execute(
                update(appointments).where(appointments.c.id == appointment_id).values(**values)
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            await self._raise_if_constraint_conflict(
                current.doctor_id, start, duration, exclude_id=appointment_id
            )
            raise
        except AppException:
            await self.db.rollback()
            raise

        logger.info(
            "appointment_rescheduled" if slot_changed else "appointment_updated",
            appointment_id=appointment_id,
            doctor_id=current.doctor_id,
            scheduled_at=start.isoformat(),
            duration_minutes=duration,
            status=new_status.value,
        )

        return await self.get_appointment(appointment_id)

    async def cancel_appointment(self, appointment_id: int) -> AppointmentResponse:
        """
        Cancel an appointment, keeping the record.

        A timestamped marker is appended to the notes.

        Raises:
            NotFoundException: If appointment not found
            InvalidStateException: If the appointment is already cancelled
        """
        current = await self._get_row(appointment_id)
        current_status = AppointmentStatus(current.status)

        if current_status == AppointmentStatus.CANCELLED:
            raise InvalidStateException("Appointment is already cancelled")

        if self.settings.strict_status_transitions and not APPOINTMENT_STATUSES.can_transition(
            current_status, AppointmentStatus.CANCELLED
        ):
            raise InvalidStateException(
                APPOINTMENT_STATUSES.describe(current_status, AppointmentStatus.CANCELLED)
            )

        now = clinic_now()
        marker = f"[CANCELLED at {format_marker(now)}]"
        notes = f"{current.notes}\n\n{marker}" if current.notes else marker

        stmt = (
            update(appointments)
            .where(
                appointments.c.id == appointment_id,
                appointments.c.status != AppointmentStatus.CANCELLED.value,
            )
            .values(status=AppointmentStatus.CANCELLED.value, notes=notes, updated_at=now)
        )
        result = await self.db.execute(stmt)

        if result.rowcount == 0:
            # Cancelled by a concurrent request
            await self.db.rollback()
            raise InvalidStateException("Appointment is already cancelled")

        await self.db.commit()

        logger.info(
            "appointment_cancelled",
            appointment_id=appointment_id,
            doctor_id=current.doctor_id,
            previous_status=current_status.value,
        )

        return await self.get_appointment(appointment_id)

    async def delete_appointment(self, appointment_id: int) -> None:
        """
        Permanently delete an appointment, regardless of status.

        Raises:
            NotFoundException: If appointment not found
        """
        current = await self._get_row(appointment_id)

        await self.db.execute(delete(appointments).where(appointments.c.id == appointment_id))
        await self.db.commit()

        logger.info(
            "appointment_deleted",
            appointment_id=appointment_id,
            doctor_id=current.doctor_id,
            status=current.status,
        )
