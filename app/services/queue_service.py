"""Walk-in queue: admission, ordering, status transitions and statistics."""

from typing import Any

import structlog
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, settings
from app.core.clock import clinic_now, day_window, format_marker
from app.core.exceptions import (
    AppException,
    ConflictException,
    InvalidStateException,
    NotFoundException,
)
from app.core.state_machine import StatusMachine
from app.database import QUEUE_LOCK_NAMESPACE, acquire_xact_lock
from app.models.patients import patients
from app.models.queue_entries import queue_counters, queue_entries
from app.schemas.patients import PatientSummary
from app.schemas.queue import (
    QueueEntryCreate,
    QueueEntryResponse,
    QueueStats,
    QueueStatus,
    QueueStatusUpdate,
)
from app.services.patient_service import PatientService

logger = structlog.get_logger()

QUEUE_STATUSES = StatusMachine(
    "queue entry",
    {
        QueueStatus.WAITING: {QueueStatus.WITH_DOCTOR, QueueStatus.SKIPPED},
        QueueStatus.WITH_DOCTOR: {QueueStatus.COMPLETED},
        QueueStatus.COMPLETED: (),
        QueueStatus.SKIPPED: (),
    },
)

# Admission serializes on a single lock key
_ADMISSION_LOCK_KEY = 0
QUEUE_NUMBER_COUNTER = "queue_number"


class QueueService:
    """Service for the walk-in patient queue."""

    def __init__(self, db: AsyncSession, config: Settings = settings):
        """Initialize service with database session and settings."""
        self.db = db
        self.settings = config
        self.patients = PatientService(db)

    @staticmethod
    def _select_with_patient():
        return select(
            queue_entries,
            patients.c.name.label("patient_name"),
            patients.c.phone.label("patient_phone"),
        ).select_from(
            queue_entries.outerjoin(patients, queue_entries.c.patient_id == patients.c.id)
        )

    @staticmethod
    def _to_response(row: Row) -> QueueEntryResponse:
        data = dict(row._mapping)
        patient_name = data.pop("patient_name")
        patient_phone = data.pop("patient_phone")

        if patient_name is not None:
            data["patient"] = PatientSummary(
                id=data["patient_id"], name=patient_name, phone=patient_phone
            )

        return QueueEntryResponse.model_validate(data)

    async def _get_row(self, entry_id: int) -> Row:
        result = await self.db.execute(select(queue_entries).where(queue_entries.c.id == entry_id))
        row = result.fetchone()

        if not row:
            raise NotFoundException("Queue entry not found")

        return row

    async def next_queue_number(self) -> int:
        """
        Take the next queue number from the counter, starting at 1.

        Numbers are never reused, even after the entry holding the highest
        number is removed. Runs inside the caller's transaction.
        """
        stmt = (
            update(queue_counters)
            .where(queue_counters.c.name == QUEUE_NUMBER_COUNTER)
            .values(value=queue_counters.c.value + 1)
            .returning(queue_counters.c.value)
        )
        result = await self.db.execute(stmt)
        value = result.scalar()

        if value is None:
            # First admission: seed past any entries created before the counter existed
            result = await self.db.execute(select(func.max(queue_entries.c.queue_number)))
            value = (result.scalar() or 0) + 1
            await self.db.execute(
                insert(queue_counters).values(name=QUEUE_NUMBER_COUNTER, value=value)
            )

        return value

    async def _ensure_not_waiting(self, patient_id: int) -> None:
        result = await self.db.execute(
            select(queue_entries.c.queue_number).where(
                queue_entries.c.patient_id == patient_id,
                queue_entries.c.status == QueueStatus.WAITING.value,
            )
        )
        queue_number = result.scalar()

        if queue_number is not None:
            raise InvalidStateException(
                f"Patient is already in the waiting queue (queue number {queue_number})"
            )

    async def _admit_once(self, patient_id: int, data: QueueEntryCreate) -> tuple[int, int]:
        try:
            await acquire_xact_lock(self.db, QUEUE_LOCK_NAMESPACE, _ADMISSION_LOCK_KEY)
            await self._ensure_not_waiting(patient_id)

            queue_number = await self.next_queue_number()
            now = clinic_now()

            stmt = (
                insert(queue_entries)
                .values(
                    patient_id=patient_id,
                    queue_number=queue_number,
                    priority=data.priority,
                    status=QueueStatus.WAITING.value,
                    notes=data.notes,
                    created_at=now,
                    updated_at=now,
                )
                .returning(queue_entries.c.id)
            )
            result = await self.db.execute(stmt)
            entry_id = result.scalar_one()
            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise

        return entry_id, queue_number

    async def add_to_queue(self, data: QueueEntryCreate) -> QueueEntryResponse:
        """
        Admit a walk-in patient to the queue.

        The duplicate check, number assignment and insert run in one
        transaction. A unique-constraint collision with a concurrent admission
        is retried; a retry that finds the patient already waiting fails.

        Args:
            data: Admission data

        Returns:
            Created queue entry

        Raises:
            BadRequestException: If the patient selection is invalid
            NotFoundException: If an existing patient ID does not exist
            InvalidStateException: If the patient is already waiting
            ConflictException: If no queue number could be assigned
        """
        patient_ref = data.patient_ref()
        patient_id = await self.patients.resolve(patient_ref)

        max_attempts = self.settings.queue_admission_max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                entry_id, queue_number = await self._admit_once(patient_id, data)
                break
            except IntegrityError:
                await self.db.rollback()
                logger.warning(
                    "queue_number_collision",
                    patient_id=patient_id,
                    attempt=attempt,
                )
        else:
            raise ConflictException("Could not assign a queue number, please retry")

        logger.info(
            "queue_entry_admitted",
            entry_id=entry_id,
            patient_id=patient_id,
            queue_number=queue_number,
            priority=data.priority,
        )

        return await self.get_entry(entry_id)

    async def list_queue(self, status: QueueStatus | None = None) -> list[QueueEntryResponse]:
        """
        List queue entries in service order.

        Higher priority first; at equal priority, earlier arrival first.
        """
        stmt = self._select_with_patient().order_by(
            queue_entries.c.priority.desc(),
            queue_entries.c.created_at.asc(),
            queue_entries.c.queue_number.asc(),
        )

        if status:
            stmt = stmt.where(queue_entries.c.status == status.value)

        result = await self.db.execute(stmt)
        return [self._to_response(row) for row in result.fetchall()]

    async def get_entry(self, entry_id: int) -> QueueEntryResponse:
        """
        Get queue entry by ID.

        Raises:
            NotFoundException: If queue entry not found
        """
        stmt = self._select_with_patient().where(queue_entries.c.id == entry_id)
        result = await self.db.execute(stmt)
        row = result.fetchone()

        if not row:
            raise NotFoundException("Queue entry not found")

        return self._to_response(row)

    async def update_status(self, entry_id: int, data: QueueStatusUpdate) -> QueueEntryResponse:
        """
        Change the status of a queue entry.

        Completed and skipped entries are final. Notes keep their previous
        value unless new notes are supplied.

        Raises:
            NotFoundException: If queue entry not found
            InvalidStateException: If the entry is final, or the transition is
                not allowed under strict transitions
        """
        current = await self._get_row(entry_id)
        current_status = QueueStatus(current.status)

        if QUEUE_STATUSES.is_terminal(current_status):
            raise InvalidStateException(
                f"Cannot update status of queue entry {current.queue_number}: "
                f"completed or skipped entries are final (status is {current_status.value})"
            )

        if self.settings.strict_status_transitions and not QUEUE_STATUSES.can_transition(
            current_status, data.status
        ):
            raise InvalidStateException(QUEUE_STATUSES.describe(current_status, data.status))

        values: dict[str, Any] = {
            "status": data.status.value,
            "notes": data.notes or current.notes,
            "updated_at": clinic_now(),
        }

        stmt = (
            update(queue_entries)
            .where(
                queue_entries.c.id == entry_id,
                queue_entries.c.status == current.status,
            )
            .values(**values)
        )

        try:
            result = await self.db.execute(stmt)
        except IntegrityError:
            # Moving back to waiting while the patient holds another waiting entry
            await self.db.rollback()
            raise InvalidStateException(
                "Patient is already in the waiting queue with another entry"
            ) from None

        if result.rowcount == 0:
            await self.db.rollback()
            raise InvalidStateException(
                f"Queue entry {current.queue_number} was updated concurrently, reload and retry"
            )

        await self.db.commit()

        logger.info(
            "queue_entry_status_updated",
            entry_id=entry_id,
            queue_number=current.queue_number,
            previous_status=current_status.value,
            status=data.status.value,
        )

        return await self.get_entry(entry_id)

    async def skip(self, entry_id: int) -> QueueEntryResponse:
        """Mark a queue entry as skipped, keeping it in the history."""
        return await self.update_status(
            entry_id,
            QueueStatusUpdate(
                status=QueueStatus.SKIPPED,
                notes=f"Skipped at {format_marker(clinic_now())}",
            ),
        )

    async def remove(self, entry_id: int) -> None:
        """
        Permanently remove a queue entry, in any status.

        Raises:
            NotFoundException: If queue entry not found
        """
        current = await self._get_row(entry_id)

        await self.db.execute(delete(queue_entries).where(queue_entries.c.id == entry_id))
        await self.db.commit()

        logger.info(
            "queue_entry_removed",
            entry_id=entry_id,
            queue_number=current.queue_number,
            status=current.status,
        )

    async def get_stats(self) -> QueueStats:
        """Waiting and with-doctor counts, plus entries created today (clinic-local)."""
        today_start, tomorrow_start = day_window(clinic_now().date())

        async def count(*conditions: Any) -> int:
            stmt = select(func.count()).select_from(queue_entries).where(*conditions)
            result = await self.db.execute(stmt)
            return result.scalar() or 0

        return QueueStats(
            waiting=await count(queue_entries.c.status == QueueStatus.WAITING.value),
            with_doctor=await count(queue_entries.c.status == QueueStatus.WITH_DOCTOR.value),
            total_today=await count(
                queue_entries.c.created_at >= today_start,
                queue_entries.c.created_at < tomorrow_start,
            ),
        )
