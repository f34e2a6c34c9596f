"""Patient directory lookups used by booking and queue admission."""

import structlog
from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.models.patients import patients
from app.schemas.patients import NewPatient, PatientCreate, PatientRef

logger = structlog.get_logger()

_SUMMARY_COLUMNS = (patients.c.id, patients.c.name, patients.c.phone)


class PatientService:
    """Narrow patient directory: get by id, create-or-return by phone."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_patient(self, patient_id: int) -> dict:
        """
        Get patient by ID.

        Raises:
            NotFoundException: If patient not found
        """
        result = await self.db.execute(select(*_SUMMARY_COLUMNS).where(patients.c.id == patient_id))
        row = result.mappings().first()

        if not row:
            raise NotFoundException("Patient not found")

        return dict(row)

    async def find_by_phone(self, phone: str) -> dict | None:
        """Get patient by phone number."""
        result = await self.db.execute(select(*_SUMMARY_COLUMNS).where(patients.c.phone == phone))
        row = result.mappings().first()
        return dict(row) if row else None

    async def find_or_create_patient(self, data: PatientCreate) -> dict:
        """
        Return the patient registered under the phone number, creating one if needed.

        The new record is committed immediately, independent of whatever
        operation requested it.

        Args:
            data: New patient payload

        Returns:
            Patient summary (id, name, phone)
        """
        existing = await self.find_by_phone(data.phone)
        if existing:
            return existing

        stmt = (
            insert(patients)
            .values(name=data.name, phone=data.phone, dob=data.dob, notes=data.notes)
            .returning(*_SUMMARY_COLUMNS)
        )

        try:
            result = await self.db.execute(stmt)
            patient = dict(result.mappings().one())
            await self.db.commit()
        except IntegrityError:
            # Another request registered the same phone first
            await self.db.rollback()
            existing = await self.find_by_phone(data.phone)
            if existing is None:
                raise
            return existing

        logger.info("patient_created", patient_id=patient["id"])
        return patient

    async def resolve(self, ref: PatientRef) -> int:
        """
        Resolve a patient reference to a patient ID.

        Raises:
            NotFoundException: If an existing patient ID does not exist
        """
        if isinstance(ref, NewPatient):
            patient = await self.find_or_create_patient(ref.patient)
        else:
            patient = await self.get_patient(ref.patient_id)
        return patient["id"]
