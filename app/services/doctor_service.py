"""Doctor directory lookups used by the scheduling engine."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.core.redis_client import CacheManager
from app.models.doctors import doctors


class DoctorService:
    """Service for doctor existence checks."""

    # Cache TTL in seconds
    DOCTOR_CACHE_TTL = 900  # 15 minutes

    def __init__(self, db: AsyncSession, cache_manager: CacheManager | None = None):
        """Initialize service with database session and optional cache manager."""
        self.db = db
        self.cache = cache_manager

    @staticmethod
    def _get_doctor_cache_key(doctor_id: int) -> str:
        """Generate cache key for doctor."""
        return f"doctor:{doctor_id}"

    async def get_doctor(self, doctor_id: int) -> dict:
        """
        Get doctor summary by ID with caching.

        Raises:
            NotFoundException: If doctor not found
        """
        # Try cache first
        if self.cache:
            cached = self.cache.get_json(self._get_doctor_cache_key(doctor_id))
            if cached:
                return cached

        query = select(doctors.c.id, doctors.c.name, doctors.c.specialization).where(
            doctors.c.id == doctor_id
        )
        result = await self.db.execute(query)
        doctor = result.mappings().first()

        if not doctor:
            raise NotFoundException("Doctor not found")

        doctor_dict = dict(doctor)

        if self.cache:
            self.cache.set_json(
                self._get_doctor_cache_key(doctor_id),
                doctor_dict,
                ttl=self.DOCTOR_CACHE_TTL,
            )

        return doctor_dict
