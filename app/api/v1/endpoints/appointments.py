"""Appointment endpoints."""

from datetime import datetime

from fastapi import APIRouter, Query, status

from app.dependencies import AdminActor, CacheManagerDep, DatabaseSession, FrontDeskActor
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentUpdate,
    ConflictCheckResponse,
)
from app.services.appointment_service import AppointmentService

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book a new appointment",
)
async def book_appointment(
    data: AppointmentCreate,
    actor: FrontDeskActor,
    db: DatabaseSession,
    cache_manager: CacheManagerDep,
) -> AppointmentResponse:
    """
    Book an appointment for an existing patient ID or a new patient object.

    The doctor's schedule is checked for overlapping appointments.

    Args:
        data: Appointment creation data
        actor: Authenticated front-desk user
        db: Database session
        cache_manager: Doctor lookup cache

    Returns:
        Created appointment
    """
    service = AppointmentService(db, cache_manager)
    return await service.book_appointment(data, actor.id)


@router.get(
    "/",
    response_model=list[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    actor: FrontDeskActor,
    db: DatabaseSession,
    doctor_id: int | None = Query(None),
    patient_id: int | None = Query(None),
    date: str | None = Query(None, description="Date in YYYY-MM-DD format"),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500, description="Number of results"),
    offset: int = Query(0, ge=0, description="Number of results to skip"),
) -> list[AppointmentResponse]:
    """
    List appointments ordered by start time, with optional filters.

    Args:
        actor: Authenticated front-desk user
        db: Database session
        doctor_id: Filter by doctor ID
        patient_id: Filter by patient ID
        date: Filter by calendar day
        status_filter: Filter by status
        limit: Page size
        offset: Results to skip

    Returns:
        List of appointments
    """
    filters = AppointmentFilters(
        doctor_id=doctor_id,
        patient_id=patient_id,
        date=date,
        status=status_filter,
        limit=limit,
        offset=offset,
    )

    service = AppointmentService(db)
    return await service.list_appointments(filters)


@router.get(
    "/conflicts",
    response_model=ConflictCheckResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Check a slot for conflicts",
)
async def check_conflict(
    actor: FrontDeskActor,
    db: DatabaseSession,
    doctor_id: int = Query(..., ge=1),
    scheduled_at: datetime = Query(...),
    duration_minutes: int = Query(30, ge=15, le=240),
    exclude_id: int | None = Query(None, description="Appointment to ignore"),
) -> ConflictCheckResponse:
    """
    Check whether a doctor already has an appointment overlapping a slot.

    Args:
        actor: Authenticated front-desk user
        db: Database session
        doctor_id: Doctor ID
        scheduled_at: Candidate start
        duration_minutes: Candidate duration
        exclude_id: Appointment ID to leave out of the check

    Returns:
        Whether the slot conflicts
    """
    service = AppointmentService(db)
    has_conflict = await service.has_conflict(doctor_id, scheduled_at, duration_minutes, exclude_id)
    return ConflictCheckResponse(has_conflict=has_conflict)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: int,
    actor: FrontDeskActor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    service = AppointmentService(db)
    return await service.get_appointment(appointment_id)


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment (reschedule or change status)",
)
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    actor: FrontDeskActor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Update appointment details. Rescheduling re-checks for conflicts.

    Args:
        appointment_id: Appointment ID
        data: Update data
        actor: Authenticated front-desk user
        db: Database session

    Returns:
        Updated appointment
    """
    service = AppointmentService(db)
    return await service.update_appointment(appointment_id, data)


@router.patch(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: int,
    actor: FrontDeskActor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Mark an appointment as cancelled instead of deleting it."""
    service = AppointmentService(db)
    return await service.cancel_appointment(appointment_id)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Delete appointment permanently",
)
async def delete_appointment(
    appointment_id: int,
    actor: AdminActor,
    db: DatabaseSession,
) -> None:
    """
    Permanently delete an appointment. Administrators only.

    Args:
        appointment_id: Appointment ID
        actor: Authenticated administrator
        db: Database session
    """
    service = AppointmentService(db)
    await service.delete_appointment(appointment_id)
