"""Walk-in queue endpoints."""

from fastapi import APIRouter, Query, status

from app.dependencies import DatabaseSession, FrontDeskActor
from app.schemas.queue import (
    MessageResponse,
    QueueEntryCreate,
    QueueEntryResponse,
    QueueStats,
    QueueStatus,
    QueueStatusUpdate,
)
from app.services.queue_service import QueueService

router = APIRouter()


@router.post(
    "/",
    response_model=QueueEntryResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Queue"],
    summary="Add patient to walk-in queue",
)
async def add_to_queue(
    data: QueueEntryCreate,
    actor: FrontDeskActor,
    db: DatabaseSession,
) -> QueueEntryResponse:
    """
    Add a patient by existing ID or new patient object. Assigns the next queue number.

    Args:
        data: Admission data
        actor: Authenticated front-desk user
        db: Database session

    Returns:
        Created queue entry
    """
    service = QueueService(db)
    return await service.add_to_queue(data)


@router.get(
    "/",
    response_model=list[QueueEntryResponse],
    status_code=status.HTTP_200_OK,
    tags=["Queue"],
    summary="Get queue entries",
)
async def list_queue(
    actor: FrontDeskActor,
    db: DatabaseSession,
    status_filter: QueueStatus | None = Query(None, alias="status"),
) -> list[QueueEntryResponse]:
    """Return the queue ordered by priority (highest first), then arrival."""
    service = QueueService(db)
    return await service.list_queue(status_filter)


@router.get(
    "/stats",
    response_model=QueueStats,
    status_code=status.HTTP_200_OK,
    tags=["Queue"],
    summary="Get queue statistics",
)
async def get_stats(actor: FrontDeskActor, db: DatabaseSession) -> QueueStats:
    """Counts of waiting and with-doctor entries, and entries created today."""
    service = QueueService(db)
    return await service.get_stats()


@router.get(
    "/{entry_id}",
    response_model=QueueEntryResponse,
    status_code=status.HTTP_200_OK,
    tags=["Queue"],
    summary="Get queue entry by ID",
)
async def get_entry(entry_id: int, actor: FrontDeskActor, db: DatabaseSession) -> QueueEntryResponse:
    """Get a specific queue entry by ID."""
    service = QueueService(db)
    return await service.get_entry(entry_id)


@router.patch(
    "/{entry_id}/status",
    response_model=QueueEntryResponse,
    status_code=status.HTTP_200_OK,
    tags=["Queue"],
    summary="Update queue entry status",
)
async def update_status(
    entry_id: int,
    data: QueueStatusUpdate,
    actor: FrontDeskActor,
    db: DatabaseSession,
) -> QueueEntryResponse:
    """
    Update status (waiting -> with_doctor -> completed, or waiting -> skipped).

    Args:
        entry_id: Queue entry ID
        data: Status update data
        actor: Authenticated front-desk user
        db: Database session

    Returns:
        Updated queue entry
    """
    service = QueueService(db)
    return await service.update_status(entry_id, data)


@router.patch(
    "/{entry_id}/skip",
    response_model=QueueEntryResponse,
    status_code=status.HTTP_200_OK,
    tags=["Queue"],
    summary="Skip queue entry",
)
async def skip_entry(entry_id: int, actor: FrontDeskActor, db: DatabaseSession) -> QueueEntryResponse:
    """Mark a queue entry as skipped, keeping it in the history."""
    service = QueueService(db)
    return await service.skip(entry_id)


@router.delete(
    "/{entry_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    tags=["Queue"],
    summary="Remove entry from queue",
)
async def remove_entry(entry_id: int, actor: FrontDeskActor, db: DatabaseSession) -> MessageResponse:
    """Completely remove a queue entry (use skip to preserve history)."""
    service = QueueService(db)
    await service.remove(entry_id)
    return MessageResponse(message="Queue entry removed successfully")
