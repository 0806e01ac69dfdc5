"""Notification endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from clinicflow.dependencies import CurrentContext, DatabaseSession
from clinicflow.schemas.notifications import NotificationCreate, NotificationResponse
from clinicflow.services.notification_service import NotificationService

router = APIRouter()


@router.get(
    "",
    response_model=list[NotificationResponse],
    status_code=status.HTTP_200_OK,
    summary="List my notifications",
)
async def list_notifications(
    ctx: CurrentContext,
    db: DatabaseSession,
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
) -> list[NotificationResponse]:
    """List the caller's notifications, newest first."""
    rows = await NotificationService(db).list_notifications(ctx, unread_only=unread_only, limit=limit)
    return [NotificationResponse.model_validate(row) for row in rows]


@router.post(
    "",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a notification",
)
async def send_notification(
    data: NotificationCreate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> NotificationResponse:
    """
    Send a notification.

    Staff and admins may notify anyone; other users only themselves.
    """
    row = await NotificationService(db).notify(ctx, data)
    return NotificationResponse.model_validate(row)


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark a notification read",
)
async def mark_notification_read(
    notification_id: UUID,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> NotificationResponse:
    """Mark one of the caller's notifications as read."""
    row = await NotificationService(db).mark_read(ctx, notification_id)
    return NotificationResponse.model_validate(row)


@router.post("/read-all", status_code=status.HTTP_200_OK, summary="Mark all notifications read")
async def mark_all_notifications_read(ctx: CurrentContext, db: DatabaseSession) -> dict[str, int]:
    """Mark every unread notification of the caller as read."""
    updated = await NotificationService(db).mark_all_read(ctx)
    return {"updated": updated}
