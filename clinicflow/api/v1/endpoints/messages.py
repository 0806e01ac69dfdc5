"""Messaging endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from clinicflow.dependencies import CurrentContext, DatabaseSession
from clinicflow.schemas.messages import MessageCreate, MessageResponse, ThreadOpen, ThreadResponse
from clinicflow.services.messaging_service import MessagingService

router = APIRouter()


@router.post(
    "",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
)
async def send_message(
    data: MessageCreate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> MessageResponse:
    """
    Send a message to another user.

    Patients write to doctors and staff, doctors to their own patients and
    staff. Patient-doctor messages are filed under the pair's thread.
    """
    row = await MessagingService(db).send_message(ctx, data)
    return MessageResponse.model_validate(row)


@router.get(
    "/threads",
    response_model=list[ThreadResponse],
    status_code=status.HTTP_200_OK,
    summary="List my conversations",
)
async def list_threads(ctx: CurrentContext, db: DatabaseSession) -> list[ThreadResponse]:
    """Active threads with the caller's unread count, most recent first."""
    rows = await MessagingService(db).list_threads(ctx)
    return [ThreadResponse.model_validate(row) for row in rows]


@router.post(
    "/threads",
    response_model=ThreadResponse,
    status_code=status.HTTP_200_OK,
    summary="Open a conversation",
)
async def open_thread(data: ThreadOpen, ctx: CurrentContext, db: DatabaseSession) -> ThreadResponse:
    """Get or create the thread between a patient and a doctor."""
    row = await MessagingService(db).open_thread(ctx, data)
    return ThreadResponse.model_validate(row)


@router.get(
    "/with/{user_id}",
    response_model=list[MessageResponse],
    status_code=status.HTTP_200_OK,
    summary="Read a conversation",
)
async def list_conversation(
    user_id: UUID,
    ctx: CurrentContext,
    db: DatabaseSession,
    appointment_id: UUID | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> list[MessageResponse]:
    """Messages exchanged with ``user_id``, oldest first."""
    rows = await MessagingService(db).list_conversation(
        ctx, user_id, appointment_id=appointment_id, limit=limit
    )
    return [MessageResponse.model_validate(row) for row in rows]


@router.post(
    "/with/{user_id}/read",
    status_code=status.HTTP_200_OK,
    summary="Mark a conversation read",
)
async def mark_conversation_read(
    user_id: UUID,
    ctx: CurrentContext,
    db: DatabaseSession,
    appointment_id: UUID | None = Query(None),
) -> dict[str, int]:
    """Mark messages received from ``user_id`` as read."""
    updated = await MessagingService(db).mark_conversation_read(ctx, user_id, appointment_id=appointment_id)
    return {"updated": updated}
