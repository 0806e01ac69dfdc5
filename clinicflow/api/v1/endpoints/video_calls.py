"""Video consultation endpoints."""

from uuid import UUID

from fastapi import APIRouter, Body, status

from clinicflow.dependencies import CurrentContext, DatabaseSession, VideoProvider
from clinicflow.schemas.video_calls import VideoCallEnd, VideoCallJoinResponse, VideoCallResponse
from clinicflow.services.video_call_service import VideoCallService

router = APIRouter()


@router.post(
    "/{appointment_id}",
    response_model=VideoCallResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create the call for an appointment",
)
async def create_video_call(
    appointment_id: UUID,
    ctx: CurrentContext,
    db: DatabaseSession,
    provider: VideoProvider,
) -> VideoCallResponse:
    """
    Create the video call of a confirmed video appointment (staff/admin).

    Args:
        appointment_id: Appointment the call belongs to
        ctx: Caller access context
        db: Database session
        provider: Video provider client, if configured

    Returns:
        Scheduled video call
    """
    row = await VideoCallService(db, provider).create(ctx, appointment_id)
    return VideoCallResponse.model_validate(row)


@router.get(
    "/{appointment_id}",
    response_model=VideoCallResponse,
    status_code=status.HTTP_200_OK,
    summary="Get the call of an appointment",
)
async def get_video_call(
    appointment_id: UUID,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> VideoCallResponse:
    """Get the video call of an appointment."""
    row = await VideoCallService(db).get(ctx, appointment_id)
    return VideoCallResponse.model_validate(row)


@router.post(
    "/{appointment_id}/join",
    response_model=VideoCallJoinResponse,
    status_code=status.HTTP_200_OK,
    summary="Join a video call",
)
async def join_video_call(
    appointment_id: UUID,
    ctx: CurrentContext,
    db: DatabaseSession,
    provider: VideoProvider,
) -> VideoCallJoinResponse:
    """
    Join the call as its patient or doctor.

    The first participant to join starts the call; later joins return the
    same link.
    """
    return await VideoCallService(db, provider).join(ctx, appointment_id)


@router.post(
    "/{appointment_id}/end",
    response_model=VideoCallResponse,
    status_code=status.HTTP_200_OK,
    summary="End a video call",
)
async def end_video_call(
    appointment_id: UUID,
    ctx: CurrentContext,
    db: DatabaseSession,
    data: VideoCallEnd | None = Body(None),
) -> VideoCallResponse:
    """End an ongoing call and complete its appointment."""
    row = await VideoCallService(db).end(ctx, appointment_id, data)
    return VideoCallResponse.model_validate(row)
