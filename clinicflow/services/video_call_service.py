"""Video consultation lifecycle layered on appointments."""

from datetime import UTC, datetime
from functools import partial
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.config import settings
from clinicflow.core.access import AccessContext
from clinicflow.core.exceptions import (
    ConflictException,
    InvalidStateException,
    NotFoundException,
)
from clinicflow.core.policies import EntityKind
from clinicflow.core.transactions import apply_effects
from clinicflow.models import appointments, video_calls
from clinicflow.schemas.appointments import AppointmentStatus, ConsultationType
from clinicflow.schemas.users import Role
from clinicflow.schemas.video_calls import VideoCallEnd, VideoCallJoinResponse, VideoCallStatus
from clinicflow.services.notification_service import NotificationService
from clinicflow.services.repository import EntityRepository, require_context
from clinicflow.services.video_provider import VideoProviderClient

logger = structlog.get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (as returned by some drivers) as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class VideoCallService:
    """Service for creating, joining and ending video calls.

    The ``video_calls`` row is the single source of truth for a room; the
    provider client, when configured, only provisions room ids and tokens.
    """

    def __init__(self, db: AsyncSession, provider: VideoProviderClient | None = None):
        """Initialize service with database session and optional provider client."""
        self.db = db
        self.provider = provider
        self.repo = EntityRepository(db, EntityKind.VIDEO_CALLS)
        self.appointments = EntityRepository(db, EntityKind.APPOINTMENTS)
        self.notifications = NotificationService(db)

    async def _find_by_appointment(self, appointment_id: UUID) -> dict[str, Any] | None:
        return await self.repo.first(
            select(video_calls).where(video_calls.c.appointment_id == appointment_id)
        )

    async def _require_call(self, ctx: AccessContext | None, appointment_id: UUID) -> dict[str, Any]:
        """Load the call of an appointment, re-checking the caller's visibility."""
        ctx = require_context(ctx)
        call = await self._find_by_appointment(appointment_id)
        if call is None:
            logger.info("entity_not_found", kind="video_calls", appointment_id=str(appointment_id))
            raise NotFoundException("Video call not found")
        return await self.repo.get_by_id(ctx, call["id"])

    async def create(self, ctx: AccessContext | None, appointment_id: UUID) -> dict[str, Any]:
        """
        Open a video room for a confirmed video appointment (staff/admin).

        Args:
            ctx: Access context
            appointment_id: Appointment ID

        Returns:
            Created video call in ``scheduled`` state

        Raises:
            AccessDeniedException: If the caller is not staff or admin
            NotFoundException: If the appointment does not exist
            InvalidStateException: If the appointment is not a confirmed video
                consultation or already has a call
        """
        ctx = require_context(ctx)
        if not ctx.is_staff_or_admin:
            self.repo.deny(ctx, reason="create", entity_id=appointment_id)

        appointment = await self.appointments.find(appointment_id)
        if appointment is None:
            logger.info("entity_not_found", kind="appointments", entity_id=str(appointment_id))
            raise NotFoundException("Appointment not found")
        if appointment["consultation_type"] != ConsultationType.VIDEO.value:
            raise InvalidStateException("Appointment is not a video consultation")
        if appointment["status"] != AppointmentStatus.CONFIRMED.value:
            raise InvalidStateException("Appointment must be confirmed before a video call is created")
        if await self._find_by_appointment(appointment_id) is not None:
            raise InvalidStateException("Video call already exists for this appointment")

        if self.provider:
            room_id = await self.provider.create_room()
        else:
            room_id = f"room_{uuid4().hex}"

        values = {
            "appointment_id": appointment_id,
            "doctor_id": appointment["doctor_id"],
            "patient_id": appointment["patient_id"],
            "room_id": room_id,
            "call_link": f"{settings.video_call_base_url.rstrip('/')}/video-call/{room_id}",
            "status": VideoCallStatus.SCHEDULED.value,
        }
        (created,) = await apply_effects(self.db, [partial(self.repo.insert, values)])
        logger.info("video_call_created", call_id=str(created["id"]), appointment_id=str(appointment_id))

        when = f"{appointment['appointment_date']} at {appointment['appointment_time']:%H:%M}"
        await self.notifications.emit(
            "Video consultation scheduled",
            f"Your video consultation on {when} is ready to join.",
            patient_ids=[appointment["patient_id"]],
            type="video_call",
            related_appointment_id=appointment_id,
        )
        await self.notifications.emit(
            "Video consultation scheduled",
            f"A video consultation room is ready for {when}.",
            doctor_ids=[appointment["doctor_id"]],
            type="video_call",
            related_appointment_id=appointment_id,
        )
        return created

    async def get(self, ctx: AccessContext | None, appointment_id: UUID) -> dict[str, Any]:
        """Get the call of an appointment (participants, staff, admin)."""
        return await self._require_call(ctx, appointment_id)

    async def join(self, ctx: AccessContext | None, appointment_id: UUID) -> VideoCallJoinResponse:
        """
        Join the call of an appointment as its patient or doctor.

        The first participant moves the call from ``scheduled`` to
        ``ongoing`` and stamps the start time; later joins leave it untouched.

        Raises:
            AccessDeniedException: If the caller is not a participant
            NotFoundException: If the appointment has no call
            InvalidStateException: If the call has ended or was cancelled, or
                its appointment is no longer confirmed
        """
        ctx = require_context(ctx)
        if ctx.role not in (Role.PATIENT, Role.DOCTOR):
            self.repo.deny(ctx, reason="join", entity_id=appointment_id)

        call = await self._require_call(ctx, appointment_id)
        appointment = await self.appointments.find(appointment_id)
        if appointment["status"] != AppointmentStatus.CONFIRMED.value:
            raise InvalidStateException(f"Cannot join the call of a {appointment['status']} appointment")

        if call["status"] == VideoCallStatus.SCHEDULED.value:
            try:
                (call,) = await apply_effects(
                    self.db,
                    [
                        partial(
                            self.repo.update,
                            call,
                            {
                                "status": VideoCallStatus.ONGOING.value,
                                "started_at": datetime.now(UTC),
                            },
                            video_calls.c.status == VideoCallStatus.SCHEDULED.value,
                        )
                    ],
                )
                logger.info("video_call_started", call_id=str(call["id"]), user_id=str(ctx.user_id))
            except ConflictException:
                # Another participant started the call first
                call = await self.repo.get_by_id(ctx, call["id"])

        if call["status"] != VideoCallStatus.ONGOING.value:
            raise InvalidStateException(f"Cannot join a {call['status']} video call")

        token = self.provider.participant_token(call["room_id"], ctx.role.value) if self.provider else None
        return VideoCallJoinResponse(
            call_link=call["call_link"],
            room_id=call["room_id"],
            status=VideoCallStatus(call["status"]),
            token=token,
        )

    async def end(
        self,
        ctx: AccessContext | None,
        appointment_id: UUID,
        data: VideoCallEnd | None = None,
    ) -> dict[str, Any]:
        """
        End an ongoing call and complete its appointment in one transaction.

        Args:
            ctx: Access context (participant, staff or admin)
            appointment_id: Appointment ID
            data: Optional explicit duration and notes

        Returns:
            Completed video call

        Raises:
            InvalidStateException: If the call is not ongoing, or its appointment
                is neither confirmed nor already completed
            ConflictException: If the call or appointment changed concurrently
        """
        data = data or VideoCallEnd()
        call = await self._require_call(ctx, appointment_id)
        if call["status"] != VideoCallStatus.ONGOING.value:
            raise InvalidStateException(f"Cannot end a {call['status']} video call")

        now = datetime.now(UTC)
        duration = data.duration_minutes
        if duration is None and call["started_at"] is not None:
            elapsed = now - _as_utc(call["started_at"])
            duration = max(0, round(elapsed.total_seconds() / 60))

        appointment = await self.appointments.find(appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        if appointment["status"] not in (
            AppointmentStatus.CONFIRMED.value,
            AppointmentStatus.COMPLETED.value,
        ):
            raise InvalidStateException(f"Cannot end the call of a {appointment['status']} appointment")

        call_values = {
            "status": VideoCallStatus.COMPLETED.value,
            "ended_at": now,
            "duration_minutes": duration,
        }
        if data.notes is not None:
            call_values["notes"] = data.notes

        effects = [
            partial(
                self.repo.update,
                call,
                call_values,
                video_calls.c.status == VideoCallStatus.ONGOING.value,
            )
        ]
        if appointment["status"] == AppointmentStatus.CONFIRMED.value:
            effects.append(
                partial(
                    self.appointments.update,
                    appointment,
                    {"status": AppointmentStatus.COMPLETED.value, "completed_at": now},
                    appointments.c.status == AppointmentStatus.CONFIRMED.value,
                )
            )

        ended, *_ = await apply_effects(self.db, effects)
        logger.info(
            "video_call_ended",
            call_id=str(ended["id"]),
            appointment_id=str(appointment_id),
            duration_minutes=duration,
        )
        return ended
