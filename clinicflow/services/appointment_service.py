"""Appointment service for business logic."""

from datetime import date
from functools import partial
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.core.access import AccessContext
from clinicflow.core.exceptions import InvalidStateException, NotFoundException, ValidationException
from clinicflow.core.policies import EntityKind
from clinicflow.core.transactions import apply_effects
from clinicflow.models import appointments, video_calls
from clinicflow.schemas.appointments import (
    AppointmentCreate,
    AppointmentReschedule,
    AppointmentStatus,
    AppointmentStatusUpdate,
    ConsultationType,
)
from clinicflow.schemas.users import Role
from clinicflow.schemas.video_calls import VideoCallStatus
from clinicflow.services.notification_service import NotificationService
from clinicflow.services.repository import EntityRepository, require_context

logger = structlog.get_logger(__name__)

_STATUS_MESSAGES = {
    AppointmentStatus.CONFIRMED: ("Appointment confirmed", "Your appointment on {date} at {time} is confirmed."),
    AppointmentStatus.COMPLETED: ("Appointment completed", "Your appointment on {date} has been completed."),
    AppointmentStatus.CANCELLED: ("Appointment cancelled", "Your appointment on {date} at {time} was cancelled."),
}

_OPEN_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)


class AppointmentService:
    """Service for managing appointments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.repo = EntityRepository(db, EntityKind.APPOINTMENTS)
        self.doctors = EntityRepository(db, EntityKind.DOCTORS)
        self.patients = EntityRepository(db, EntityKind.PATIENTS)
        self.video_calls = EntityRepository(db, EntityKind.VIDEO_CALLS)
        self.notifications = NotificationService(db)

    async def _resolve_patient(self, ctx: AccessContext, data: AppointmentCreate) -> UUID:
        if ctx.role == Role.PATIENT:
            if ctx.patient_id is None:
                self.repo.deny(ctx, reason="no_profile")
            return ctx.patient_id

        if not ctx.is_staff_or_admin:
            self.repo.deny(ctx, reason="create")

        if data.patient_id is None:
            raise ValidationException("patient_id is required when booking for a patient")
        if await self.patients.find(data.patient_id) is None:
            raise NotFoundException("Patient not found")
        return data.patient_id

    async def create_appointment(
        self,
        ctx: AccessContext | None,
        data: AppointmentCreate,
    ) -> dict[str, Any]:
        """
        Book an appointment.

        Patients book for themselves; staff and admins book on behalf of a
        patient. A new appointment is always pending, whatever status the
        client sent. The fee is taken from the doctor profile.

        Args:
            ctx: Access context
            data: Appointment creation data

        Returns:
            Created appointment

        Raises:
            AccessDeniedException: If the caller may not book
            NotFoundException: If the doctor or patient does not exist
            ValidationException: If the doctor does not offer video consultations
        """
        ctx = require_context(ctx)
        patient_id = await self._resolve_patient(ctx, data)

        doctor = await self.doctors.find(data.doctor_id)
        if doctor is None:
            raise NotFoundException("Doctor not found")
        if data.consultation_type == ConsultationType.VIDEO and not doctor["supports_video"]:
            raise ValidationException("Doctor does not offer video consultations")

        if data.status and data.status != AppointmentStatus.PENDING:
            logger.info("client_status_ignored", requested=data.status.value, user_id=str(ctx.user_id))

        values = {
            "patient_id": patient_id,
            "doctor_id": data.doctor_id,
            "service_type": data.service_type,
            "reason": data.reason,
            "appointment_date": data.appointment_date,
            "appointment_time": data.appointment_time,
            "consultation_type": data.consultation_type.value,
            "duration_minutes": data.duration_minutes,
            "fee": doctor["consultation_fee"],
            "status": AppointmentStatus.PENDING.value,
        }
        (created,) = await apply_effects(self.db, [partial(self.repo.insert, values)])
        logger.info(
            "appointment_created",
            appointment_id=str(created["id"]),
            patient_id=str(patient_id),
            doctor_id=str(data.doctor_id),
        )

        await self.notifications.emit(
            "New appointment request",
            f"New {data.consultation_type.value} appointment requested for "
            f"{data.appointment_date} at {data.appointment_time:%H:%M}.",
            doctor_ids=[data.doctor_id],
            type="appointment",
            related_appointment_id=created["id"],
        )
        return created

    async def get_appointment(self, ctx: AccessContext | None, appointment_id: UUID) -> dict[str, Any]:
        """Get an appointment visible to the caller."""
        return await self.repo.get_by_id(ctx, appointment_id)

    async def list_appointments(
        self,
        ctx: AccessContext | None,
        status: AppointmentStatus | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        List appointments visible to the caller, most recent first.

        Args:
            ctx: Access context
            status: Filter by status
            from_date: Earliest appointment date
            to_date: Latest appointment date
            limit: Maximum number of rows

        Returns:
            Appointments
        """
        conditions = []
        if status:
            conditions.append(appointments.c.status == status.value)
        if from_date:
            conditions.append(appointments.c.appointment_date >= from_date)
        if to_date:
            conditions.append(appointments.c.appointment_date <= to_date)
        return await self.repo.list(ctx, *conditions, limit=limit)

    async def list_upcoming(
        self,
        ctx: AccessContext | None,
        limit: int | None = None,
        today: date | None = None,
    ) -> list[dict[str, Any]]:
        """List open appointments from today on, soonest first."""
        today = today or date.today()
        return await self.repo.list(
            ctx,
            appointments.c.appointment_date >= today,
            appointments.c.status.in_(
                [AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value]
            ),
            descending=False,
            limit=limit,
        )

    async def update_status(
        self,
        ctx: AccessContext | None,
        appointment_id: UUID,
        data: AppointmentStatusUpdate,
    ) -> dict[str, Any]:
        """
        Move an appointment along ``pending -> confirmed -> completed``.

        Pending and confirmed appointments may also be cancelled. Doctors act
        on their own appointments; patients may only cancel their own.

        Args:
            ctx: Access context
            appointment_id: Appointment ID
            data: Target status and optional reason/notes

        Returns:
            Updated appointment

        Raises:
            AccessDeniedException: If the caller may not set this status
            InvalidStateException: If the transition is not allowed, or the
                appointment is cancelled while its video call is ongoing
            ConflictException: If the appointment changed concurrently
        """
        ctx = require_context(ctx)
        extra: dict[str, Any] = {}
        if data.status == AppointmentStatus.CANCELLED and data.cancellation_reason:
            extra["cancellation_reason"] = data.cancellation_reason
        if data.notes is not None:
            extra["notes"] = data.notes

        async def _transition() -> dict[str, Any]:
            _, updated = await self.repo.update_status(
                ctx,
                appointment_id,
                data.status.value,
                extra,
                expected_version=data.expected_version,
            )
            return updated

        effects = [_transition]
        if data.status in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED):
            effects.append(partial(self._close_video_call, appointment_id, data.status))
        updated, *_ = await apply_effects(self.db, effects)

        if data.status not in _STATUS_MESSAGES:
            return updated
        title, template = _STATUS_MESSAGES[data.status]
        message = template.format(
            date=updated["appointment_date"],
            time=f"{updated['appointment_time']:%H:%M}",
        )
        await self.notifications.emit(
            title,
            message,
            patient_ids=[updated["patient_id"]] if ctx.role != Role.PATIENT else [],
            doctor_ids=[updated["doctor_id"]] if ctx.role == Role.PATIENT else [],
            type="appointment",
            priority="high" if data.status == AppointmentStatus.CANCELLED else "medium",
            related_appointment_id=appointment_id,
        )
        return updated

    async def _close_video_call(
        self, appointment_id: UUID, target: AppointmentStatus
    ) -> dict[str, Any] | None:
        """Cancel the room of a closing appointment if nobody has joined it yet."""
        call = await self.video_calls.first(
            select(video_calls).where(video_calls.c.appointment_id == appointment_id)
        )
        if call is None:
            return None
        if call["status"] == VideoCallStatus.ONGOING.value and target == AppointmentStatus.CANCELLED:
            raise InvalidStateException("Cannot cancel an appointment while its video call is ongoing")
        if call["status"] != VideoCallStatus.SCHEDULED.value:
            return call

        cancelled = await self.video_calls.update(
            call,
            {"status": VideoCallStatus.CANCELLED.value},
            video_calls.c.status == VideoCallStatus.SCHEDULED.value,
        )
        logger.info(
            "video_call_cancelled",
            call_id=str(call["id"]),
            appointment_id=str(appointment_id),
            appointment_status=target.value,
        )
        return cancelled

    async def reschedule(
        self,
        ctx: AccessContext | None,
        appointment_id: UUID,
        data: AppointmentReschedule,
    ) -> dict[str, Any]:
        """
        Move an open appointment to another date and time.

        The status is left as it is; the previous slot, the reason and the
        role that asked for the change are kept on the row. The other party
        is notified.

        Args:
            ctx: Access context (the appointment's patient or doctor, staff, admin)
            appointment_id: Appointment ID
            data: New slot, optional reason and expected version

        Returns:
            Updated appointment

        Raises:
            AccessDeniedException: If the caller may not change this appointment
            InvalidStateException: If the appointment is closed or its video
                call is ongoing
            ValidationException: If the new slot is unchanged or in the past
            ConflictException: If the appointment changed concurrently
        """
        ctx = require_context(ctx)
        current = await self.repo.get_by_id(ctx, appointment_id, writing=True)
        if current["status"] not in _OPEN_STATUSES:
            raise InvalidStateException(f"Cannot reschedule a {current['status']} appointment")
        if (data.appointment_date, data.appointment_time) == (
            current["appointment_date"],
            current["appointment_time"],
        ):
            raise ValidationException("Appointment is already booked for this slot")
        if data.appointment_date < date.today():
            raise ValidationException("Cannot reschedule an appointment into the past")

        async def _move() -> dict[str, Any]:
            call = await self.video_calls.first(
                select(video_calls).where(video_calls.c.appointment_id == appointment_id)
            )
            if call is not None and call["status"] == VideoCallStatus.ONGOING.value:
                raise InvalidStateException("Cannot reschedule while the video call is ongoing")
            return await self.repo.update(
                current,
                {
                    "appointment_date": data.appointment_date,
                    "appointment_time": data.appointment_time,
                    "original_date": current["appointment_date"],
                    "original_time": current["appointment_time"],
                    "reschedule_reason": data.reason,
                    "reschedule_requested_by": ctx.role.value,
                },
                appointments.c.status == current["status"],
                expected_version=data.expected_version,
            )

        (updated,) = await apply_effects(self.db, [_move])
        logger.info(
            "appointment_rescheduled",
            appointment_id=str(appointment_id),
            user_id=str(ctx.user_id),
            from_date=str(current["appointment_date"]),
            to_date=str(data.appointment_date),
        )

        await self.notifications.emit(
            "Appointment rescheduled",
            f"Your appointment on {current['appointment_date']} at {current['appointment_time']:%H:%M} "
            f"was moved to {data.appointment_date} at {data.appointment_time:%H:%M}.",
            patient_ids=[updated["patient_id"]] if ctx.role != Role.PATIENT else [],
            doctor_ids=[updated["doctor_id"]] if ctx.role != Role.DOCTOR else [],
            type="appointment",
            related_appointment_id=appointment_id,
        )
        return updated
