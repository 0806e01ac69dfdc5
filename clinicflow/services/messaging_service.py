"""Direct messages between clinic users and patient-doctor threads."""

from datetime import UTC, datetime
from functools import partial
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.core.access import AccessContext
from clinicflow.core.exceptions import AccessDeniedException, NotFoundException, ValidationException
from clinicflow.core.policies import EntityKind
from clinicflow.core.transactions import apply_effects
from clinicflow.models import message_threads, messages
from clinicflow.schemas.messages import MessageCreate, ThreadOpen
from clinicflow.schemas.users import Role
from clinicflow.services.access_service import AccessService
from clinicflow.services.notification_service import NotificationService
from clinicflow.services.repository import EntityRepository, require_context

logger = structlog.get_logger(__name__)

# Roles each role may start a conversation with
CONTACT_ROLES: dict[Role, frozenset[Role]] = {
    Role.PATIENT: frozenset({Role.DOCTOR, Role.STAFF}),
    Role.DOCTOR: frozenset({Role.PATIENT, Role.STAFF}),
    Role.STAFF: frozenset({Role.PATIENT, Role.DOCTOR, Role.STAFF}),
    Role.ADMIN: frozenset(Role),
}

PREVIEW_LENGTH = 80


def _patient_doctor_pair(a: AccessContext, b: AccessContext) -> tuple[UUID, UUID] | None:
    """Profile ids of a patient/doctor pair, or None for any other pairing."""
    by_role = {a.role: a, b.role: b}
    patient, doctor = by_role.get(Role.PATIENT), by_role.get(Role.DOCTOR)
    if patient is None or doctor is None or patient.patient_id is None or doctor.doctor_id is None:
        return None
    return patient.patient_id, doctor.doctor_id


class MessagingService:
    """Service for sending and reading messages.

    Every message is visible to its sender and receiver only. Messages
    between a patient and a doctor are also grouped into a thread that both
    of them (and staff) can list.
    """

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.repo = EntityRepository(db, EntityKind.MESSAGES)
        self.threads = EntityRepository(db, EntityKind.MESSAGE_THREADS)
        self.appointments = EntityRepository(db, EntityKind.APPOINTMENTS)
        self.patients = EntityRepository(db, EntityKind.PATIENTS)
        self.doctors = EntityRepository(db, EntityKind.DOCTORS)
        self.notifications = NotificationService(db)

    async def _thread_for(
        self,
        patient_id: UUID,
        doctor_id: UUID,
        appointment_id: UUID | None,
    ) -> dict[str, Any]:
        """Find the thread of a pair, creating it on first use."""
        same_appointment = (
            message_threads.c.appointment_id.is_(None)
            if appointment_id is None
            else message_threads.c.appointment_id == appointment_id
        )
        existing = await self.threads.first(
            select(message_threads).where(
                message_threads.c.patient_id == patient_id,
                message_threads.c.doctor_id == doctor_id,
                same_appointment,
            )
        )
        if existing is not None:
            return existing
        return await self.threads.insert(
            {"patient_id": patient_id, "doctor_id": doctor_id, "appointment_id": appointment_id}
        )

    async def _resolve_receiver(self, ctx: AccessContext, receiver_id: UUID) -> AccessContext:
        if receiver_id == ctx.user_id:
            raise ValidationException("Cannot send a message to yourself")
        try:
            receiver = await AccessService(self.db).resolve_access_context(receiver_id, require_active=True)
        except AccessDeniedException as e:
            raise ValidationException("Recipient account is deactivated") from e

        if receiver.role not in CONTACT_ROLES[ctx.role]:
            self.repo.deny(ctx, reason=f"contact:{receiver.role.value}", entity_id=receiver_id)
        if ctx.role == Role.DOCTOR and receiver.role == Role.PATIENT:
            if receiver.patient_id is None:
                self.repo.deny(ctx, reason="no_profile", entity_id=receiver_id)
            await self.repo.ensure_linked_patient(ctx, receiver.patient_id)
        return receiver

    async def send_message(self, ctx: AccessContext | None, data: MessageCreate) -> dict[str, Any]:
        """
        Send a message and file it under the pair's thread.

        Args:
            ctx: Access context of the sender
            data: Recipient, text and optional appointment

        Returns:
            Created message

        Raises:
            NotFoundException: If the recipient or appointment does not exist
            AccessDeniedException: If the sender may not contact the recipient,
                or a doctor writes to a patient they do not treat
            ValidationException: If the recipient is the sender or is deactivated,
                or the appointment belongs to another patient/doctor pair
        """
        ctx = require_context(ctx)
        receiver = await self._resolve_receiver(ctx, data.receiver_id)
        pair = _patient_doctor_pair(ctx, receiver)

        if data.appointment_id is not None:
            appointment = await self.appointments.get_by_id(ctx, data.appointment_id)
            if pair and (appointment["patient_id"], appointment["doctor_id"]) != pair:
                raise ValidationException("Appointment does not belong to this conversation")

        async def _record() -> dict[str, Any]:
            thread = await self._thread_for(*pair, data.appointment_id) if pair else None
            message = await self.repo.insert(
                {
                    "sender_id": ctx.user_id,
                    "receiver_id": receiver.user_id,
                    "thread_id": thread["id"] if thread else None,
                    "appointment_id": data.appointment_id,
                    "message_text": data.message_text,
                    "message_type": data.message_type.value,
                }
            )
            if thread:
                await self.threads.update(
                    thread,
                    {
                        "last_message_id": message["id"],
                        "last_message_at": datetime.now(UTC),
                        "is_active": True,
                    },
                )
            return message

        (message,) = await apply_effects(self.db, [_record])
        logger.info(
            "message_sent",
            message_id=str(message["id"]),
            sender_id=str(ctx.user_id),
            receiver_id=str(receiver.user_id),
            thread_id=str(message["thread_id"]) if message["thread_id"] else None,
        )

        preview = data.message_text[:PREVIEW_LENGTH]
        await self.notifications.emit(
            "New message",
            preview if len(data.message_text) <= PREVIEW_LENGTH else preview + "...",
            users=[receiver.user_id],
            type="message",
            related_appointment_id=data.appointment_id,
        )
        return message

    async def list_conversation(
        self,
        ctx: AccessContext | None,
        other_user_id: UUID,
        appointment_id: UUID | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """List messages exchanged with another user, oldest first."""
        ctx = require_context(ctx)
        conditions = [
            or_(
                and_(messages.c.sender_id == ctx.user_id, messages.c.receiver_id == other_user_id),
                and_(messages.c.sender_id == other_user_id, messages.c.receiver_id == ctx.user_id),
            )
        ]
        if appointment_id is not None:
            conditions.append(messages.c.appointment_id == appointment_id)
        return await self.repo.list(ctx, *conditions, limit=limit)

    async def mark_conversation_read(
        self,
        ctx: AccessContext | None,
        other_user_id: UUID,
        appointment_id: UUID | None = None,
    ) -> int:
        """
        Mark messages received from another user as read.

        Returns:
            Number of messages marked
        """
        ctx = require_context(ctx)
        stmt = update(messages).where(
            messages.c.sender_id == other_user_id,
            messages.c.receiver_id == ctx.user_id,
            messages.c.is_read.is_(False),
        )
        if appointment_id is not None:
            stmt = stmt.where(messages.c.appointment_id == appointment_id)

        async def _apply() -> int:
            result = await self.repo.execute(stmt.values(is_read=True, read_at=datetime.now(UTC)))
            return result.rowcount or 0

        (count,) = await apply_effects(self.db, [_apply])
        return count

    async def list_threads(self, ctx: AccessContext | None) -> list[dict[str, Any]]:
        """List active threads visible to the caller, most recent activity first.

        Each thread carries ``unread_count``: messages in it addressed to the
        caller and not yet read.
        """
        ctx = require_context(ctx)
        threads = await self.threads.list(ctx, message_threads.c.is_active.is_(True))
        return await self._with_unread_counts(ctx, threads)

    async def _with_unread_counts(
        self, ctx: AccessContext, threads: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        if not threads:
            return []
        result = await self.repo.execute(
            select(messages.c.thread_id, func.count())
            .where(
                messages.c.thread_id.in_([t["id"] for t in threads]),
                messages.c.receiver_id == ctx.user_id,
                messages.c.is_read.is_(False),
            )
            .group_by(messages.c.thread_id)
        )
        unread = dict(result.all())
        return [{**thread, "unread_count": unread.get(thread["id"], 0)} for thread in threads]

    async def open_thread(self, ctx: AccessContext | None, data: ThreadOpen) -> dict[str, Any]:
        """
        Get or create the thread between a patient and a doctor.

        Raises:
            AccessDeniedException: If a doctor opens a thread with a patient they
                do not treat, or the caller has no messaging profile
            NotFoundException: If the patient or doctor does not exist
            ValidationException: If a required participant is missing
        """
        ctx = require_context(ctx)
        if ctx.role == Role.PATIENT:
            if ctx.patient_id is None:
                self.threads.deny(ctx, reason="no_profile")
            patient_id, doctor_id = ctx.patient_id, data.doctor_id
        elif ctx.role == Role.DOCTOR:
            if ctx.doctor_id is None:
                self.threads.deny(ctx, reason="no_profile")
            patient_id, doctor_id = data.patient_id, ctx.doctor_id
        else:
            patient_id, doctor_id = data.patient_id, data.doctor_id

        if patient_id is None or doctor_id is None:
            raise ValidationException("A thread needs both a patient and a doctor")
        if await self.patients.find(patient_id) is None:
            raise NotFoundException("Patient not found")
        if await self.doctors.find(doctor_id) is None:
            raise NotFoundException("Doctor not found")
        if ctx.role == Role.DOCTOR:
            await self.threads.ensure_linked_patient(ctx, patient_id)
        if data.appointment_id is not None:
            appointment = await self.appointments.get_by_id(ctx, data.appointment_id)
            if (appointment["patient_id"], appointment["doctor_id"]) != (patient_id, doctor_id):
                raise ValidationException("Appointment does not belong to this conversation")

        (thread,) = await apply_effects(
            self.db, [partial(self._thread_for, patient_id, doctor_id, data.appointment_id)]
        )
        (thread,) = await self._with_unread_counts(ctx, [thread])
        return thread
