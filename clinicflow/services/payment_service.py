"""Payment service for recording and reconciling payments."""

from datetime import UTC, datetime
from functools import partial
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.core.access import AccessContext
from clinicflow.core.exceptions import NotFoundException
from clinicflow.core.policies import EntityKind
from clinicflow.core.transactions import apply_effects
from clinicflow.schemas.payments import PaymentCreate, PaymentStatus, PaymentStatusUpdate
from clinicflow.services.notification_service import NotificationService
from clinicflow.services.repository import EntityRepository, require_context

logger = structlog.get_logger(__name__)


class PaymentService:
    """Service for managing payments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.repo = EntityRepository(db, EntityKind.PAYMENTS)
        self.appointments = EntityRepository(db, EntityKind.APPOINTMENTS)
        self.notifications = NotificationService(db)

    async def process_payment(self, ctx: AccessContext | None, data: PaymentCreate) -> dict[str, Any]:
        """
        Record a settled payment against an appointment (staff/admin).

        Args:
            ctx: Access context
            data: Payment payload

        Returns:
            Created payment

        Raises:
            AccessDeniedException: If the caller is not staff or admin
            NotFoundException: If the appointment does not exist
        """
        ctx = require_context(ctx)
        if not ctx.is_staff_or_admin:
            self.repo.deny(ctx, reason="create")

        appointment = await self.appointments.find(data.appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")

        values = {
            **data.model_dump(),
            "patient_id": appointment["patient_id"],
            "status": PaymentStatus.PAID.value,
            "paid_at": datetime.now(UTC),
        }
        (created,) = await apply_effects(self.db, [partial(self.repo.insert, values)])
        logger.info(
            "payment_processed",
            payment_id=str(created["id"]),
            appointment_id=str(data.appointment_id),
            amount=str(data.amount),
        )

        await self.notifications.emit(
            "Payment received",
            f"We received your payment of {data.amount} via {data.method}.",
            patient_ids=[appointment["patient_id"]],
            type="payment",
            related_appointment_id=data.appointment_id,
        )
        return created

    async def update_status(
        self,
        ctx: AccessContext | None,
        payment_id: UUID,
        data: PaymentStatusUpdate,
    ) -> dict[str, Any]:
        """
        Change a payment status.

        Pending payments settle to paid, failed or cancelled; a failed payment
        may be retried by moving it back to pending.

        Raises:
            AccessDeniedException: If the caller is not staff or admin
            InvalidStateException: If the transition is not allowed
        """
        extra = {"transaction_ref": data.transaction_ref} if data.transaction_ref else {}

        async def _transition() -> dict[str, Any]:
            _, updated = await self.repo.update_status(ctx, payment_id, data.status.value, extra)
            return updated

        (updated,) = await apply_effects(self.db, [_transition])

        if data.status == PaymentStatus.FAILED:
            await self.notifications.emit(
                "Payment failed",
                "Your payment could not be completed. Please contact the clinic.",
                patient_ids=[updated["patient_id"]],
                type="payment",
                priority="high",
                related_appointment_id=updated["appointment_id"],
            )
        return updated
