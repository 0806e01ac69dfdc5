"""Kind-generic entry points over the entity repositories and domain services."""

from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.core.access import AccessContext
from clinicflow.core.exceptions import ValidationException
from clinicflow.core.policies import EntityKind
from clinicflow.core.transactions import apply_effects
from clinicflow.schemas.appointments import AppointmentCreate, AppointmentStatusUpdate
from clinicflow.schemas.catalog import ServiceCreate, ServicePackageCreate
from clinicflow.schemas.clinical import (
    HealthMetricCreate,
    LabTestOrder,
    MedicalRecordCreate,
    PrescriptionCreate,
)
from clinicflow.schemas.messages import MessageCreate
from clinicflow.schemas.notifications import NotificationCreate
from clinicflow.schemas.operations import (
    EquipmentCreate,
    EquipmentStatusUpdate,
    TaskCreate,
    TaskStatus,
)
from clinicflow.schemas.payments import PaymentCreate, PaymentStatusUpdate
from clinicflow.services.appointment_service import AppointmentService
from clinicflow.services.catalog_service import CatalogService
from clinicflow.services.clinical_service import ClinicalService
from clinicflow.services.messaging_service import MessagingService
from clinicflow.services.notification_service import NotificationService
from clinicflow.services.operations_service import OperationsService
from clinicflow.services.payment_service import PaymentService
from clinicflow.services.repository import EntityRepository


class DataService:
    """Uniform ``list/get/create/update_status`` surface keyed by entity kind."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    def _creators(self) -> dict[EntityKind, tuple[type[BaseModel], Callable[..., Awaitable[Any]]]]:
        clinical = ClinicalService(self.db)
        catalog = CatalogService(self.db)
        operations = OperationsService(self.db)
        return {
            EntityKind.APPOINTMENTS: (AppointmentCreate, AppointmentService(self.db).create_appointment),
            EntityKind.MEDICAL_RECORDS: (MedicalRecordCreate, clinical.create_medical_record),
            EntityKind.PRESCRIPTIONS: (PrescriptionCreate, clinical.create_prescription),
            EntityKind.LAB_TESTS: (LabTestOrder, clinical.order_lab_test),
            EntityKind.HEALTH_METRICS: (HealthMetricCreate, clinical.add_health_metric),
            EntityKind.PAYMENTS: (PaymentCreate, PaymentService(self.db).process_payment),
            EntityKind.SERVICES: (ServiceCreate, catalog.create_service),
            EntityKind.SERVICE_PACKAGES: (ServicePackageCreate, catalog.create_package),
            EntityKind.NOTIFICATIONS: (NotificationCreate, NotificationService(self.db).notify),
            EntityKind.MESSAGES: (MessageCreate, MessagingService(self.db).send_message),
            EntityKind.TASKS: (TaskCreate, operations.assign_task),
            EntityKind.EQUIPMENT: (EquipmentCreate, operations.register_equipment),
        }

    async def list(
        self,
        ctx: AccessContext | None,
        kind: EntityKind,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """List rows of ``kind`` visible to the caller."""
        return await EntityRepository(self.db, kind).list(ctx, limit=limit)

    async def get_by_id(self, ctx: AccessContext | None, kind: EntityKind, entity_id: UUID) -> dict[str, Any]:
        """Get one row of ``kind``, distinguishing missing from forbidden."""
        return await EntityRepository(self.db, kind).get_by_id(ctx, entity_id)

    async def create(
        self,
        ctx: AccessContext | None,
        kind: EntityKind,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Create a row of ``kind`` through its domain service.

        Args:
            ctx: Access context
            kind: Entity kind
            payload: Raw payload validated against the kind's create schema

        Returns:
            Created row

        Raises:
            ValidationException: If the kind cannot be created this way or the payload is invalid
        """
        creators = self._creators()
        if kind not in creators:
            raise ValidationException(f"{kind.label} records cannot be created directly")

        schema, create = creators[kind]
        try:
            data = schema.model_validate(payload)
        except ValidationError as e:
            raise ValidationException(f"Invalid {kind.label.lower()} payload: {e.error_count()} error(s)") from e
        return await create(ctx, data)

    async def update_status(
        self,
        ctx: AccessContext | None,
        kind: EntityKind,
        entity_id: UUID,
        new_status: str,
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        """
        Move a row of ``kind`` to ``new_status``.

        Kinds with side effects go through their domain service so the
        effects run in the same transaction.

        Raises:
            AccessDeniedException: If the caller may not set this status
            InvalidStateException: If the lifecycle forbids the transition
            ValidationException: If the status is unknown
        """
        try:
            if kind == EntityKind.APPOINTMENTS:
                appointment_update = AppointmentStatusUpdate(
                    status=new_status, expected_version=expected_version
                )
            elif kind == EntityKind.PAYMENTS:
                payment_update = PaymentStatusUpdate(status=new_status)
            elif kind == EntityKind.TASKS:
                task_status = TaskStatus(new_status)
            elif kind == EntityKind.EQUIPMENT:
                equipment_update = EquipmentStatusUpdate(status=new_status)
        except ValueError as e:
            raise ValidationException(f"Unknown {kind.label.lower()} status '{new_status}'") from e

        if kind == EntityKind.APPOINTMENTS:
            return await AppointmentService(self.db).update_status(ctx, entity_id, appointment_update)
        if kind == EntityKind.PAYMENTS:
            return await PaymentService(self.db).update_status(ctx, entity_id, payment_update)
        if kind == EntityKind.TASKS:
            return await OperationsService(self.db).update_task_status(ctx, entity_id, task_status)
        if kind == EntityKind.EQUIPMENT:
            return await OperationsService(self.db).update_equipment_status(
                ctx, entity_id, equipment_update
            )

        repo = EntityRepository(self.db, kind)

        async def _transition() -> dict[str, Any]:
            _, updated = await repo.update_status(
                ctx, entity_id, new_status, expected_version=expected_version
            )
            return updated

        (updated,) = await apply_effects(self.db, [_transition])
        return updated
