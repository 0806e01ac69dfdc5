"""Clinic operations: staff tasks and equipment."""

from datetime import date
from functools import partial
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.core.access import AccessContext
from clinicflow.core.exceptions import NotFoundException
from clinicflow.core.policies import EntityKind
from clinicflow.core.transactions import apply_effects
from clinicflow.models import users
from clinicflow.schemas.operations import (
    EquipmentCreate,
    EquipmentStatus,
    EquipmentStatusUpdate,
    TaskCreate,
    TaskStatus,
)
from clinicflow.services.notification_service import NotificationService
from clinicflow.services.repository import EntityRepository, require_context

logger = structlog.get_logger(__name__)


class OperationsService:
    """Service for tasks and equipment."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.tasks = EntityRepository(db, EntityKind.TASKS)
        self.equipment = EntityRepository(db, EntityKind.EQUIPMENT)
        self.notifications = NotificationService(db)

    async def assign_task(self, ctx: AccessContext | None, data: TaskCreate) -> dict[str, Any]:
        """
        Assign a task to a user (staff/admin).

        Raises:
            AccessDeniedException: If the caller is not staff or admin
            NotFoundException: If the assignee does not exist
        """
        ctx = require_context(ctx)
        if not ctx.is_staff_or_admin:
            self.tasks.deny(ctx, reason="create")

        result = await self.db.execute(select(users.c.id).where(users.c.id == data.assigned_to))
        if result.scalar_one_or_none() is None:
            raise NotFoundException("Assignee not found")

        values = {
            **data.model_dump(),
            "created_by": ctx.user_id,
            "status": TaskStatus.PENDING.value,
        }
        (created,) = await apply_effects(self.db, [partial(self.tasks.insert, values)])

        await self.notifications.emit(
            "New task assigned",
            data.title,
            users=[data.assigned_to],
            type="task",
            priority=data.priority,
        )
        return created

    async def update_task_status(
        self,
        ctx: AccessContext | None,
        task_id: UUID,
        status: TaskStatus,
    ) -> dict[str, Any]:
        """
        Move a task along ``pending -> in_progress -> completed``.

        The assignee, staff and admins may transition a task.
        """

        async def _transition() -> dict[str, Any]:
            _, updated = await self.tasks.update_status(ctx, task_id, status.value)
            return updated

        (updated,) = await apply_effects(self.db, [_transition])
        return updated

    async def register_equipment(
        self,
        ctx: AccessContext | None,
        data: EquipmentCreate,
    ) -> dict[str, Any]:
        """Register a piece of equipment (staff/admin)."""
        ctx = require_context(ctx)
        if not ctx.is_staff_or_admin:
            self.equipment.deny(ctx, reason="create")

        (created,) = await apply_effects(self.db, [partial(self.equipment.insert, data.model_dump())])
        return created

    async def update_equipment_status(
        self,
        ctx: AccessContext | None,
        equipment_id: UUID,
        data: EquipmentStatusUpdate,
        today: date | None = None,
    ) -> dict[str, Any]:
        """
        Change equipment status (staff/admin).

        Sending equipment to maintenance stamps the maintenance date and
        opens a maintenance task for the caller in the same transaction.

        Raises:
            AccessDeniedException: If the caller is not staff or admin
            InvalidStateException: If the status is unchanged
        """
        ctx = require_context(ctx)
        today = today or date.today()
        to_maintenance = data.status == EquipmentStatus.MAINTENANCE
        extra = {"last_maintenance": today} if to_maintenance else {}

        async def _transition() -> dict[str, Any]:
            _, updated = await self.equipment.update_status(ctx, equipment_id, data.status.value, extra)
            return updated

        async def _open_task() -> dict[str, Any]:
            return await self.tasks.insert(
                {
                    "assigned_to": ctx.user_id,
                    "created_by": ctx.user_id,
                    "title": "Equipment maintenance",
                    "description": data.notes,
                    "task_type": "maintenance",
                    "priority": "high",
                    "related_equipment_id": equipment_id,
                }
            )

        effects = [_transition, _open_task] if to_maintenance else [_transition]
        updated, *_ = await apply_effects(self.db, effects)
        logger.info(
            "equipment_status_changed",
            equipment_id=str(equipment_id),
            status=data.status.value,
            user_id=str(ctx.user_id),
        )
        return updated
