"""Notification side channel."""

from collections.abc import Iterable
from datetime import UTC, datetime
from functools import partial
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.core.access import AccessContext
from clinicflow.core.policies import EntityKind
from clinicflow.core.transactions import apply_effects
from clinicflow.models import doctors, notifications, patients
from clinicflow.schemas.notifications import NotificationCreate
from clinicflow.services.repository import EntityRepository, require_context

logger = structlog.get_logger(__name__)


class NotificationService:
    """Service for recording user-visible notifications."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.repo = EntityRepository(db, EntityKind.NOTIFICATIONS)

    async def notify(self, ctx: AccessContext | None, data: NotificationCreate) -> dict[str, Any]:
        """
        Record a notification for a user.

        Staff and admins may notify anyone; everybody else only themselves.

        Args:
            ctx: Access context
            data: Notification payload

        Returns:
            Created notification

        Raises:
            AccessDeniedException: If the caller may not target ``data.user_id``
        """
        ctx = require_context(ctx)
        if not ctx.is_staff_or_admin and data.user_id != ctx.user_id:
            self.repo.deny(ctx, reason="foreign_target", entity_id=data.user_id)

        (created,) = await apply_effects(self.db, [partial(self.repo.insert, data.model_dump())])
        logger.info("notification_created", user_id=str(data.user_id), type=data.type)
        return created

    async def list_notifications(
        self,
        ctx: AccessContext | None,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """List the caller's own notifications, newest first."""
        conditions = [notifications.c.is_read.is_(False)] if unread_only else []
        return await self.repo.list(ctx, *conditions, limit=limit)

    async def mark_read(self, ctx: AccessContext | None, notification_id: UUID) -> dict[str, Any]:
        """
        Mark one of the caller's notifications as read.

        Raises:
            NotFoundException: If the notification does not exist
            AccessDeniedException: If it belongs to someone else
        """
        current = await self.repo.get_by_id(ctx, notification_id)
        if current["is_read"]:
            return current

        (updated,) = await apply_effects(
            self.db,
            [partial(self.repo.update, current, {"is_read": True, "read_at": datetime.now(UTC)})],
        )
        return updated

    async def mark_all_read(self, ctx: AccessContext | None) -> int:
        """Mark every unread notification of the caller as read."""
        ctx = require_context(ctx)
        stmt = (
            update(notifications)
            .where(notifications.c.user_id == ctx.user_id, notifications.c.is_read.is_(False))
            .values(is_read=True, read_at=datetime.now(UTC))
        )

        async def _apply() -> int:
            result = await self.repo.execute(stmt)
            return result.rowcount or 0

        (count,) = await apply_effects(self.db, [_apply])
        return count

    async def _user_ids(
        self,
        users: Iterable[UUID | None],
        patient_ids: Iterable[UUID | None],
        doctor_ids: Iterable[UUID | None],
    ) -> list[UUID]:
        targets = [u for u in users if u]
        for table, ids in ((patients, patient_ids), (doctors, doctor_ids)):
            wanted = [i for i in ids if i]
            if wanted:
                result = await self.db.execute(select(table.c.user_id).where(table.c.id.in_(wanted)))
                targets.extend(result.scalars().all())
        return list(dict.fromkeys(targets))

    async def emit(
        self,
        title: str,
        message: str,
        *,
        users: Iterable[UUID | None] = (),
        patient_ids: Iterable[UUID | None] = (),
        doctor_ids: Iterable[UUID | None] = (),
        type: str = "general",
        priority: str = "medium",
        related_appointment_id: UUID | None = None,
        related_test_id: UUID | None = None,
    ) -> int:
        """
        Record notifications triggered by a committed business operation.

        Runs in its own transaction after the triggering change has been
        committed. Failures are logged and never propagate.

        Args:
            title: Notification title
            message: Notification body
            users: Target user ids
            patient_ids: Target patient profile ids
            doctor_ids: Target doctor profile ids
            type: Notification type
            priority: Notification priority
            related_appointment_id: Related appointment
            related_test_id: Related lab test

        Returns:
            Number of notifications recorded
        """

        async def _record() -> int:
            targets = await self._user_ids(users, patient_ids, doctor_ids)
            for user_id in targets:
                await self.repo.insert(
                    {
                        "user_id": user_id,
                        "title": title,
                        "message": message,
                        "type": type,
                        "priority": priority,
                        "related_appointment_id": related_appointment_id,
                        "related_test_id": related_test_id,
                    }
                )
            return len(targets)

        try:
            (count,) = await apply_effects(self.db, [_record])
            return count
        except Exception as e:
            logger.warning("notification_side_effect_failed", error=str(e), title=title, type=type)
            return 0
