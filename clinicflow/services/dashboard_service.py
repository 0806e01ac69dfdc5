"""Per-role dashboard aggregation."""

import asyncio
from datetime import date
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from clinicflow.config import settings
from clinicflow.core.access import AccessContext
from clinicflow.core.exceptions import AccessDeniedException
from clinicflow.core.policies import EntityKind
from clinicflow.models import appointments, doctors, notifications, payments
from clinicflow.schemas.users import Role
from clinicflow.services.repository import EntityRepository, require_context

logger = structlog.get_logger(__name__)

_OPEN_APPOINTMENT = appointments.c.status.in_(["pending", "confirmed"])


class DashboardService:
    """Builds dashboard bundles by fanning out to the repositories concurrently.

    Every sub-fetch runs in its own session from ``session_factory`` so the
    reads can overlap. If any sub-fetch fails the whole bundle fails.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        recent_limit: int | None = None,
        staff_limit: int | None = None,
    ):
        """Initialize service with a session factory and listing limits."""
        self.session_factory = session_factory
        self.recent_limit = recent_limit or settings.dashboard_recent_limit
        self.staff_limit = staff_limit or settings.dashboard_staff_limit

    async def _list(
        self,
        kind: EntityKind,
        ctx: AccessContext,
        *conditions: ColumnElement[bool],
        **options: Any,
    ) -> list[dict[str, Any]]:
        async with self.session_factory() as session:
            return await EntityRepository(session, kind).list(ctx, *conditions, **options)

    async def _count(
        self,
        kind: EntityKind,
        ctx: AccessContext,
        *conditions: ColumnElement[bool],
    ) -> int:
        async with self.session_factory() as session:
            return await EntityRepository(session, kind).count(ctx, *conditions)

    def _require_role(self, ctx: AccessContext | None, *roles: Role) -> AccessContext:
        ctx = require_context(ctx)
        if ctx.role not in roles:
            logger.warning(
                "entity_access_denied",
                kind="dashboard",
                user_id=str(ctx.user_id),
                role=ctx.role.value,
                reason="dashboard_role",
            )
            raise AccessDeniedException("Dashboard not available for this role")
        return ctx

    async def _gather(self, name: str, ctx: AccessContext, **fetches: Any) -> dict[str, Any]:
        try:
            results = await asyncio.gather(*fetches.values())
        except Exception as e:
            logger.error("dashboard_failed", dashboard=name, user_id=str(ctx.user_id), error=str(e))
            raise
        return dict(zip(fetches.keys(), results, strict=True))

    async def get_patient_dashboard(
        self,
        ctx: AccessContext | None,
        today: date | None = None,
    ) -> dict[str, Any]:
        """
        Assemble the patient dashboard.

        Args:
            ctx: Access context of a patient
            today: Reference date for upcoming/past splits

        Returns:
            Bundle keyed by entity name

        Raises:
            AccessDeniedException: If the caller is not a patient
        """
        ctx = self._require_role(ctx, Role.PATIENT)
        today = today or date.today()
        limit = self.recent_limit

        return await self._gather(
            "patient",
            ctx,
            upcoming_appointments=self._list(
                EntityKind.APPOINTMENTS,
                ctx,
                appointments.c.appointment_date >= today,
                _OPEN_APPOINTMENT,
                descending=False,
                limit=limit,
            ),
            past_appointments=self._list(
                EntityKind.APPOINTMENTS,
                ctx,
                appointments.c.appointment_date < today,
                limit=limit,
            ),
            medical_records=self._list(EntityKind.MEDICAL_RECORDS, ctx, limit=limit),
            prescriptions=self._list(EntityKind.PRESCRIPTIONS, ctx, limit=limit),
            lab_tests=self._list(EntityKind.LAB_TESTS, ctx, limit=limit),
            health_metrics=self._list(EntityKind.HEALTH_METRICS, ctx, limit=limit),
            payments=self._list(EntityKind.PAYMENTS, ctx, limit=limit),
            video_calls=self._list(EntityKind.VIDEO_CALLS, ctx, limit=limit),
            notifications=self._list(EntityKind.NOTIFICATIONS, ctx, limit=limit),
            services=self._list(EntityKind.SERVICES, ctx),
        )

    async def get_doctor_dashboard(
        self,
        ctx: AccessContext | None,
        today: date | None = None,
    ) -> dict[str, Any]:
        """
        Assemble the doctor dashboard.

        Raises:
            AccessDeniedException: If the caller is not a doctor
        """
        ctx = self._require_role(ctx, Role.DOCTOR)
        today = today or date.today()
        limit = self.recent_limit

        return await self._gather(
            "doctor",
            ctx,
            today_appointments=self._list(
                EntityKind.APPOINTMENTS,
                ctx,
                appointments.c.appointment_date == today,
                descending=False,
            ),
            upcoming_appointments=self._list(
                EntityKind.APPOINTMENTS,
                ctx,
                appointments.c.appointment_date > today,
                _OPEN_APPOINTMENT,
                descending=False,
                limit=limit,
            ),
            patients=self._list(EntityKind.PATIENTS, ctx),
            medical_records=self._list(EntityKind.MEDICAL_RECORDS, ctx, limit=limit),
            lab_tests=self._list(EntityKind.LAB_TESTS, ctx, limit=limit),
            health_metrics=self._list(EntityKind.HEALTH_METRICS, ctx, limit=limit),
            tasks=self._list(EntityKind.TASKS, ctx, limit=limit),
            video_calls=self._list(EntityKind.VIDEO_CALLS, ctx, limit=limit),
            notifications=self._list(EntityKind.NOTIFICATIONS, ctx, limit=limit),
        )

    async def get_staff_dashboard(
        self,
        ctx: AccessContext | None,
        today: date | None = None,
    ) -> dict[str, Any]:
        """
        Assemble the staff/admin dashboard with headline counters.

        Raises:
            AccessDeniedException: If the caller is neither staff nor admin
        """
        ctx = self._require_role(ctx, Role.STAFF, Role.ADMIN)
        today = today or date.today()
        limit = self.staff_limit

        bundle = await self._gather(
            "staff",
            ctx,
            total_appointments=self._count(EntityKind.APPOINTMENTS, ctx),
            today_appointments=self._count(
                EntityKind.APPOINTMENTS, ctx, appointments.c.appointment_date == today
            ),
            pending_appointments=self._count(
                EntityKind.APPOINTMENTS, ctx, appointments.c.status == "pending"
            ),
            total_patients=self._count(EntityKind.PATIENTS, ctx),
            active_doctors=self._count(
                EntityKind.DOCTORS, ctx, doctors.c.availability_status != "break"
            ),
            pending_payments=self._count(EntityKind.PAYMENTS, ctx, payments.c.status == "pending"),
            appointments=self._list(EntityKind.APPOINTMENTS, ctx, limit=limit),
            patients=self._list(EntityKind.PATIENTS, ctx, limit=limit),
            doctors=self._list(EntityKind.DOCTORS, ctx, limit=limit),
            staff=self._list(EntityKind.STAFF, ctx, limit=limit),
            payments=self._list(EntityKind.PAYMENTS, ctx, limit=limit),
            equipment=self._list(EntityKind.EQUIPMENT, ctx),
            tasks=self._list(EntityKind.TASKS, ctx, limit=limit),
            notifications=self._list(
                EntityKind.NOTIFICATIONS, ctx, notifications.c.is_read.is_(False), limit=limit
            ),
        )

        stat_keys = (
            "total_appointments",
            "today_appointments",
            "pending_appointments",
            "total_patients",
            "active_doctors",
            "pending_payments",
        )
        bundle["stats"] = {key: bundle.pop(key) for key in stat_keys}
        return bundle
