"""Admin reports: rows plus summary statistics for a date window."""

from collections import Counter
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.config import settings
from clinicflow.core.access import AccessContext
from clinicflow.core.exceptions import AccessDeniedException, ValidationException
from clinicflow.models import appointments, equipment, payments, users
from clinicflow.schemas.reports import ReportKind
from clinicflow.schemas.users import Role
from clinicflow.services.repository import require_context

logger = structlog.get_logger(__name__)


def _day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Inclusive date window as half-open UTC datetime bounds."""
    return (
        datetime.combine(start, time.min, tzinfo=UTC),
        datetime.combine(end + timedelta(days=1), time.min, tzinfo=UTC),
    )


class ReportService:
    """Service for admin reporting."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _rows(self, stmt: Any) -> list[dict[str, Any]]:
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def generate_report(
        self,
        ctx: AccessContext | None,
        kind: ReportKind,
        start: date | None = None,
        end: date | None = None,
    ) -> dict[str, Any]:
        """
        Generate a report for a date window (admin only).

        Args:
            ctx: Access context
            kind: Report kind
            start: First day of the window, defaults to 30 days before ``end``
            end: Last day of the window, defaults to today

        Returns:
            Dictionary with the window, rows and summary statistics

        Raises:
            AccessDeniedException: If the caller is not an admin
            ValidationException: If ``start`` is after ``end``
        """
        ctx = require_context(ctx)
        if ctx.role != Role.ADMIN:
            logger.warning("entity_access_denied", kind="reports", user_id=str(ctx.user_id), role=ctx.role.value)
            raise AccessDeniedException("Reports are restricted to admins")

        end = end or date.today()
        start = start or end - timedelta(days=settings.report_default_window_days)
        if start > end:
            raise ValidationException("Report start date must not be after end date")

        builder = {
            ReportKind.APPOINTMENTS: self._appointments,
            ReportKind.PAYMENTS: self._payments,
            ReportKind.USERS: self._users,
            ReportKind.EQUIPMENT: self._equipment,
        }[kind]
        rows, stats = await builder(start, end)

        logger.info("report_generated", kind=kind.value, rows=len(rows), user_id=str(ctx.user_id))
        return {"kind": kind, "start": start, "end": end, "rows": rows, "stats": stats}

    async def _appointments(self, start: date, end: date) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        rows = await self._rows(
            select(appointments)
            .where(appointments.c.appointment_date.between(start, end))
            .order_by(appointments.c.appointment_date, appointments.c.appointment_time)
        )
        by_status = Counter(row["status"] for row in rows)
        revenue = sum((Decimal(row["fee"]) for row in rows if row["status"] == "completed"), Decimal("0"))
        return rows, {
            "total": len(rows),
            "by_status": dict(by_status),
            "by_consultation_type": dict(Counter(row["consultation_type"] for row in rows)),
            "completed_revenue": str(revenue),
        }

    async def _payments(self, start: date, end: date) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        lower, upper = _day_bounds(start, end)
        rows = await self._rows(
            select(payments)
            .where(payments.c.created_at >= lower, payments.c.created_at < upper)
            .order_by(payments.c.created_at.desc())
        )
        paid = [row for row in rows if row["status"] == "paid"]
        return rows, {
            "total": len(rows),
            "by_status": dict(Counter(row["status"] for row in rows)),
            "by_method": dict(Counter(row["method"] for row in rows)),
            "paid_amount": str(sum((Decimal(row["amount"]) for row in paid), Decimal("0"))),
        }

    async def _users(self, start: date, end: date) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        lower, upper = _day_bounds(start, end)
        columns = [c for c in users.c if c.name != "password_hash"]
        rows = await self._rows(
            select(*columns)
            .where(users.c.created_at >= lower, users.c.created_at < upper)
            .order_by(users.c.created_at.desc())
        )
        return rows, {
            "total": len(rows),
            "by_role": dict(Counter(row["role"] for row in rows)),
            "active": sum(1 for row in rows if row["is_active"]),
        }

    async def _equipment(self, start: date, end: date) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        rows = await self._rows(select(equipment).order_by(equipment.c.name))
        due = [
            row for row in rows if row["next_maintenance"] is not None and row["next_maintenance"] <= end
        ]
        serviced = [
            row
            for row in rows
            if row["last_maintenance"] is not None and start <= row["last_maintenance"] <= end
        ]
        return rows, {
            "total": len(rows),
            "by_status": dict(Counter(row["status"] for row in rows)),
            "maintenance_due": len(due),
            "maintained_in_window": len(serviced),
        }
