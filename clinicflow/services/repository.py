"""Generic role-scoped repository over SQLAlchemy Core tables."""

from collections.abc import Iterable
from typing import Any, NoReturn
from uuid import UUID

import structlog
from sqlalchemy import Select, and_, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from clinicflow.core.access import AccessContext
from clinicflow.core.exceptions import (
    AccessDeniedException,
    ConflictException,
    InvalidStateException,
    NotFoundException,
    UpstreamFailureException,
    ValidationException,
)
from clinicflow.core.policies import DENIED, NO_ROWS, EntityKind, Predicate, policy_for
from clinicflow.models import appointments

logger = structlog.get_logger(__name__)


def require_context(ctx: AccessContext | None) -> AccessContext:
    """
    Ensure an operation has a resolved access context.

    Args:
        ctx: Access context, possibly missing

    Returns:
        The same context

    Raises:
        AccessDeniedException: If no context was resolved
    """
    if ctx is None:
        logger.warning("missing_access_context")
        raise AccessDeniedException("Authentication required")
    return ctx


class EntityRepository:
    """Role-filtered reads and guarded writes for one entity kind.

    Reads and writes never commit; callers group writes with
    :func:`clinicflow.core.transactions.apply_effects`.
    """

    def __init__(self, db: AsyncSession, kind: EntityKind | str):
        """Initialize repository with database session and entity kind."""
        self.db = db
        self.kind = EntityKind(kind)
        self.policy = policy_for(self.kind)
        self.table = self.policy.table

    async def execute(self, stmt: Any) -> Any:
        """Execute a statement, mapping driver errors to application errors."""
        try:
            return await self.db.execute(stmt)
        except IntegrityError as e:
            logger.warning("integrity_violation", kind=self.kind.value, error=str(e.orig))
            raise ValidationException(f"{self.kind.label} violates a database constraint") from e
        except SQLAlchemyError as e:
            logger.error("upstream_failure", kind=self.kind.value, error=str(e))
            raise UpstreamFailureException("Database operation failed") from e

    async def first(self, stmt: Any) -> dict[str, Any] | None:
        """Execute a statement and return its first row as a dictionary."""
        result = await self.execute(stmt)
        row = result.mappings().first()
        return dict(row) if row else None

    def deny(self, ctx: AccessContext, reason: str, entity_id: UUID | None = None) -> NoReturn:
        """Log and raise an access denial for this kind."""
        logger.warning(
            "entity_access_denied",
            kind=self.kind.value,
            entity_id=str(entity_id) if entity_id else None,
            user_id=str(ctx.user_id),
            role=ctx.role.value,
            reason=reason,
        )
        raise AccessDeniedException(f"Access denied to {self.kind.label.lower()}")

    def scope_predicate(self, ctx: AccessContext | None, *, writing: bool = False) -> Predicate:
        """
        Resolve the visibility predicate of the caller.

        Args:
            ctx: Access context
            writing: Use the write ownership rule when the kind defines one

        Returns:
            SQL predicate, ``None`` for unfiltered, or ``NO_ROWS``

        Raises:
            AccessDeniedException: If the role may never access this kind
        """
        ctx = require_context(ctx)
        scope = self.policy.scope_for(ctx.role, writing=writing)
        if scope is DENIED:
            self.deny(ctx, reason="role")
        return scope.predicate(self.table, ctx)

    def _ordering(self, order_by: Iterable[str] | None, descending: bool | None) -> list[Any]:
        columns = tuple(order_by) if order_by else self.policy.order_by
        desc = self.policy.descending if descending is None else descending
        return [self.table.c[c].desc() if desc else self.table.c[c].asc() for c in columns]

    async def list(
        self,
        ctx: AccessContext | None,
        *conditions: ColumnElement[bool],
        order_by: Iterable[str] | None = None,
        descending: bool | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        List rows visible to the caller.

        Args:
            ctx: Access context
            conditions: Extra filters combined with the visibility predicate
            order_by: Column names overriding the natural ordering
            descending: Direction overriding the natural direction
            limit: Maximum number of rows

        Returns:
            Visible rows as dictionaries
        """
        predicate = self.scope_predicate(ctx)
        if predicate is NO_ROWS:
            return []

        stmt: Select[Any] = select(self.table)
        filters = [c for c in (predicate, *conditions) if c is not None]
        if filters:
            stmt = stmt.where(and_(*filters))
        stmt = stmt.order_by(*self._ordering(order_by, descending))
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def count(self, ctx: AccessContext | None, *conditions: ColumnElement[bool]) -> int:
        """Count rows visible to the caller."""
        predicate = self.scope_predicate(ctx)
        if predicate is NO_ROWS:
            return 0
        filters = [c for c in (predicate, *conditions) if c is not None]
        stmt = select(func.count()).select_from(self.table)
        if filters:
            stmt = stmt.where(and_(*filters))
        result = await self.execute(stmt)
        return result.scalar() or 0

    async def find(self, entity_id: UUID) -> dict[str, Any] | None:
        """Fetch a row by id without any visibility check."""
        return await self.first(select(self.table).where(self.table.c.id == entity_id))

    async def get_by_id(
        self,
        ctx: AccessContext | None,
        entity_id: UUID,
        *,
        writing: bool = False,
    ) -> dict[str, Any]:
        """
        Get a row by id, re-checking the caller's visibility.

        Args:
            ctx: Access context
            entity_id: Row id
            writing: Check the write ownership rule instead of the read rule

        Returns:
            The row

        Raises:
            NotFoundException: If no such row exists
            AccessDeniedException: If the row exists but is outside the caller's scope
        """
        ctx = require_context(ctx)
        predicate = self.scope_predicate(ctx, writing=writing)

        row = await self.find(entity_id)
        if row is None:
            logger.info(
                "entity_not_found",
                kind=self.kind.value,
                entity_id=str(entity_id),
                user_id=str(ctx.user_id),
            )
            raise NotFoundException(f"{self.kind.label} not found")

        if predicate is NO_ROWS:
            self.deny(ctx, reason="no_profile", entity_id=entity_id)
        if predicate is not None:
            visible = await self.first(
                select(self.table.c.id).where(and_(self.table.c.id == entity_id, predicate))
            )
            if visible is None:
                self.deny(ctx, reason="ownership", entity_id=entity_id)

        return row

    async def insert(self, values: dict[str, Any]) -> dict[str, Any]:
        """Insert a row and return it with server defaults applied."""
        row = await self.first(insert(self.table).values(**values).returning(self.table))
        if row is None:
            raise UpstreamFailureException(f"{self.kind.label} was not stored")
        return row

    async def update(
        self,
        current: dict[str, Any],
        values: dict[str, Any],
        *conditions: ColumnElement[bool],
        expected_version: int | None = None,
    ) -> dict[str, Any]:
        """
        Update a previously read row.

        Versioned kinds only apply the change if the row still carries the
        version that was read (or ``expected_version``), and bump it.

        Args:
            current: Row as read by the caller
            values: Columns to change
            conditions: Extra guards the row must still satisfy
            expected_version: Client supplied version overriding the read one

        Returns:
            The updated row

        Raises:
            ConflictException: If the row changed since it was read
        """
        values = dict(values)
        stmt = update(self.table).where(self.table.c.id == current["id"], *conditions)

        if self.policy.versioned:
            version = expected_version if expected_version is not None else current["version"]
            stmt = stmt.where(self.table.c.version == version)
            values["version"] = version + 1
        if "updated_at" in self.table.c:
            values.setdefault("updated_at", func.now())

        row = await self.first(stmt.values(**values).returning(self.table))
        if row is None:
            logger.warning(
                "entity_write_conflict",
                kind=self.kind.value,
                entity_id=str(current["id"]),
                expected_version=expected_version,
            )
            raise ConflictException(f"{self.kind.label} was modified concurrently")
        return row

    async def update_status(
        self,
        ctx: AccessContext | None,
        entity_id: UUID,
        new_status: str,
        extra: dict[str, Any] | None = None,
        expected_version: int | None = None,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """
        Move a row along its lifecycle.

        Args:
            ctx: Access context
            entity_id: Row id
            new_status: Target status
            extra: Additional columns written with the status
            expected_version: Client supplied version

        Returns:
            Tuple of (row before, row after)

        Raises:
            AccessDeniedException: If the role may not set ``new_status`` or does not own the row
            InvalidStateException: If the lifecycle forbids the transition
        """
        ctx = require_context(ctx)
        allowed = self.policy.status_roles.get(ctx.role, frozenset())
        if new_status not in allowed:
            self.deny(ctx, reason=f"status:{new_status}", entity_id=entity_id)

        current = await self.get_by_id(ctx, entity_id, writing=True)
        if not self.policy.allows(current["status"], new_status):
            raise InvalidStateException(
                f"Cannot change {self.kind.label.lower()} from "
                f"'{current['status']}' to '{new_status}'"
            )

        values: dict[str, Any] = {"status": new_status, **(extra or {})}
        stamp = self.policy.status_timestamps.get(new_status)
        if stamp:
            values.setdefault(stamp, func.now())

        updated = await self.update(
            current,
            values,
            self.table.c.status == current["status"],
            expected_version=expected_version,
        )
        logger.info(
            "entity_status_changed",
            kind=self.kind.value,
            entity_id=str(entity_id),
            from_status=current["status"],
            to_status=new_status,
            user_id=str(ctx.user_id),
        )
        return current, updated

    async def linked_patient_ids(self, doctor_id: UUID) -> set[UUID]:
        """Distinct patient ids across a doctor's appointments."""
        stmt = select(appointments.c.patient_id).where(appointments.c.doctor_id == doctor_id).distinct()
        result = await self.execute(stmt)
        return set(result.scalars().all())

    async def ensure_linked_patient(self, ctx: AccessContext, patient_id: UUID) -> None:
        """
        Verify the calling doctor treats ``patient_id``.

        Raises:
            AccessDeniedException: If the doctor has no appointment with the patient
        """
        if ctx.doctor_id is None or patient_id not in await self.linked_patient_ids(ctx.doctor_id):
            self.deny(ctx, reason="unlinked_patient", entity_id=patient_id)
