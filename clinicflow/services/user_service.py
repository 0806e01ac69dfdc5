"""User and role profile management."""

from functools import partial
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.core.access import AccessContext
from clinicflow.core.exceptions import (
    AccessDeniedException,
    NotFoundException,
    ValidationException,
)
from clinicflow.core.policies import EntityKind
from clinicflow.core.security import get_password_hash
from clinicflow.core.transactions import apply_effects
from clinicflow.models import users
from clinicflow.schemas.users import (
    DoctorUpdate,
    PatientProfileData,
    PatientUpdate,
    Role,
    StaffUpdate,
    UserCreate,
)
from clinicflow.services.auth_service import email_taken
from clinicflow.services.repository import EntityRepository, require_context

logger = structlog.get_logger(__name__)

# Fields a doctor may change on their own profile
DOCTOR_SELF_FIELDS = frozenset({"availability_status", "bio"})


class UserService:
    """Service for user accounts and their role profiles."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.patients = EntityRepository(db, EntityKind.PATIENTS)
        self.doctors = EntityRepository(db, EntityKind.DOCTORS)
        self.staff = EntityRepository(db, EntityKind.STAFF)

    async def create_user(self, ctx: AccessContext | None, data: UserCreate) -> dict[str, Any]:
        """
        Create an account together with its role profile.

        Staff and admins create patients and doctors; only admins create
        staff. Admin accounts are never created through this path.

        Args:
            ctx: Access context
            data: Account and profile payload

        Returns:
            Created user

        Raises:
            AccessDeniedException: If the caller may not create this role
            ValidationException: If the profile is missing or the email is taken
        """
        ctx = require_context(ctx)
        if (
            not ctx.is_staff_or_admin
            or data.role == Role.ADMIN
            or (data.role == Role.STAFF and ctx.role != Role.ADMIN)
        ):
            logger.warning(
                "entity_access_denied",
                kind="users",
                user_id=str(ctx.user_id),
                role=ctx.role.value,
                reason=f"create:{data.role.value}",
            )
            raise AccessDeniedException(f"Cannot create {data.role.value} accounts")

        if await email_taken(self.db, data.email):
            raise ValidationException("Email already registered")

        user_id = uuid4()
        if data.role == Role.PATIENT:
            profile = data.patient_profile or PatientProfileData()
            repo = self.patients
        elif data.role == Role.DOCTOR:
            if data.doctor_profile is None:
                raise ValidationException("Doctor profile is required")
            profile = data.doctor_profile
            repo = self.doctors
        else:
            if data.staff_profile is None:
                raise ValidationException("Staff profile is required")
            profile = data.staff_profile
            repo = self.staff

        async def _insert_user() -> dict[str, Any]:
            result = await self.db.execute(
                users.insert()
                .values(
                    id=user_id,
                    email=data.email.lower(),
                    password_hash=get_password_hash(data.password),
                    full_name=data.full_name,
                    phone=data.phone,
                    role=data.role.value,
                )
                .returning(users)
            )
            return dict(result.mappings().one())

        user, _ = await apply_effects(
            self.db,
            [_insert_user, partial(repo.insert, {"user_id": user_id, **profile.model_dump()})],
        )
        logger.info("user_created", user_id=str(user_id), role=data.role.value, by=str(ctx.user_id))
        return user

    async def get_user(self, ctx: AccessContext | None, user_id: UUID) -> dict[str, Any]:
        """Get an account; callers see themselves, staff and admins see anyone."""
        ctx = require_context(ctx)
        if not ctx.is_staff_or_admin and user_id != ctx.user_id:
            raise AccessDeniedException("Access denied to user")

        result = await self.db.execute(select(users).where(users.c.id == user_id))
        user = result.mappings().first()
        if not user:
            raise NotFoundException("User not found")
        return dict(user)

    async def list_users(
        self,
        ctx: AccessContext | None,
        role: Role | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """List accounts, optionally by role. Staff and admins only."""
        ctx = require_context(ctx)
        if not ctx.is_staff_or_admin:
            raise AccessDeniedException("Access denied to users")

        stmt = select(users).order_by(users.c.created_at.desc()).limit(limit)
        if role:
            stmt = stmt.where(users.c.role == role.value)
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def update_patient_profile(
        self,
        ctx: AccessContext | None,
        patient_id: UUID,
        data: PatientUpdate,
    ) -> dict[str, Any]:
        """
        Update a patient profile.

        Patients update their own profile; staff and admins any; doctors never.
        """
        current = await self.patients.get_by_id(ctx, patient_id, writing=True)
        values = data.model_dump(exclude_unset=True)
        if not values:
            return current

        (updated,) = await apply_effects(self.db, [partial(self.patients.update, current, values)])
        return updated

    async def update_doctor_profile(
        self,
        ctx: AccessContext | None,
        doctor_id: UUID,
        data: DoctorUpdate,
    ) -> dict[str, Any]:
        """
        Update a doctor profile.

        Staff and admins may change any field; a doctor may only change the
        availability status and bio of their own profile.
        """
        ctx = require_context(ctx)
        current = await self.doctors.get_by_id(ctx, doctor_id, writing=True)
        values = data.model_dump(exclude_unset=True)

        if ctx.role == Role.DOCTOR and set(values) - DOCTOR_SELF_FIELDS:
            self.doctors.deny(ctx, reason="restricted_fields", entity_id=doctor_id)
        if not values:
            return current

        (updated,) = await apply_effects(self.db, [partial(self.doctors.update, current, values)])
        return updated

    async def update_staff_profile(
        self,
        ctx: AccessContext | None,
        staff_id: UUID,
        data: StaffUpdate,
    ) -> dict[str, Any]:
        """Update a staff profile. Admin only."""
        current = await self.staff.get_by_id(ctx, staff_id, writing=True)
        values = data.model_dump(exclude_unset=True)
        if not values:
            return current

        (updated,) = await apply_effects(self.db, [partial(self.staff.update, current, values)])
        return updated

    async def delete_user(self, ctx: AccessContext | None, user_id: UUID) -> None:
        """
        Delete an account and, by cascade, its profile. Admin only.

        Raises:
            AccessDeniedException: If the caller is not an admin or the target is an admin
            NotFoundException: If the user does not exist
        """
        ctx = require_context(ctx)
        if ctx.role != Role.ADMIN:
            raise AccessDeniedException("Only admins can delete users")

        result = await self.db.execute(select(users.c.role).where(users.c.id == user_id))
        role = result.scalar_one_or_none()
        if role is None:
            raise NotFoundException("User not found")
        if role == Role.ADMIN.value:
            raise AccessDeniedException("Admin accounts cannot be deleted")

        async def _delete() -> None:
            await self.db.execute(delete(users).where(users.c.id == user_id))

        await apply_effects(self.db, [_delete])
        logger.info("user_deleted", user_id=str(user_id), by=str(ctx.user_id))
