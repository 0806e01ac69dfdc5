"""Resolution of an authenticated principal into an access context."""

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.core.access import AccessContext
from clinicflow.core.exceptions import AccessDeniedException, NotFoundException
from clinicflow.models import doctors, patients, staff, users
from clinicflow.schemas.users import Role

logger = structlog.get_logger(__name__)

_PROFILE_TABLES = {
    Role.PATIENT: (patients, "patient_id"),
    Role.DOCTOR: (doctors, "doctor_id"),
    Role.STAFF: (staff, "staff_id"),
    Role.ADMIN: (staff, "staff_id"),
}


class AccessService:
    """Service turning a principal id into an :class:`AccessContext`."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def resolve_access_context(
        self,
        principal_id: UUID,
        *,
        require_active: bool = False,
    ) -> AccessContext:
        """
        Resolve the role and profile id of a principal.

        A missing role profile is not an error; the returned context simply
        has no profile id and sees no role-scoped rows.

        Args:
            principal_id: Authenticated user id
            require_active: Reject deactivated accounts

        Returns:
            Access context of the principal

        Raises:
            NotFoundException: If the user does not exist
            AccessDeniedException: If the account is deactivated and ``require_active`` is set
        """
        result = await self.db.execute(select(users).where(users.c.id == principal_id))
        user = result.mappings().first()

        if not user:
            logger.info("principal_not_found", user_id=str(principal_id))
            raise NotFoundException("User not found")

        if require_active and not user["is_active"]:
            logger.warning("inactive_principal", user_id=str(principal_id))
            raise AccessDeniedException("User account is deactivated")

        role = Role(user["role"])
        profile: dict[str, UUID] = {}

        if role in _PROFILE_TABLES:
            table, field = _PROFILE_TABLES[role]
            result = await self.db.execute(select(table.c.id).where(table.c.user_id == principal_id))
            profile_id = result.scalar_one_or_none()
            if profile_id is None:
                logger.warning("profile_missing", user_id=str(principal_id), role=role.value)
            else:
                profile[field] = profile_id

        return AccessContext(user_id=principal_id, role=role, **profile)
