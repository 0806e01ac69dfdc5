"""Access context carried through every data operation."""

from dataclasses import dataclass
from uuid import UUID

from clinicflow.schemas.users import Role


@dataclass(frozen=True)
class AccessContext:
    """Resolved identity of the caller.

    Built once per request from the authenticated principal. At most one of
    the profile ids is set, matching ``role`` (admins carry a staff profile).
    A profile id of ``None`` means the profile is missing and every
    role-scoped read yields no rows.
    """

    user_id: UUID
    role: Role
    patient_id: UUID | None = None
    doctor_id: UUID | None = None
    staff_id: UUID | None = None

    @property
    def is_staff_or_admin(self) -> bool:
        """Check if the caller has clinic-wide visibility."""
        return self.role in (Role.STAFF, Role.ADMIN)

    @property
    def profile_id(self) -> UUID | None:
        """Profile id matching the caller's role."""
        return {
            Role.PATIENT: self.patient_id,
            Role.DOCTOR: self.doctor_id,
            Role.STAFF: self.staff_id,
            Role.ADMIN: self.staff_id,
        }.get(self.role)
