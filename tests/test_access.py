"""Tests for access context resolution."""

from uuid import uuid4

import pytest

from clinicflow.core.exceptions import AccessDeniedException, NotFoundException
from clinicflow.core.policies import EntityKind
from clinicflow.schemas.users import Role
from clinicflow.services.access_service import AccessService
from clinicflow.services.repository import EntityRepository, require_context
from tests.conftest import add_appointment, add_user


@pytest.mark.asyncio
async def test_resolve_patient_context(db_session, clinic) -> None:
    """A patient context carries the patient profile id only."""
    ctx = await AccessService(db_session).resolve_access_context(clinic.patient.user_id)

    assert ctx.role == Role.PATIENT
    assert ctx.patient_id == clinic.patient.patient_id
    assert ctx.doctor_id is None
    assert ctx.staff_id is None
    assert ctx.profile_id == clinic.patient.patient_id


@pytest.mark.asyncio
async def test_resolve_doctor_and_staff_contexts(db_session, clinic) -> None:
    """Doctor and staff contexts carry their own profile ids."""
    service = AccessService(db_session)

    doctor_ctx = await service.resolve_access_context(clinic.doctor.user_id)
    staff_ctx = await service.resolve_access_context(clinic.staff.user_id)

    assert doctor_ctx.doctor_id == clinic.doctor.doctor_id
    assert doctor_ctx.patient_id is None
    assert staff_ctx.staff_id == clinic.staff.staff_id
    assert staff_ctx.is_staff_or_admin


@pytest.mark.asyncio
async def test_resolve_admin_context(db_session, clinic) -> None:
    """Admins resolve with clinic-wide visibility."""
    ctx = await AccessService(db_session).resolve_access_context(clinic.admin.user_id)

    assert ctx.role == Role.ADMIN
    assert ctx.is_staff_or_admin
    assert ctx.staff_id == clinic.admin.staff_id


@pytest.mark.asyncio
async def test_resolve_unknown_principal(db_session) -> None:
    """An unknown principal is NotFound."""
    with pytest.raises(NotFoundException):
        await AccessService(db_session).resolve_access_context(uuid4())


@pytest.mark.asyncio
async def test_missing_profile_sees_no_rows(db_session, clinic) -> None:
    """A doctor without a profile resolves, then sees nothing instead of failing."""
    await add_appointment(db_session, clinic.patient, clinic.doctor)
    orphan = await add_user(db_session, Role.DOCTOR, with_profile=False)

    ctx = await AccessService(db_session).resolve_access_context(orphan.user_id)
    assert ctx.role == Role.DOCTOR
    assert ctx.doctor_id is None

    repo = EntityRepository(db_session, EntityKind.APPOINTMENTS)
    assert await repo.list(ctx) == []
    assert await repo.count(ctx) == 0


@pytest.mark.asyncio
async def test_inactive_account_rejected_when_required(db_session) -> None:
    """Deactivated accounts are refused only when activity is required."""
    inactive = await add_user(db_session, Role.PATIENT, is_active=False)
    service = AccessService(db_session)

    ctx = await service.resolve_access_context(inactive.user_id)
    assert ctx.patient_id == inactive.patient_id

    with pytest.raises(AccessDeniedException):
        await service.resolve_access_context(inactive.user_id, require_active=True)


@pytest.mark.asyncio
async def test_operations_without_context_are_denied(db_session) -> None:
    """Repository calls with no resolved context fail AccessDenied, not crash."""
    with pytest.raises(AccessDeniedException):
        require_context(None)

    repo = EntityRepository(db_session, EntityKind.APPOINTMENTS)
    with pytest.raises(AccessDeniedException):
        await repo.list(None)
    with pytest.raises(AccessDeniedException):
        await repo.get_by_id(None, uuid4())
