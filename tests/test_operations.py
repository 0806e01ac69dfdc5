"""Tests for tasks, equipment and payments."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import insert, select

from clinicflow.core.exceptions import (
    AccessDeniedException,
    InvalidStateException,
    NotFoundException,
    UpstreamFailureException,
)
from clinicflow.models import payments, tasks
from clinicflow.schemas.operations import (
    EquipmentCreate,
    EquipmentStatus,
    EquipmentStatusUpdate,
    TaskCreate,
    TaskStatus,
)
from clinicflow.schemas.payments import PaymentCreate, PaymentStatus, PaymentStatusUpdate
from clinicflow.services.operations_service import OperationsService
from clinicflow.services.payment_service import PaymentService
from tests.conftest import add_appointment


@pytest.mark.asyncio
async def test_assign_task_and_progress(db_session, clinic) -> None:
    """Staff assign, the assignee moves it forward, completed is final."""
    service = OperationsService(db_session)

    with pytest.raises(AccessDeniedException):
        await service.assign_task(clinic.doctor, TaskCreate(assigned_to=clinic.staff.user_id, title="Nope"))

    task = await service.assign_task(
        clinic.staff, TaskCreate(assigned_to=clinic.doctor.user_id, title="Review lab backlog", priority="high")
    )
    assert task["status"] == "pending"
    assert task["created_by"] == clinic.staff.user_id

    with pytest.raises(AccessDeniedException):
        await service.update_task_status(clinic.other_doctor, task["id"], TaskStatus.IN_PROGRESS)

    started = await service.update_task_status(clinic.doctor, task["id"], TaskStatus.IN_PROGRESS)
    assert started["status"] == "in_progress"
    done = await service.update_task_status(clinic.doctor, task["id"], TaskStatus.COMPLETED)
    assert done["completed_at"] is not None

    with pytest.raises(AccessDeniedException):
        await service.update_task_status(clinic.doctor, task["id"], TaskStatus.PENDING)
    with pytest.raises(InvalidStateException):
        await service.update_task_status(clinic.staff, task["id"], TaskStatus.IN_PROGRESS)


@pytest.mark.asyncio
async def test_assign_task_to_unknown_user(db_session, clinic) -> None:
    """The assignee must exist."""
    with pytest.raises(NotFoundException):
        await OperationsService(db_session).assign_task(
            clinic.staff, TaskCreate(assigned_to=clinic.patient.patient_id, title="Ghost")
        )


@pytest.mark.asyncio
async def test_equipment_maintenance_opens_task(db_session, clinic) -> None:
    """Maintenance stamps the date and opens a task in the same transaction."""
    service = OperationsService(db_session)
    item = await service.register_equipment(clinic.staff, EquipmentCreate(name="ECG machine", type="cardiology"))
    assert item["status"] == "available"

    updated = await service.update_equipment_status(
        clinic.staff,
        item["id"],
        EquipmentStatusUpdate(status=EquipmentStatus.MAINTENANCE, notes="Lead cable frayed"),
    )
    assert updated["status"] == "maintenance"
    assert updated["last_maintenance"] is not None

    result = await db_session.execute(select(tasks).where(tasks.c.related_equipment_id == item["id"]))
    task = result.mappings().one()
    assert task["task_type"] == "maintenance"
    assert task["assigned_to"] == clinic.staff.user_id

    with pytest.raises(InvalidStateException):
        await service.update_equipment_status(
            clinic.staff, item["id"], EquipmentStatusUpdate(status=EquipmentStatus.MAINTENANCE)
        )


@pytest.mark.asyncio
async def test_equipment_is_staff_only(db_session, clinic) -> None:
    """Patients and doctors cannot touch equipment."""
    service = OperationsService(db_session)
    item = await service.register_equipment(clinic.admin, EquipmentCreate(name="Autoclave", type="sterilizer"))

    with pytest.raises(AccessDeniedException):
        await service.register_equipment(clinic.patient, EquipmentCreate(name="Scale", type="scale"))
    with pytest.raises(AccessDeniedException):
        await service.update_equipment_status(
            clinic.doctor, item["id"], EquipmentStatusUpdate(status=EquipmentStatus.IN_USE)
        )


@pytest.mark.asyncio
async def test_equipment_maintenance_is_atomic(db_session, clinic) -> None:
    """If the maintenance task cannot be created the status change is undone."""
    service = OperationsService(db_session)
    item = await service.register_equipment(clinic.staff, EquipmentCreate(name="X-ray", type="imaging"))

    with patch.object(
        service.tasks, "insert", AsyncMock(side_effect=UpstreamFailureException("Database operation failed"))
    ):
        with pytest.raises(UpstreamFailureException):
            await service.update_equipment_status(
                clinic.staff, item["id"], EquipmentStatusUpdate(status=EquipmentStatus.MAINTENANCE)
            )

    current = await service.equipment.find(item["id"])
    assert current["status"] == "available"
    assert current["last_maintenance"] is None


@pytest.mark.asyncio
async def test_process_payment_marks_paid_and_notifies(db_session, clinic) -> None:
    """Staff record payments; the patient gets a receipt."""
    appointment = await add_appointment(db_session, clinic.patient, clinic.doctor)
    service = PaymentService(db_session)
    data = PaymentCreate(appointment_id=appointment["id"], amount=Decimal("75.00"), method="card")

    with pytest.raises(AccessDeniedException):
        await service.process_payment(clinic.patient, data)

    payment = await service.process_payment(clinic.staff, data)
    assert payment["status"] == "paid"
    assert payment["patient_id"] == clinic.patient.patient_id
    assert payment["paid_at"] is not None

    inbox = await service.notifications.list_notifications(clinic.patient)
    assert [n["title"] for n in inbox] == ["Payment received"]

    with pytest.raises(InvalidStateException):
        await service.update_status(clinic.staff, payment["id"], PaymentStatusUpdate(status=PaymentStatus.FAILED))


@pytest.mark.asyncio
async def test_failed_payment_can_be_retried(db_session, clinic) -> None:
    """failed -> pending -> paid is a valid retry path."""
    appointment = await add_appointment(db_session, clinic.patient, clinic.doctor)
    result = await db_session.execute(
        insert(payments)
        .values(
            appointment_id=appointment["id"],
            patient_id=clinic.patient.patient_id,
            amount=Decimal("75.00"),
            method="card",
        )
        .returning(payments.c.id)
    )
    payment_id = result.scalar_one()
    await db_session.commit()
    service = PaymentService(db_session)

    failed = await service.update_status(clinic.staff, payment_id, PaymentStatusUpdate(status=PaymentStatus.FAILED))
    assert failed["status"] == "failed"
    assert [n["title"] for n in await service.notifications.list_notifications(clinic.patient)] == [
        "Payment failed"
    ]

    await service.update_status(clinic.staff, payment_id, PaymentStatusUpdate(status=PaymentStatus.PENDING))
    paid = await service.update_status(
        clinic.admin,
        payment_id,
        PaymentStatusUpdate(status=PaymentStatus.PAID, transaction_ref="txn_123"),
    )
    assert paid["status"] == "paid"
    assert paid["transaction_ref"] == "txn_123"
    assert paid["paid_at"] is not None

    with pytest.raises(AccessDeniedException):
        await service.update_status(clinic.doctor, payment_id, PaymentStatusUpdate(status=PaymentStatus.CANCELLED))
