"""Clinical data: medical records, prescriptions, lab tests and health metrics."""

from datetime import UTC, date, datetime
from functools import partial
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.core.access import AccessContext
from clinicflow.core.exceptions import NotFoundException, ValidationException
from clinicflow.core.policies import EntityKind
from clinicflow.core.transactions import apply_effects
from clinicflow.schemas.clinical import (
    HealthMetricCreate,
    LabTestOrder,
    LabTestResult,
    LabTestStatus,
    MedicalRecordCreate,
    PrescriptionCreate,
)
from clinicflow.schemas.users import Role
from clinicflow.services.notification_service import NotificationService
from clinicflow.services.repository import EntityRepository, require_context

logger = structlog.get_logger(__name__)


class ClinicalService:
    """Service for doctor-authored clinical data."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.records = EntityRepository(db, EntityKind.MEDICAL_RECORDS)
        self.prescriptions = EntityRepository(db, EntityKind.PRESCRIPTIONS)
        self.lab_tests = EntityRepository(db, EntityKind.LAB_TESTS)
        self.metrics = EntityRepository(db, EntityKind.HEALTH_METRICS)
        self.appointments = EntityRepository(db, EntityKind.APPOINTMENTS)
        self.notifications = NotificationService(db)

    async def _require_treating_doctor(
        self,
        repo: EntityRepository,
        ctx: AccessContext,
        patient_id: UUID,
        appointment_id: UUID | None,
    ) -> None:
        """Only a doctor linked to the patient by an appointment may author data."""
        if ctx.role != Role.DOCTOR or ctx.doctor_id is None:
            repo.deny(ctx, reason="create")
        await repo.ensure_linked_patient(ctx, patient_id)

        if appointment_id is not None:
            appointment = await self.appointments.find(appointment_id)
            if appointment is None:
                raise NotFoundException("Appointment not found")
            if appointment["doctor_id"] != ctx.doctor_id or appointment["patient_id"] != patient_id:
                raise ValidationException("Appointment does not match this doctor and patient")

    async def create_medical_record(
        self,
        ctx: AccessContext | None,
        data: MedicalRecordCreate,
    ) -> dict[str, Any]:
        """
        Create a medical record for a patient the doctor treats.

        Args:
            ctx: Access context
            data: Record payload

        Returns:
            Created medical record

        Raises:
            AccessDeniedException: If the caller is not a doctor linked to the patient
        """
        ctx = require_context(ctx)
        await self._require_treating_doctor(self.records, ctx, data.patient_id, data.appointment_id)

        values = {**data.model_dump(), "doctor_id": ctx.doctor_id}
        (created,) = await apply_effects(self.db, [partial(self.records.insert, values)])
        logger.info(
            "medical_record_created",
            record_id=str(created["id"]),
            patient_id=str(data.patient_id),
            doctor_id=str(ctx.doctor_id),
        )
        return created

    async def create_prescription(
        self,
        ctx: AccessContext | None,
        data: PrescriptionCreate,
    ) -> dict[str, Any]:
        """
        Add a prescription to one of the calling doctor's medical records.

        Raises:
            NotFoundException: If the medical record does not exist
            AccessDeniedException: If the record belongs to another doctor
        """
        ctx = require_context(ctx)
        if ctx.role != Role.DOCTOR:
            self.prescriptions.deny(ctx, reason="create")

        record = await self.records.get_by_id(ctx, data.medical_record_id)
        (created,) = await apply_effects(
            self.db, [partial(self.prescriptions.insert, data.model_dump())]
        )

        await self.notifications.emit(
            "New prescription",
            f"{data.medication_name} has been prescribed for you.",
            patient_ids=[record["patient_id"]],
            type="prescription",
        )
        return created

    async def order_lab_test(self, ctx: AccessContext | None, data: LabTestOrder) -> dict[str, Any]:
        """
        Order a lab test for a patient the doctor treats, then notify the patient.

        Raises:
            AccessDeniedException: If the caller is not a doctor linked to the patient
        """
        ctx = require_context(ctx)
        await self._require_treating_doctor(self.lab_tests, ctx, data.patient_id, data.appointment_id)

        values = {
            **data.model_dump(),
            "doctor_id": ctx.doctor_id,
            "status": LabTestStatus.ORDERED.value,
        }
        (created,) = await apply_effects(self.db, [partial(self.lab_tests.insert, values)])
        logger.info("lab_test_ordered", test_id=str(created["id"]), patient_id=str(data.patient_id))

        await self.notifications.emit(
            "Lab test ordered",
            f"Your doctor ordered a {data.test_name} test.",
            patient_ids=[data.patient_id],
            type="lab_test",
            priority="high" if data.priority != "routine" else "medium",
            related_test_id=created["id"],
        )
        return created

    async def record_lab_result(
        self,
        ctx: AccessContext | None,
        test_id: UUID,
        data: LabTestResult,
    ) -> dict[str, Any]:
        """
        Record the result of an ordered lab test (staff/admin).

        Moves the test from ``ordered`` to ``completed`` and notifies the
        ordering doctor and the patient.

        Raises:
            AccessDeniedException: If the caller is not staff or admin
            InvalidStateException: If the test is already completed
        """
        ctx = require_context(ctx)
        extra = {
            "result": data.result,
            "abnormal_findings": data.abnormal_findings,
            "staff_id": ctx.staff_id,
            "completed_at": datetime.now(UTC),
        }

        async def _complete() -> dict[str, Any]:
            _, updated = await self.lab_tests.update_status(
                ctx, test_id, LabTestStatus.COMPLETED.value, extra
            )
            return updated

        (updated,) = await apply_effects(self.db, [_complete])

        await self.notifications.emit(
            "Lab results available",
            f"Results for {updated['test_name']} are available.",
            patient_ids=[updated["patient_id"]],
            doctor_ids=[updated["doctor_id"]],
            type="lab_result",
            priority="high" if data.abnormal_findings else "medium",
            related_test_id=test_id,
        )
        return updated

    async def add_health_metric(
        self,
        ctx: AccessContext | None,
        data: HealthMetricCreate,
    ) -> dict[str, Any]:
        """
        Record a health metric.

        Patients record for themselves; doctors for a patient they treat.

        Raises:
            AccessDeniedException: If the caller may not record for the patient
            ValidationException: If a doctor omits the patient
        """
        ctx = require_context(ctx)
        if ctx.role == Role.PATIENT:
            if ctx.patient_id is None or (data.patient_id and data.patient_id != ctx.patient_id):
                self.metrics.deny(ctx, reason="foreign_patient", entity_id=data.patient_id)
            patient_id = ctx.patient_id
        elif ctx.role == Role.DOCTOR:
            if data.patient_id is None:
                raise ValidationException("patient_id is required")
            await self.metrics.ensure_linked_patient(ctx, data.patient_id)
            patient_id = data.patient_id
        else:
            self.metrics.deny(ctx, reason="create")

        values = {
            **data.model_dump(exclude={"patient_id", "recorded_date"}),
            "patient_id": patient_id,
            "recorded_date": data.recorded_date or date.today(),
            "recorded_by": ctx.role.value,
        }
        (created,) = await apply_effects(self.db, [partial(self.metrics.insert, values)])
        return created

