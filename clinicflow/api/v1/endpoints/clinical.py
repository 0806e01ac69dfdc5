"""Medical record, prescription, lab test and health metric endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from clinicflow.core.policies import EntityKind
from clinicflow.dependencies import CurrentContext, DatabaseSession
from clinicflow.schemas.clinical import (
    HealthMetricCreate,
    HealthMetricResponse,
    LabTestOrder,
    LabTestResponse,
    LabTestResult,
    MedicalRecordCreate,
    MedicalRecordResponse,
    PrescriptionCreate,
    PrescriptionResponse,
)
from clinicflow.services.clinical_service import ClinicalService
from clinicflow.services.data_service import DataService

router = APIRouter()


@router.post(
    "/medical-records",
    response_model=MedicalRecordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a medical record",
)
async def create_medical_record(
    data: MedicalRecordCreate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> MedicalRecordResponse:
    """Create a record for a patient the calling doctor treats."""
    row = await ClinicalService(db).create_medical_record(ctx, data)
    return MedicalRecordResponse.model_validate(row)


@router.get(
    "/medical-records",
    response_model=list[MedicalRecordResponse],
    status_code=status.HTTP_200_OK,
    summary="List medical records",
)
async def list_medical_records(
    ctx: CurrentContext,
    db: DatabaseSession,
    limit: int = Query(50, ge=1, le=200),
) -> list[MedicalRecordResponse]:
    """List medical records visible to the caller."""
    rows = await DataService(db).list(ctx, EntityKind.MEDICAL_RECORDS, limit=limit)
    return [MedicalRecordResponse.model_validate(row) for row in rows]


@router.post(
    "/prescriptions",
    response_model=PrescriptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Prescribe medication",
)
async def create_prescription(
    data: PrescriptionCreate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> PrescriptionResponse:
    """Attach a prescription to one of the calling doctor's records."""
    row = await ClinicalService(db).create_prescription(ctx, data)
    return PrescriptionResponse.model_validate(row)


@router.get(
    "/prescriptions",
    response_model=list[PrescriptionResponse],
    status_code=status.HTTP_200_OK,
    summary="List prescriptions",
)
async def list_prescriptions(
    ctx: CurrentContext,
    db: DatabaseSession,
    limit: int = Query(50, ge=1, le=200),
) -> list[PrescriptionResponse]:
    """List prescriptions reachable through the caller's medical records."""
    rows = await DataService(db).list(ctx, EntityKind.PRESCRIPTIONS, limit=limit)
    return [PrescriptionResponse.model_validate(row) for row in rows]


@router.post(
    "/lab-tests",
    response_model=LabTestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Order a lab test",
)
async def order_lab_test(
    data: LabTestOrder,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> LabTestResponse:
    """Order a lab test for a patient the calling doctor treats."""
    row = await ClinicalService(db).order_lab_test(ctx, data)
    return LabTestResponse.model_validate(row)


@router.get(
    "/lab-tests",
    response_model=list[LabTestResponse],
    status_code=status.HTTP_200_OK,
    summary="List lab tests",
)
async def list_lab_tests(
    ctx: CurrentContext,
    db: DatabaseSession,
    limit: int = Query(50, ge=1, le=200),
) -> list[LabTestResponse]:
    """List lab tests visible to the caller."""
    rows = await DataService(db).list(ctx, EntityKind.LAB_TESTS, limit=limit)
    return [LabTestResponse.model_validate(row) for row in rows]


@router.patch(
    "/lab-tests/{test_id}/result",
    response_model=LabTestResponse,
    status_code=status.HTTP_200_OK,
    summary="Record a lab result",
)
async def record_lab_result(
    test_id: UUID,
    data: LabTestResult,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> LabTestResponse:
    """
    Record the result of an ordered test (staff/admin).

    The test moves to ``completed`` and both the patient and the ordering
    doctor are notified.
    """
    row = await ClinicalService(db).record_lab_result(ctx, test_id, data)
    return LabTestResponse.model_validate(row)


@router.post(
    "/health-metrics",
    response_model=HealthMetricResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a health metric",
)
async def add_health_metric(
    data: HealthMetricCreate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> HealthMetricResponse:
    """Record a vital sign for yourself, or for a patient you treat."""
    row = await ClinicalService(db).add_health_metric(ctx, data)
    return HealthMetricResponse.model_validate(row)


@router.get(
    "/health-metrics",
    response_model=list[HealthMetricResponse],
    status_code=status.HTTP_200_OK,
    summary="List health metrics",
)
async def list_health_metrics(
    ctx: CurrentContext,
    db: DatabaseSession,
    limit: int = Query(50, ge=1, le=200),
) -> list[HealthMetricResponse]:
    """List health metrics visible to the caller."""
    rows = await DataService(db).list(ctx, EntityKind.HEALTH_METRICS, limit=limit)
    return [HealthMetricResponse.model_validate(row) for row in rows]
