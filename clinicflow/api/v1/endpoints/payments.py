"""Payment endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from clinicflow.core.policies import EntityKind
from clinicflow.dependencies import CurrentContext, DatabaseSession
from clinicflow.schemas.payments import PaymentCreate, PaymentResponse, PaymentStatusUpdate
from clinicflow.services.data_service import DataService
from clinicflow.services.payment_service import PaymentService

router = APIRouter()


@router.post(
    "",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a payment",
)
async def process_payment(
    data: PaymentCreate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> PaymentResponse:
    """Record a settled payment for an appointment (staff/admin)."""
    row = await PaymentService(db).process_payment(ctx, data)
    return PaymentResponse.model_validate(row)


@router.get(
    "",
    response_model=list[PaymentResponse],
    status_code=status.HTTP_200_OK,
    summary="List payments",
)
async def list_payments(
    ctx: CurrentContext,
    db: DatabaseSession,
    limit: int = Query(50, ge=1, le=200),
) -> list[PaymentResponse]:
    """List payments for appointments the caller can see."""
    rows = await DataService(db).list(ctx, EntityKind.PAYMENTS, limit=limit)
    return [PaymentResponse.model_validate(row) for row in rows]


@router.patch(
    "/{payment_id}/status",
    response_model=PaymentResponse,
    status_code=status.HTTP_200_OK,
    summary="Change payment status",
)
async def update_payment_status(
    payment_id: UUID,
    data: PaymentStatusUpdate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> PaymentResponse:
    """Settle, fail, cancel or retry a payment."""
    row = await PaymentService(db).update_status(ctx, payment_id, data)
    return PaymentResponse.model_validate(row)
