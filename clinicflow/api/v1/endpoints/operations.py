"""Task and equipment endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from clinicflow.core.policies import EntityKind
from clinicflow.dependencies import CurrentContext, DatabaseSession
from clinicflow.schemas.operations import (
    EquipmentCreate,
    EquipmentResponse,
    EquipmentStatusUpdate,
    TaskCreate,
    TaskResponse,
    TaskStatusUpdate,
)
from clinicflow.services.data_service import DataService
from clinicflow.services.operations_service import OperationsService

router = APIRouter()


@router.post(
    "/tasks",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Assign a task",
)
async def assign_task(data: TaskCreate, ctx: CurrentContext, db: DatabaseSession) -> TaskResponse:
    """Assign a task to a user (staff/admin); the assignee is notified."""
    row = await OperationsService(db).assign_task(ctx, data)
    return TaskResponse.model_validate(row)


@router.get(
    "/tasks",
    response_model=list[TaskResponse],
    status_code=status.HTTP_200_OK,
    summary="List tasks",
)
async def list_tasks(
    ctx: CurrentContext,
    db: DatabaseSession,
    limit: int = Query(50, ge=1, le=200),
) -> list[TaskResponse]:
    """List tasks assigned to or created by the caller; all tasks for staff."""
    rows = await DataService(db).list(ctx, EntityKind.TASKS, limit=limit)
    return [TaskResponse.model_validate(row) for row in rows]


@router.patch(
    "/tasks/{task_id}/status",
    response_model=TaskResponse,
    status_code=status.HTTP_200_OK,
    summary="Change task status",
)
async def update_task_status(
    task_id: UUID,
    data: TaskStatusUpdate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> TaskResponse:
    """Start or complete a task."""
    row = await OperationsService(db).update_task_status(ctx, task_id, data.status)
    return TaskResponse.model_validate(row)


@router.post(
    "/equipment",
    response_model=EquipmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register equipment",
)
async def register_equipment(
    data: EquipmentCreate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> EquipmentResponse:
    """Register a piece of equipment (staff/admin)."""
    row = await OperationsService(db).register_equipment(ctx, data)
    return EquipmentResponse.model_validate(row)


@router.get(
    "/equipment",
    response_model=list[EquipmentResponse],
    status_code=status.HTTP_200_OK,
    summary="List equipment",
)
async def list_equipment(
    ctx: CurrentContext,
    db: DatabaseSession,
    limit: int = Query(100, ge=1, le=500),
) -> list[EquipmentResponse]:
    """List clinic equipment (staff/admin)."""
    rows = await DataService(db).list(ctx, EntityKind.EQUIPMENT, limit=limit)
    return [EquipmentResponse.model_validate(row) for row in rows]


@router.patch(
    "/equipment/{equipment_id}/status",
    response_model=EquipmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Change equipment status",
)
async def update_equipment_status(
    equipment_id: UUID,
    data: EquipmentStatusUpdate,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> EquipmentResponse:
    """
    Change equipment status.

    Sending equipment to maintenance also files a maintenance task.
    """
    row = await OperationsService(db).update_equipment_status(ctx, equipment_id, data)
    return EquipmentResponse.model_validate(row)
