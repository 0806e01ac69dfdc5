"""Kind-generic entity endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Query, status
from pydantic import BaseModel, Field

from clinicflow.core.policies import EntityKind
from clinicflow.dependencies import CurrentContext, DatabaseSession
from clinicflow.services.data_service import DataService

router = APIRouter()


class StatusChange(BaseModel):
    """Target status for a lifecycle transition."""

    status: str = Field(..., min_length=1, max_length=20)
    expected_version: int | None = Field(None, ge=1)


@router.get("/{kind}", status_code=status.HTTP_200_OK, summary="List visible rows of a kind")
async def list_entities(
    kind: EntityKind,
    ctx: CurrentContext,
    db: DatabaseSession,
    limit: int = Query(100, ge=1, le=500),
) -> list[dict[str, Any]]:
    """List rows of ``kind`` filtered to what the caller may see."""
    return await DataService(db).list(ctx, kind, limit=limit)


@router.get("/{kind}/{entity_id}", status_code=status.HTTP_200_OK, summary="Get a row of a kind")
async def get_entity(
    kind: EntityKind,
    entity_id: UUID,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> dict[str, Any]:
    """Get one row; 404 when missing, 403 when outside the caller's scope."""
    return await DataService(db).get_by_id(ctx, kind, entity_id)


@router.post("/{kind}", status_code=status.HTTP_201_CREATED, summary="Create a row of a kind")
async def create_entity(
    kind: EntityKind,
    ctx: CurrentContext,
    db: DatabaseSession,
    payload: dict[str, Any] = Body(...),
) -> dict[str, Any]:
    """Create a row through the kind's domain rules."""
    return await DataService(db).create(ctx, kind, payload)


@router.patch(
    "/{kind}/{entity_id}/status",
    status_code=status.HTTP_200_OK,
    summary="Change the status of a row",
)
async def update_entity_status(
    kind: EntityKind,
    entity_id: UUID,
    data: StatusChange,
    ctx: CurrentContext,
    db: DatabaseSession,
) -> dict[str, Any]:
    """Move a row along its lifecycle."""
    return await DataService(db).update_status(
        ctx, kind, entity_id, data.status, expected_version=data.expected_version
    )
