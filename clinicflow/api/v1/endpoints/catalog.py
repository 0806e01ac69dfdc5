"""Service catalog endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from clinicflow.dependencies import Cache, CurrentContext, DatabaseSession
from clinicflow.schemas.catalog import (
    ServiceCreate,
    ServicePackageCreate,
    ServicePackageResponse,
    ServicePackageUpdate,
    ServiceResponse,
    ServiceUpdate,
)
from clinicflow.services.catalog_service import CatalogService

router = APIRouter()


@router.get(
    "/services",
    response_model=list[ServiceResponse],
    status_code=status.HTTP_200_OK,
    summary="List catalog services",
)
async def list_services(
    ctx: CurrentContext,
    db: DatabaseSession,
    cache: Cache,
    category: str | None = Query(None, max_length=50),
) -> list[ServiceResponse]:
    """
    List catalog services.

    Patients and doctors only see published services.
    """
    rows = await CatalogService(db, cache).list_services(ctx, category=category)
    return [ServiceResponse.model_validate(row) for row in rows]


@router.post(
    "/services",
    response_model=ServiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a catalog service",
)
async def create_service(
    data: ServiceCreate,
    ctx: CurrentContext,
    db: DatabaseSession,
    cache: Cache,
) -> ServiceResponse:
    """Add a service to the catalog (staff/admin)."""
    row = await CatalogService(db, cache).create_service(ctx, data)
    return ServiceResponse.model_validate(row)


@router.patch(
    "/services/{service_id}",
    response_model=ServiceResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a catalog service",
)
async def update_service(
    service_id: UUID,
    data: ServiceUpdate,
    ctx: CurrentContext,
    db: DatabaseSession,
    cache: Cache,
) -> ServiceResponse:
    """Update a catalog service (staff/admin)."""
    row = await CatalogService(db, cache).update_service(ctx, service_id, data)
    return ServiceResponse.model_validate(row)


@router.get(
    "/service-packages",
    response_model=list[ServicePackageResponse],
    status_code=status.HTTP_200_OK,
    summary="List service packages",
)
async def list_packages(
    ctx: CurrentContext,
    db: DatabaseSession,
    cache: Cache,
) -> list[ServicePackageResponse]:
    """List service packages."""
    rows = await CatalogService(db, cache).list_packages(ctx)
    return [ServicePackageResponse.model_validate(row) for row in rows]


@router.post(
    "/service-packages",
    response_model=ServicePackageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a service package",
)
async def create_package(
    data: ServicePackageCreate,
    ctx: CurrentContext,
    db: DatabaseSession,
    cache: Cache,
) -> ServicePackageResponse:
    """Bundle catalog services into a package (staff/admin)."""
    row = await CatalogService(db, cache).create_package(ctx, data)
    return ServicePackageResponse.model_validate(row)


@router.patch(
    "/service-packages/{package_id}",
    response_model=ServicePackageResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a service package",
)
async def update_package(
    package_id: UUID,
    data: ServicePackageUpdate,
    ctx: CurrentContext,
    db: DatabaseSession,
    cache: Cache,
) -> ServicePackageResponse:
    """Update a service package (staff/admin)."""
    row = await CatalogService(db, cache).update_package(ctx, package_id, data)
    return ServicePackageResponse.model_validate(row)
