"""Service catalog with Redis read-through caching."""

from functools import partial
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.config import settings
from clinicflow.core.access import AccessContext
from clinicflow.core.policies import EntityKind
from clinicflow.core.redis_client import CacheManager
from clinicflow.core.transactions import apply_effects
from clinicflow.models import services
from clinicflow.schemas.catalog import (
    ServiceCreate,
    ServicePackageCreate,
    ServicePackageUpdate,
    ServiceUpdate,
)
from clinicflow.services.repository import EntityRepository, require_context

logger = structlog.get_logger(__name__)


class CatalogService:
    """Service for clinic services and service packages."""

    CATALOG_CACHE_TTL = settings.catalog_cache_ttl

    def __init__(self, db: AsyncSession, cache_manager: CacheManager | None = None):
        """Initialize service with database session and optional cache manager."""
        self.db = db
        self.cache = cache_manager
        self.services = EntityRepository(db, EntityKind.SERVICES)
        self.packages = EntityRepository(db, EntityKind.SERVICE_PACKAGES)

    @staticmethod
    def _cache_key(kind: str, ctx: AccessContext, category: str | None = None) -> str:
        """Generate cache key; staff/admin listings include unpublished rows."""
        audience = "all" if ctx.is_staff_or_admin else "published"
        return f"catalog:{kind}:{audience}:{category or '*'}"

    def _invalidate(self) -> None:
        if self.cache:
            deleted = self.cache.delete_pattern("catalog:*")
            logger.debug("catalog_cache_invalidated", keys=deleted)

    async def _cached(self, key: str, fetch: Any) -> list[dict[str, Any]]:
        if self.cache:
            cached = self.cache.get_json(key)
            if cached is not None:
                return cached

        rows = await fetch()
        if self.cache:
            self.cache.set_json(key, rows, ttl=self.CATALOG_CACHE_TTL)
        return rows

    async def list_services(
        self,
        ctx: AccessContext | None,
        category: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        List catalog services visible to the caller.

        Patients and doctors only see available services.

        Args:
            ctx: Access context
            category: Optional category filter

        Returns:
            Services ordered by display order
        """
        ctx = require_context(ctx)
        conditions = [services.c.category == category] if category else []
        return await self._cached(
            self._cache_key("services", ctx, category),
            partial(self.services.list, ctx, *conditions),
        )

    async def list_packages(self, ctx: AccessContext | None) -> list[dict[str, Any]]:
        """List service packages visible to the caller."""
        ctx = require_context(ctx)
        return await self._cached(
            self._cache_key("packages", ctx),
            partial(self.packages.list, ctx),
        )

    def _require_manager(self, repo: EntityRepository, ctx: AccessContext | None) -> AccessContext:
        ctx = require_context(ctx)
        if not ctx.is_staff_or_admin:
            repo.deny(ctx, reason="manage_catalog")
        return ctx

    async def create_service(self, ctx: AccessContext | None, data: ServiceCreate) -> dict[str, Any]:
        """Add a service to the catalog (staff/admin)."""
        self._require_manager(self.services, ctx)
        (created,) = await apply_effects(self.db, [partial(self.services.insert, data.model_dump())])
        self._invalidate()
        return created

    async def update_service(
        self,
        ctx: AccessContext | None,
        service_id: UUID,
        data: ServiceUpdate,
    ) -> dict[str, Any]:
        """Update a catalog service (staff/admin)."""
        ctx = self._require_manager(self.services, ctx)
        current = await self.services.get_by_id(ctx, service_id)
        values = data.model_dump(exclude_unset=True)
        if not values:
            return current

        (updated,) = await apply_effects(self.db, [partial(self.services.update, current, values)])
        self._invalidate()
        return updated

    async def create_package(
        self,
        ctx: AccessContext | None,
        data: ServicePackageCreate,
    ) -> dict[str, Any]:
        """Create a service package (staff/admin)."""
        self._require_manager(self.packages, ctx)
        values = data.model_dump(mode="json", include={"service_ids"}) | data.model_dump(
            exclude={"service_ids"}
        )
        (created,) = await apply_effects(self.db, [partial(self.packages.insert, values)])
        self._invalidate()
        return created

    async def update_package(
        self,
        ctx: AccessContext | None,
        package_id: UUID,
        data: ServicePackageUpdate,
    ) -> dict[str, Any]:
        """Update a service package (staff/admin)."""
        ctx = self._require_manager(self.packages, ctx)
        current = await self.packages.get_by_id(ctx, package_id)
        values = data.model_dump(exclude_unset=True, exclude={"service_ids"})
        if data.service_ids is not None:
            values["service_ids"] = [str(service_id) for service_id in data.service_ids]
        if not values:
            return current

        (updated,) = await apply_effects(self.db, [partial(self.packages.update, current, values)])
        self._invalidate()
        return updated
