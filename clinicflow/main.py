"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from clinicflow.api.v1.router import api_router
from clinicflow.config import settings
from clinicflow.core.exceptions import AppException
from clinicflow.core.redis_client import check_redis_connection, close_redis_connection
from clinicflow.database import check_database_connection, engine
from clinicflow.middleware.error_handler import (
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from clinicflow.middleware.logging import LoggingMiddleware, configure_logging

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Report backing-service state on startup; release pools on shutdown.

    Neither check is fatal. Without the database every request fails with
    a 502; without Redis the catalog is read uncached.
    """
    database_ok = await check_database_connection()
    redis_ok = await check_redis_connection()
    log = logger.info if database_ok else logger.error
    log(
        "application_startup",
        environment=settings.environment,
        database=database_ok,
        catalog_cache=redis_ok,
        video_provider=settings.video_provider_enabled,
    )

    yield

    await engine.dispose()
    close_redis_connection()
    logger.info("application_shutdown")


def create_app() -> FastAPI:
    """Build the application with middleware, error handlers and routes."""
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Role-scoped clinic data service: appointments, clinical records, "
        "billing, operations and video consultations",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(LoggingMiddleware)

    application.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    application.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    application.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    application.add_exception_handler(Exception, general_exception_handler)

    application.include_router(api_router, prefix=settings.api_v1_prefix)

    # Request counts and latencies per route template
    Instrumentator(
        should_group_status_codes=False,
        excluded_handlers=["/docs", "/redoc", "/openapi.json", "/metrics"],
    ).instrument(application).expose(application, endpoint="/metrics", include_in_schema=False)

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "clinicflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
