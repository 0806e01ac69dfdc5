"""API v1 router configuration."""

from fastapi import APIRouter

from clinicflow.api.v1.endpoints import (
    appointments,
    auth,
    catalog,
    clinical,
    dashboards,
    entities,
    health,
    messages,
    notifications,
    operations,
    payments,
    reports,
    users,
    video_calls,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, tags=["Users"])
api_router.include_router(entities.router, prefix="/entities", tags=["Entities"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(clinical.router, tags=["Clinical"])
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])
api_router.include_router(catalog.router, tags=["Catalog"])
api_router.include_router(operations.router, tags=["Operations"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(messages.router, prefix="/messages", tags=["Messaging"])
api_router.include_router(video_calls.router, prefix="/video-calls", tags=["Video Calls"])
api_router.include_router(dashboards.router, prefix="/dashboards", tags=["Dashboards"])
api_router.include_router(reports.router, prefix="/reports", tags=["Reports"])
