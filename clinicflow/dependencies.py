"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinicflow.core.access import AccessContext
from clinicflow.core.exceptions import NotFoundException
from clinicflow.core.redis_client import CacheManager, get_redis_client
from clinicflow.core.security import decode_access_token
from clinicflow.database import get_db, get_session_factory
from clinicflow.services.access_service import AccessService
from clinicflow.services.video_provider import VideoProviderClient, get_video_provider

# Security
security = HTTPBearer()


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        User ID from token

    Raises:
        HTTPException: If token is invalid or expired
    """
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise _credentials_error()
    return user_id


async def get_access_context(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccessContext:
    """
    Resolve the access context of the authenticated principal.

    Args:
        user_id: User ID from JWT token
        db: Database session

    Returns:
        Access context

    Raises:
        HTTPException: 401 if the principal no longer exists
        AccessDeniedException: If the account is deactivated
    """
    try:
        return await AccessService(db).resolve_access_context(user_id, require_active=True)
    except NotFoundException:
        raise _credentials_error("User not found")


def get_cache_manager() -> CacheManager | None:
    """Cache manager backed by the shared Redis client."""
    return CacheManager(get_redis_client())


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
CurrentContext = Annotated[AccessContext, Depends(get_access_context)]
Cache = Annotated[CacheManager | None, Depends(get_cache_manager)]
VideoProvider = Annotated[VideoProviderClient | None, Depends(get_video_provider)]
