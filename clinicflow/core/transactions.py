"""Transaction boundary for multi-step writes."""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.core.exceptions import UpstreamFailureException, ValidationException

logger = structlog.get_logger(__name__)

Effect = Callable[[], Awaitable[Any]]


async def apply_effects(db: AsyncSession, effects: Sequence[Effect]) -> list[Any]:
    """
    Run effects in order and commit them as one unit.

    Any failure rolls back every effect already applied in this call.

    Args:
        db: Database session
        effects: Zero-argument coroutine factories, applied in order

    Returns:
        The result of each effect, in order

    Raises:
        UpstreamFailureException: If the commit itself fails
    """
    results: list[Any] = []
    try:
        for effect in effects:
            results.append(await effect())
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("integrity_violation", error=str(e.orig))
        raise ValidationException("Data violates a database constraint") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("upstream_failure", error=str(e))
        raise UpstreamFailureException("Database operation failed") from e
    except Exception:
        await db.rollback()
        raise
    return results
