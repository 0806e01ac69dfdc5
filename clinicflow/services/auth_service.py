"""Authentication service for signup, login and JWT issuance."""

from datetime import UTC, datetime
from functools import partial
from typing import Any
from uuid import uuid4

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinicflow.config import settings
from clinicflow.core.exceptions import (
    AccessDeniedException,
    UnauthorizedException,
    ValidationException,
)
from clinicflow.core.policies import EntityKind
from clinicflow.core.security import create_access_token, get_password_hash, verify_password
from clinicflow.core.transactions import apply_effects
from clinicflow.models import users
from clinicflow.schemas.auth import LoginRequest, SignupRequest, TokenResponse
from clinicflow.schemas.users import Role
from clinicflow.services.repository import EntityRepository

logger = structlog.get_logger(__name__)


async def email_taken(db: AsyncSession, email: str) -> bool:
    """Check if an account already uses ``email``."""
    result = await db.execute(select(users.c.id).where(users.c.email == email.lower()))
    return result.first() is not None


class AuthService:
    """Authentication service for handling signup, login and tokens."""

    def __init__(self, db: AsyncSession):
        """Initialize auth service with database session."""
        self.db = db

    async def signup(self, data: SignupRequest) -> dict[str, Any]:
        """
        Register a new patient account with its patient profile.

        Args:
            data: Signup payload

        Returns:
            Created user

        Raises:
            ValidationException: If the email is already registered
        """
        if await email_taken(self.db, data.email):
            raise ValidationException("Email already registered")

        user_id = uuid4()

        async def _insert_user() -> dict[str, Any]:
            result = await self.db.execute(
                users.insert()
                .values(
                    id=user_id,
                    email=data.email.lower(),
                    password_hash=get_password_hash(data.password),
                    full_name=data.full_name,
                    phone=data.phone,
                    role=Role.PATIENT.value,
                )
                .returning(users)
            )
            return dict(result.mappings().one())

        patients = EntityRepository(self.db, EntityKind.PATIENTS)
        user, _ = await apply_effects(
            self.db,
            [
                _insert_user,
                partial(patients.insert, {"user_id": user_id, **data.profile.model_dump()}),
            ],
        )
        logger.info("patient_signed_up", user_id=str(user_id))
        return user

    async def login(self, data: LoginRequest) -> TokenResponse:
        """
        Exchange email and password for an access token.

        Args:
            data: Login payload

        Returns:
            Bearer access token

        Raises:
            UnauthorizedException: If the credentials are wrong
            AccessDeniedException: If the account is deactivated
        """
        result = await self.db.execute(select(users).where(users.c.email == data.email.lower()))
        user = result.mappings().first()

        if (
            not user
            or not user["password_hash"]
            or not verify_password(data.password, user["password_hash"])
        ):
            logger.info("login_failed", email=data.email)
            raise UnauthorizedException("Invalid email or password")

        if not user["is_active"]:
            raise AccessDeniedException("User account is deactivated")

        async def _touch() -> None:
            await self.db.execute(
                update(users).where(users.c.id == user["id"]).values(last_login_at=datetime.now(UTC))
            )

        await apply_effects(self.db, [_touch])
        logger.info("login_succeeded", user_id=str(user["id"]), role=user["role"])
        return self.create_token(user)

    @staticmethod
    def create_token(user: dict[str, Any]) -> TokenResponse:
        """Issue an access token for a user row."""
        token = create_access_token(user["id"], role=user["role"])
        return TokenResponse(
            access_token=token,
            expires_in=settings.access_token_expire_minutes * 60,
        )
