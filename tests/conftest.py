import os
from collections.abc import AsyncGenerator
from datetime import date, time, timedelta
from decimal import Decimal
from types import SimpleNamespace
from typing import Any
from uuid import uuid4

# Settings are read at import time; point them at throw-away backends first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("REDIS_PORT", "6379")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-clinicflow")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from clinicflow.core.access import AccessContext
from clinicflow.core.security import create_access_token, get_password_hash
from clinicflow.database import get_db, get_session_factory
from clinicflow.dependencies import get_cache_manager
from clinicflow.main import app
from clinicflow.models import appointments, doctors, metadata, patients, staff, users
from clinicflow.schemas.users import Role

TEST_PASSWORD = "correct-horse-battery"
# Hashing is slow on purpose; hash once for every seeded account
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh SQLite database per test, shared by every session of the test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'clinic.db'}",
        poolclass=NullPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_cache_manager] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def add_user(
    session: AsyncSession,
    role: Role,
    *,
    email: str | None = None,
    with_profile: bool = True,
    is_active: bool = True,
    supports_video: bool = True,
    consultation_fee: Decimal = Decimal("75.00"),
) -> AccessContext:
    """Insert a user with its role profile and return its access context."""
    user_id = uuid4()
    await session.execute(
        insert(users).values(
            id=user_id,
            email=email or f"{role.value}-{user_id.hex[:8]}@clinic.example.com",
            password_hash=TEST_PASSWORD_HASH,
            full_name=f"Test {role.value.title()}",
            role=role.value,
            is_active=is_active,
        )
    )

    profile: dict[str, Any] = {}
    if with_profile:
        profile_id = uuid4()
        if role == Role.PATIENT:
            await session.execute(insert(patients).values(id=profile_id, user_id=user_id))
            profile["patient_id"] = profile_id
        elif role == Role.DOCTOR:
            await session.execute(
                insert(doctors).values(
                    id=profile_id,
                    user_id=user_id,
                    specialty="General Practice",
                    license_number=f"LIC-{user_id.hex[:12]}",
                    consultation_fee=consultation_fee,
                    supports_video=supports_video,
                )
            )
            profile["doctor_id"] = profile_id
        else:
            await session.execute(
                insert(staff).values(id=profile_id, user_id=user_id, position="Front desk")
            )
            profile["staff_id"] = profile_id

    await session.commit()
    return AccessContext(user_id=user_id, role=role, **profile)


async def add_appointment(
    session: AsyncSession,
    patient: AccessContext,
    doctor: AccessContext,
    *,
    status: str = "pending",
    consultation_type: str = "in-person",
    appointment_date: date | None = None,
    appointment_time: time = time(10, 30),
    fee: Decimal = Decimal("75.00"),
) -> dict[str, Any]:
    """Insert an appointment directly, bypassing booking rules."""
    result = await session.execute(
        insert(appointments)
        .values(
            patient_id=patient.patient_id,
            doctor_id=doctor.doctor_id,
            service_type="Consultation",
            appointment_date=appointment_date or date.today() + timedelta(days=3),
            appointment_time=appointment_time,
            consultation_type=consultation_type,
            fee=fee,
            status=status,
        )
        .returning(appointments)
    )
    row = dict(result.mappings().one())
    await session.commit()
    return row


def auth_headers(ctx: AccessContext) -> dict[str, str]:
    """Bearer headers for the user behind ``ctx``."""
    token = create_access_token(ctx.user_id, role=ctx.role.value, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def clinic(db_session: AsyncSession) -> SimpleNamespace:
    """Two patients, two doctors, a staff member and an admin."""
    return SimpleNamespace(
        patient=await add_user(db_session, Role.PATIENT),
        other_patient=await add_user(db_session, Role.PATIENT),
        doctor=await add_user(db_session, Role.DOCTOR),
        other_doctor=await add_user(db_session, Role.DOCTOR, supports_video=False),
        staff=await add_user(db_session, Role.STAFF),
        admin=await add_user(db_session, Role.ADMIN),
    )


@pytest.fixture
def sample_appointment_data(clinic: SimpleNamespace) -> dict:
    """Booking payload for the first doctor, three days from now."""
    return {
        "doctor_id": str(clinic.doctor.doctor_id),
        "service_type": "General consultation",
        "reason": "Persistent cough",
        "appointment_date": (date.today() + timedelta(days=3)).isoformat(),
        "appointment_time": "09:15:00",
        "consultation_type": "in-person",
        "duration_minutes": 30,
    }
