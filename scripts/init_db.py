"""Script to create the clinic schema directly from table metadata."""

import asyncio

from sqlalchemy import text

from clinicflow.database import engine
from clinicflow.models import metadata


async def init_db() -> None:
    """Create all tables; use migrations for existing databases."""
    async with engine.begin() as conn:
        if engine.dialect.name == "postgresql":
            await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        await conn.run_sync(metadata.create_all)

        print(f"✓ Created {len(metadata.tables)} tables")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init_db())
