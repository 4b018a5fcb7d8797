"""
Create the DCA agent's database tables.

Usage:
    python -m scripts.init_db

Requires DATABASE_URL in .env (PostgreSQL or sqlite+aiosqlite).
"""
import asyncio
from shared.database import engine
from shared.models.base import Base
import agents.dca.models.db  # noqa: F401  registers the tables on Base.metadata


async def init_database():
    if engine is None:
        print("ERROR: DATABASE_URL not configured. Set it in .env")
        return

    print("Connecting to database...")
    async with engine.begin() as conn:
        print("Creating tables...")
        await conn.run_sync(Base.metadata.create_all)
        print(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")

    await engine.dispose()
    print("Database initialization complete.")


if __name__ == "__main__":
    asyncio.run(init_database())
