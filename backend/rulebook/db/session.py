"""Schema Bootstrap — create tables directly, outside Alembic.

Invariants:
    - Meant for tests and local memory-less dev runs; production uses Alembic

Design Decisions:
    - Separate from infrastructure/database.py: this is a convenience for non-FastAPI contexts
"""

from sqlalchemy.ext.asyncio import AsyncEngine

from rulebook.db.base import Base


async def create_schema(engine: AsyncEngine) -> None:
    """Create every table on engine."""
    import rulebook.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
