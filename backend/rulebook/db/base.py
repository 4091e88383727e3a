"""SQLAlchemy Declarative Base — shared metadata for the resource and audit tables.

Invariants:
    - All models inherit from Base
    - Every datetime column is timezone-aware; every dict/list column is JSON
    - Constraint and index names follow NAMING_CONVENTION (Alembic diffs stay stable)

Design Decisions:
    - type_annotation_map over per-column types: models declare Mapped[datetime] /
      Mapped[dict] and get the engine-portable column type (asyncpg and aiosqlite)
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_N_name)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base class for all Rulebook ORM models."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
    type_annotation_map = {
        datetime: DateTime(timezone=True),
        dict[str, Any]: JSON,
        list[dict[str, Any]]: JSON,
    }
