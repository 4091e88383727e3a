"""ResourceRow ORM — one row per resource record of any kind.

Invariants:
    - (kind, id) is the primary key; ids are opaque strings supplied by the caller
    - data holds every record field except id and metadata
    - parent_id / status are denormalised copies of the profile's parent and status fields
    - deleted_at non-null means soft-deleted; rows are never physically removed

Design Decisions:
    - Single tagged table over one table per kind: kinds are data (KindProfile),
      adding a kind needs no migration
    - JSON column for data: the field validator owns the schema, not the database
"""

from datetime import datetime
from typing import Any

from sqlalchemy import String, Index
from sqlalchemy.orm import Mapped, mapped_column

from rulebook.db.base import Base


class ResourceRow(Base):
    """Persisted resource record."""
    __tablename__ = "resources"
    __table_args__ = (
        Index("ix_resources_kind_parent", "kind", "parent_id"),
    )

    kind: Mapped[str] = mapped_column(String(32), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    parent_id: Mapped[str | None] = mapped_column(String(64))
    status: Mapped[str | None] = mapped_column(String(32))
    data: Mapped[dict[str, Any]] = mapped_column(default=dict)
    created_at: Mapped[datetime]
    updated_at: Mapped[datetime]
    deleted_at: Mapped[datetime | None]
