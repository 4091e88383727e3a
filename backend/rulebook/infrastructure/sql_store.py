"""SQL Resource Store — SQLAlchemy-backed ResourceStore over the resources table.

Invariants:
    - put_batch commits every write in ONE transaction; any failure rolls back all of them
    - Rows are never deleted; soft delete is the deleted_at column
    - Timestamps come back timezone-aware UTC (SQLite drops tzinfo on the way in)
    - All SQLAlchemy failures surface as StoreError via DatabaseSessionManager

Design Decisions:
    - Records split into columns (kind, id, parent_id, status, timestamps) + data JSON:
      the columns serve listing filters, data carries everything else
    - Filters on the parent field hit the indexed parent_id column; other filters are
      applied in Python over the decoded records
"""

from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import select

from rulebook.core.domain_types import ResourceKind
from rulebook.core.mutation import Write
from rulebook.core.resource_kinds import get_profile
from rulebook.infrastructure.database import DatabaseSessionManager
from rulebook.models.resource import ResourceRow

_COLUMN_KEYS = frozenset({"id", "metadata"})


class SqlResourceStore:
    """ResourceStore backed by DatabaseSessionManager."""

    def __init__(self, manager: DatabaseSessionManager):
        self._manager = manager

    async def get(
        self, kind: ResourceKind, resource_id: str, include_deleted: bool = True,
    ) -> dict | None:
        kind = ResourceKind(kind)
        async with self._manager.session() as db:
            row = await db.get(ResourceRow, (kind.value, resource_id))
            if row is None or (not include_deleted and row.deleted_at is not None):
                return None
            return row_to_record(row)

    async def list(
        self, kind: ResourceKind, filters: dict | None = None,
        include_deleted: bool = False,
    ) -> list[dict]:
        kind = ResourceKind(kind)
        profile = get_profile(kind)
        remaining = dict(filters or {})
        query = select(ResourceRow).where(ResourceRow.kind == kind.value)
        if profile.parent_field and profile.parent_field in remaining:
            query = query.where(
                ResourceRow.parent_id == remaining.pop(profile.parent_field),
            )
        if not include_deleted:
            query = query.where(ResourceRow.deleted_at.is_(None))
        query = query.order_by(ResourceRow.id)
        async with self._manager.session() as db:
            rows = (await db.execute(query)).scalars().all()
            records = [row_to_record(row) for row in rows]
        return [
            r for r in records
            if all(r.get(k) == v for k, v in remaining.items())
        ]

    async def put_batch(self, writes: Sequence[Write]) -> None:
        async with self._manager.session() as db:
            for write in writes:
                row = await db.get(ResourceRow, (ResourceKind(write.kind).value, write.id))
                if row is None:
                    row = ResourceRow(kind=ResourceKind(write.kind).value, id=write.id)
                    db.add(row)
                apply_record(row, write.kind, write.record)
            await db.commit()


def apply_record(row: ResourceRow, kind: ResourceKind, record: dict) -> None:
    """Copy a record dict onto an ORM row."""
    profile = get_profile(kind)
    metadata = record.get("metadata") or {}
    row.data = {k: v for k, v in record.items() if k not in _COLUMN_KEYS}
    row.parent_id = record.get(profile.parent_field) if profile.parent_field else None
    row.status = record.get(profile.status_field) if profile.status_field else None
    row.created_at = metadata.get("created_at")
    row.updated_at = metadata.get("updated_at")
    row.deleted_at = metadata.get("deleted_at")


def row_to_record(row: ResourceRow) -> dict:
    """Rebuild the record dict from an ORM row."""
    record = {"id": row.id, **(row.data or {})}
    record["metadata"] = {
        "created_at": _aware(row.created_at),
        "updated_at": _aware(row.updated_at),
        "deleted_at": _aware(row.deleted_at),
    }
    return record


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
