"""In-Memory Resource Store — dict-backed ResourceStore for tests and embedding.

Invariants:
    - Records are deep-copied on every read and write (callers never alias store state)
    - put_batch validates the whole batch before applying any write (all-or-nothing)
    - list() excludes soft-deleted records unless include_deleted=True

Design Decisions:
    - In-memory, single process: the mutation service serialises evaluations, so no
      lock is needed here
"""

import copy
from collections.abc import Sequence

from rulebook.core.domain_types import ResourceKind
from rulebook.core.errors import StoreError
from rulebook.core.mutation import Write, is_deleted


class InMemoryResourceStore:
    """ResourceStore over a plain dict keyed by (kind, id)."""

    def __init__(self):
        self._records: dict[tuple[ResourceKind, str], dict] = {}

    async def get(
        self, kind: ResourceKind, resource_id: str, include_deleted: bool = True,
    ) -> dict | None:
        record = self._records.get((ResourceKind(kind), resource_id))
        if record is None or (not include_deleted and is_deleted(record)):
            return None
        return copy.deepcopy(record)

    async def list(
        self, kind: ResourceKind, filters: dict | None = None,
        include_deleted: bool = False,
    ) -> list[dict]:
        kind = ResourceKind(kind)
        found = []
        for (record_kind, _), record in self._records.items():
            if record_kind != kind:
                continue
            if not include_deleted and is_deleted(record):
                continue
            if any(record.get(k) != v for k, v in (filters or {}).items()):
                continue
            found.append(copy.deepcopy(record))
        return sorted(found, key=lambda r: r["id"])

    async def put_batch(self, writes: Sequence[Write]) -> None:
        staged = dict(self._records)
        for write in writes:
            if not write.id or write.record.get("id") != write.id:
                raise StoreError(f"write for '{write.id}' has mismatched id", "put_batch")
            staged[(ResourceKind(write.kind), write.id)] = copy.deepcopy(write.record)
        self._records = staged

    async def seed(self, kind: ResourceKind, record: dict) -> None:
        """Insert a record without evaluation (fixtures, imports of legacy data)."""
        self._records[(ResourceKind(kind), record["id"])] = copy.deepcopy(record)
