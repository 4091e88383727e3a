"""Mutation Types — requests, snapshots, writes and decisions exchanged by core and shell.

Invariants:
    - ResourceSnapshot is read-only for the core: every record handed out is a deep copy
    - Accepted.writes lists the primary write first, cascade writes after it
    - Rejected always carries at least one Violation and the stage that produced it
    - merge_patch never mutates its inputs

Design Decisions:
    - Plain dict records (not ORM rows): the core stays storage-agnostic and the
      snapshot can be built from any store
    - Decision as a two-class union over an exception: the pipeline result is data,
      the shell decides whether to raise
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Union

from rulebook.core.domain_types import Operation, ResourceKind
from rulebook.core.errors import Violation

# Keys a caller can never write through a payload.
PROTECTED_KEYS: frozenset[str] = frozenset({"id", "metadata"})
# Blocks merged key-by-key on PATCH instead of replaced.
NESTED_BLOCKS: frozenset[str] = frozenset({"specifications"})


@dataclass(frozen=True)
class MutationRequest:
    """(kind, operation, target id, payload) as handed over by the orchestrator."""
    kind: ResourceKind
    operation: Operation
    target_id: str
    payload: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Write:
    """One record to persist. record is the full post-mutation record."""
    kind: ResourceKind
    id: str
    record: dict
    patch: dict = field(default_factory=dict)
    cascade: bool = False

    def summary(self) -> dict:
        return {"kind": self.kind.value, "id": self.id, "cascade": self.cascade}


@dataclass(frozen=True)
class Accepted:
    writes: list[Write]

    @property
    def primary(self) -> Write:
        return self.writes[0]

    @property
    def cascades(self) -> list[Write]:
        return self.writes[1:]


@dataclass(frozen=True)
class Rejected:
    violations: list[Violation]
    stage: str


Decision = Union[Accepted, Rejected]


class ResourceSnapshot:
    """Consistent, in-memory view of every record one evaluation may read."""

    def __init__(self, records: list[tuple[ResourceKind, dict]] | None = None):
        self._records: dict[tuple[ResourceKind, str], dict] = {}
        for kind, record in records or []:
            self.add(kind, record)

    def add(self, kind: ResourceKind, record: dict) -> None:
        self._records[(ResourceKind(kind), record["id"])] = copy.deepcopy(record)

    def get(self, kind: ResourceKind, resource_id: str | None) -> dict | None:
        if resource_id is None:
            return None
        record = self._records.get((ResourceKind(kind), resource_id))
        return copy.deepcopy(record) if record is not None else None

    def list(
        self, kind: ResourceKind, parent_field: str | None = None,
        parent_id: str | None = None, include_deleted: bool = False,
    ) -> list[dict]:
        """Records of kind, optionally only those whose parent_field == parent_id."""
        found = []
        for (record_kind, _), record in self._records.items():
            if record_kind != kind:
                continue
            if not include_deleted and is_deleted(record):
                continue
            if parent_field is not None and record.get(parent_field) != parent_id:
                continue
            found.append(copy.deepcopy(record))
        return sorted(found, key=lambda r: r["id"])

    def __len__(self) -> int:
        return len(self._records)


def is_deleted(record: dict) -> bool:
    return (record.get("metadata") or {}).get("deleted_at") is not None


def merge_patch(previous: dict, patch: dict) -> dict:
    """PATCH merge: top-level keys replace, NESTED_BLOCKS merge key by key."""
    merged = copy.deepcopy(previous)
    for key, value in patch.items():
        if key in PROTECTED_KEYS:
            continue
        if key in NESTED_BLOCKS and isinstance(value, dict):
            block = merged.get(key)
            block = dict(block) if isinstance(block, dict) else {}
            block.update(copy.deepcopy(value))
            merged[key] = block
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def strip_protected(payload: dict) -> dict[str, Any]:
    return {k: v for k, v in payload.items() if k not in PROTECTED_KEYS}
