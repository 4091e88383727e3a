"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: boundary methods are async because implementations do IO,
      but core pure functions that USE their results are never async themselves;
      the shell orchestrates the async calls around the pure logic
    - Clock is a Protocol too: "now" is a capability, never ambient state
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from rulebook.core.audit import AuditEntry
from rulebook.core.domain_types import ResourceKind
from rulebook.core.mutation import Write


class Clock(Protocol):
    """Supplies the current instant (timezone-aware)."""
    def now(self) -> datetime: ...


class ResourceStore(Protocol):
    """Contract for versioned resource persistence: implemented by shell."""
    async def get(
        self, kind: ResourceKind, resource_id: str, include_deleted: bool = True,
    ) -> dict | None: ...
    async def list(
        self, kind: ResourceKind, filters: dict | None = None,
        include_deleted: bool = False,
    ) -> list[dict]: ...
    async def put_batch(self, writes: Sequence[Write]) -> None: ...


class AuditSink(Protocol):
    """Contract for the audit trail: receives every attempted mutation."""
    async def record(self, entry: AuditEntry) -> None: ...
