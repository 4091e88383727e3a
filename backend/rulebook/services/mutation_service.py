"""Mutation Service — imperative shell around evaluate_mutation.

Invariants:
    - One evaluation at a time: load -> decide -> commit -> audit runs under one lock
    - Writes are committed only for Accepted decisions, as one put_batch
    - Every evaluate call produces exactly one audit entry (accepted, rejected or error)
    - StoreError and any unexpected exception are logged with full context, audited
      as error, and re-raised; never converted to a rejection
    - Audit sink failures are logged, never reported as a failed mutation

Design Decisions:
    - asyncio.Lock over store-level locking: single logical worker per resource graph
      (no concurrent-client handling, no MVCC)
    - id_factory and clock injected: the core never generates ids or reads time
"""

import asyncio
import logging
import uuid
from typing import Callable

from rulebook.core.audit import AuditEntry, build_audit_entry, build_error_entry
from rulebook.core.domain_types import Operation, ResourceKind
from rulebook.core.errors import (
    ErrorContext, MutationRejectedError, ResourceNotFoundError, StoreError,
)
from rulebook.core.evaluate import evaluate_mutation
from rulebook.core.mutation import Accepted, Decision, MutationRequest
from rulebook.core.repository_protocols import AuditSink, Clock, ResourceStore
from rulebook.core.resource_kinds import get_profile
from rulebook.services.snapshot_loader import load_snapshot

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class MutationService:
    """Evaluates, commits and audits mutations against one resource store."""

    def __init__(
        self,
        store: ResourceStore,
        audit_sink: AuditSink,
        clock: Clock,
        id_factory: Callable[[], str] = _new_id,
    ):
        self._store = store
        self._audit = audit_sink
        self._clock = clock
        self._id_factory = id_factory
        self._lock = asyncio.Lock()

    async def evaluate(
        self,
        kind: ResourceKind | str,
        operation: Operation | str,
        target_id: str | None = None,
        payload: dict | None = None,
    ) -> Decision:
        """Evaluate one mutation; commit its writes when accepted."""
        profile = get_profile(kind)
        operation = Operation(operation)
        if operation == Operation.CREATE and not target_id:
            target_id = self._id_factory()
        request = MutationRequest(profile.kind, operation, target_id or "", payload or {})
        log_extra = {
            "resource_kind": profile.kind.value,
            "resource_id": request.target_id,
            "operation": operation.value,
        }

        async with self._lock:
            try:
                snapshot = await load_snapshot(self._store, request)
                decision = evaluate_mutation(request, snapshot, self._clock.now())
                if isinstance(decision, Accepted):
                    await self._store.put_batch(decision.writes)
            except StoreError as e:
                logger.error(
                    "Store failure during %s %s '%s': %s",
                    operation.value, profile.label, request.target_id, e.message,
                    exc_info=True, extra={**log_extra, "error_code": e.code},
                )
                await self._record(build_error_entry(request, e, self._clock.now()))
                raise
            except Exception as e:
                logger.error(
                    "Unexpected failure during %s %s '%s': %s",
                    operation.value, profile.label, request.target_id, e,
                    exc_info=True, extra={**log_extra, "error_code": "INTERNAL_ERROR"},
                )
                await self._record(build_error_entry(request, e, self._clock.now()))
                raise
            await self._record(build_audit_entry(request, decision, self._clock.now()))

        if isinstance(decision, Accepted):
            logger.info(
                "Accepted %s %s '%s'", operation.value, profile.label, request.target_id,
                extra={**log_extra, "outcome": "accepted", "write_count": len(decision.writes)},
            )
        else:
            logger.info(
                "Rejected %s %s '%s' at %s", operation.value, profile.label,
                request.target_id, decision.stage,
                extra={
                    **log_extra, "outcome": "rejected", "stage": decision.stage,
                    "error_code": ",".join(v.code for v in decision.violations),
                },
            )
        return decision

    async def apply(
        self,
        kind: ResourceKind | str,
        operation: Operation | str,
        target_id: str | None = None,
        payload: dict | None = None,
    ) -> Accepted:
        """evaluate() that raises MutationRejectedError instead of returning Rejected."""
        decision = await self.evaluate(kind, operation, target_id, payload)
        if isinstance(decision, Accepted):
            return decision
        raise MutationRejectedError(
            decision.violations, decision.stage,
            ErrorContext(
                resource_kind=get_profile(kind).kind.value,
                resource_id=target_id,
                operation=Operation(operation).value,
            ),
        )

    async def get(
        self, kind: ResourceKind | str, resource_id: str, include_deleted: bool = False,
    ) -> dict:
        profile = get_profile(kind)
        record = await self._store.get(profile.kind, resource_id, include_deleted)
        if record is None:
            raise ResourceNotFoundError(profile.label, resource_id)
        return record

    async def list(
        self,
        kind: ResourceKind | str,
        filters: dict | None = None,
        include_deleted: bool = False,
    ) -> list[dict]:
        profile = get_profile(kind)
        return await self._store.list(profile.kind, filters, include_deleted)

    async def _record(self, entry: AuditEntry) -> None:
        try:
            await self._audit.record(entry)
        except StoreError as e:
            logger.error(
                "Failed to record audit entry for %s '%s': %s",
                entry.kind, entry.target_id, e.message,
                exc_info=True, extra={"error_code": e.code},
            )
