"""Audit Sinks — destinations for the mutation audit trail.

Invariants:
    - Every sink accepts any AuditEntry; none filters or reorders entries
    - SqlAuditSink inserts one row per entry in its own transaction
    - LoggingAuditSink emits one structured log line per entry

Design Decisions:
    - Audit written separately from the resource batch: a rejected request still
      leaves a trail even though nothing else was committed
    - InMemoryAuditSink lives here (not in tests): embedders use it too
"""

import logging

from rulebook.core.audit import AuditEntry, AuditOutcome
from rulebook.infrastructure.database import DatabaseSessionManager
from rulebook.models.audit_entry import AuditEntryRow

logger = logging.getLogger("rulebook.audit")


class LoggingAuditSink:
    """Audit trail as structured log lines."""

    async def record(self, entry: AuditEntry) -> None:
        level = logging.INFO if entry.outcome == AuditOutcome.ACCEPTED else logging.WARNING
        if entry.outcome == AuditOutcome.ERROR:
            level = logging.ERROR
        logger.log(
            level,
            "%s %s '%s' %s",
            entry.operation, entry.kind, entry.target_id, entry.outcome.value,
            extra={
                "resource_kind": entry.kind,
                "resource_id": entry.target_id,
                "operation": entry.operation,
                "outcome": entry.outcome.value,
                "stage": entry.stage,
                "error_code": ",".join(v["id"] for v in entry.violations) or entry.error,
                "write_count": len(entry.writes) or None,
            },
        )


class SqlAuditSink:
    """Audit trail persisted to the audit_entries table."""

    def __init__(self, manager: DatabaseSessionManager):
        self._manager = manager

    async def record(self, entry: AuditEntry) -> None:
        async with self._manager.session() as db:
            db.add(AuditEntryRow(
                kind=entry.kind,
                operation=entry.operation,
                target_id=entry.target_id,
                outcome=entry.outcome.value,
                stage=entry.stage,
                violations=entry.violations,
                writes=entry.writes,
                error=entry.error,
                recorded_at=entry.recorded_at,
            ))
            await db.commit()


class InMemoryAuditSink:
    """Audit trail kept in a list (tests, embedding)."""

    def __init__(self):
        self.entries: list[AuditEntry] = []

    async def record(self, entry: AuditEntry) -> None:
        self.entries.append(entry)
