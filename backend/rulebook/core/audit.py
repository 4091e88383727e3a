"""Audit Entries — structured record of every attempted mutation.

Invariants:
    - One entry per evaluate call, whatever the outcome (accepted, rejected, error)
    - Entries are JSON-safe via to_dict (enums as values, instants as ISO strings)
    - build_audit_entry is PURE: the shell supplies the instant

Design Decisions:
    - Entry carries write summaries, not full records: the store already holds the
      records, the audit trail only has to say what was touched
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from rulebook.core.errors import Violation
from rulebook.core.mutation import Accepted, Decision, MutationRequest


class AuditOutcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ERROR = "error"


@dataclass(frozen=True)
class AuditEntry:
    kind: str
    operation: str
    target_id: str
    outcome: AuditOutcome
    recorded_at: datetime
    stage: str | None = None
    violations: list[dict] = field(default_factory=list)
    writes: list[dict] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "operation": self.operation,
            "target_id": self.target_id,
            "outcome": self.outcome.value,
            "recorded_at": self.recorded_at.isoformat(),
            "stage": self.stage,
            "violations": self.violations,
            "writes": self.writes,
            "error": self.error,
        }


def build_audit_entry(
    request: MutationRequest, decision: Decision, recorded_at: datetime,
) -> AuditEntry:
    """Translate a decision into its audit entry."""
    base = {
        "kind": _value(request.kind),
        "operation": _value(request.operation),
        "target_id": request.target_id,
        "recorded_at": recorded_at,
    }
    if isinstance(decision, Accepted):
        return AuditEntry(
            outcome=AuditOutcome.ACCEPTED,
            writes=[w.summary() for w in decision.writes],
            **base,
        )
    return AuditEntry(
        outcome=AuditOutcome.REJECTED,
        stage=decision.stage,
        violations=[_violation_summary(v) for v in decision.violations],
        **base,
    )


def build_error_entry(
    request: MutationRequest, error: Exception, recorded_at: datetime,
) -> AuditEntry:
    """Entry for a request that died on an exception (store or unexpected)."""
    return AuditEntry(
        kind=_value(request.kind),
        operation=_value(request.operation),
        target_id=request.target_id,
        outcome=AuditOutcome.ERROR,
        recorded_at=recorded_at,
        error=type(error).__name__,
    )


def _violation_summary(violation: Violation) -> dict:
    return {"id": violation.code, "field": violation.field, "message": violation.message}


def _value(member: object) -> str:
    return str(getattr(member, "value", member))
