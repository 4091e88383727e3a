"""Cascade Executor — side-effect writes that must commit with a primary write.

Invariants:
    - compute_cascade is PURE: returns Write descriptors, applies nothing
    - Parent soft-deleted before approval => active children lose their parent reference
    - Approved parents and child deletions cascade nothing
    - Every cascade write is re-validated; one bad cascade rejects the whole request
    - Cascade writes carry the same instant as the primary write

Design Decisions:
    - De-reference instead of delete: child records outlive their parent, only the
      link is cut (children are never erased)
    - Compute-then-commit: the shell receives primary + cascades as one batch and
      commits all or nothing, standing in for a multi-resource transaction log
"""

from datetime import datetime

from rulebook.core.domain_types import Operation, ResourceRole
from rulebook.core.enforce_fields import validate_fields
from rulebook.core.errors import Violation, ViolationCategory
from rulebook.core.mutation import ResourceSnapshot, Write, is_deleted, merge_patch
from rulebook.core.resource_kinds import KindProfile, children_of, get_profile


def compute_cascade(
    profile: KindProfile,
    operation: Operation,
    previous: dict | None,
    snapshot: ResourceSnapshot,
    now: datetime,
) -> list[Write]:
    """Derive the dependent writes for a primary mutation."""
    if operation != Operation.DELETE or profile.role != ResourceRole.PARENT:
        return []
    if previous is None or profile.transitions is None:
        return []
    if profile.transitions.is_terminal(previous.get(profile.status_field)):
        return []

    writes = []
    for child_profile in children_of(profile.kind, ResourceRole.CHILD):
        for child in snapshot.list(child_profile.kind, child_profile.parent_field, previous["id"]):
            patch = {child_profile.parent_field: None}
            record = merge_patch(child, patch)
            record["metadata"] = {**(child.get("metadata") or {}), "updated_at": now}
            writes.append(Write(
                kind=child_profile.kind, id=child["id"], record=record,
                patch=patch, cascade=True,
            ))
    return writes


def validate_cascade(writes: list[Write], snapshot: ResourceSnapshot) -> list[Violation]:
    """Re-check each cascaded record as if it were a primary update."""
    violations = []
    for write in writes:
        profile = get_profile(write.kind)
        stored = snapshot.get(write.kind, write.id)
        if stored is None or is_deleted(stored):
            violations.append(Violation(
                code="CASCADE_TARGET_UNAVAILABLE",
                field=f"{write.kind.value}s[{write.id}]",
                message=f"{profile.label} '{write.id}' cannot receive a cascade update.",
                category=ViolationCategory.CONFLICT,
            ))
            continue
        for violation in validate_fields(
            profile.rules, write.record, stored, Operation.UPDATE, cascade=True,
        ):
            violations.append(Violation(
                code="CASCADE_REJECTED",
                field=f"{write.kind.value}s[{write.id}].{violation.field}",
                message=(
                    f"Cascade update of {profile.label} '{write.id}' is invalid: "
                    f"{violation.message}"
                ),
                category=ViolationCategory.CONFLICT,
                details={"cause": violation.code},
            ))
    return violations
