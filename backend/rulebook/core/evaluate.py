"""Mutation Evaluation — the single decision point for every state-changing request.

Invariants:
    - evaluate_mutation is PURE: snapshot in, Decision out, nothing persisted
    - Stages run in order: resolve -> field -> transition -> consistency -> cascade
    - The first failing stage aborts; it reports ALL of its own violations
    - Accepted.writes holds the primary write followed by every cascade write,
      all stamped with the same instant
    - Deletes skip the field and transition stages (no payload is merged)

Design Decisions:
    - Time is an argument (now), never read here: callers inject a Clock
    - Stage names travel with Rejected so the shell can log and audit where a
      request stopped without re-deriving it
"""

from datetime import datetime

from rulebook.core.cascade import compute_cascade, validate_cascade
from rulebook.core.domain_types import Operation
from rulebook.core.enforce_consistency import check_consistency, check_target_live
from rulebook.core.enforce_fields import normalize_record, validate_fields
from rulebook.core.errors import Violation, ViolationCategory
from rulebook.core.mutation import (
    Accepted, Decision, MutationRequest, Rejected, ResourceSnapshot, Write,
    merge_patch, strip_protected,
)
from rulebook.core.resource_kinds import KindProfile, get_profile
from rulebook.core.state_machine import check_initial_status, check_transition


def evaluate_mutation(
    request: MutationRequest, snapshot: ResourceSnapshot, now: datetime,
) -> Decision:
    """Decide whether request is legal against snapshot; compute every write if so."""
    profile = get_profile(request.kind)
    operation = request.operation
    previous = snapshot.get(profile.kind, request.target_id)

    violations = _resolve_target(profile, operation, request.target_id, previous)
    if violations:
        return Rejected(violations, "resolve")

    record = build_record(profile, request, previous, now)

    if operation != Operation.DELETE:
        violations = validate_fields(profile.rules, record, previous, operation)
        if violations:
            return Rejected(violations, "field")

        violations = check_status_change(profile, request, previous, record)
        if violations:
            return Rejected(violations, "transition")

    violations = check_consistency(profile, operation, record, previous, snapshot)
    if violations:
        return Rejected(violations, "consistency")

    cascades = compute_cascade(profile, operation, previous, snapshot, now)
    violations = validate_cascade(cascades, snapshot)
    if violations:
        return Rejected(violations, "cascade")

    primary = Write(
        kind=profile.kind,
        id=request.target_id,
        record=record,
        patch=strip_protected(request.payload) if operation != Operation.DELETE else {},
    )
    return Accepted([primary, *cascades])


def build_record(
    profile: KindProfile,
    request: MutationRequest,
    previous: dict | None,
    now: datetime,
) -> dict:
    """Post-mutation record: defaults + payload on create, merge on update, stamp on delete."""
    if request.operation == Operation.CREATE:
        record = merge_patch({"id": request.target_id, **profile.defaults}, request.payload)
        for key, value in profile.defaults.items():
            if record.get(key) is None:
                record[key] = value
        record["metadata"] = {"created_at": now, "updated_at": now, "deleted_at": None}
    elif request.operation == Operation.UPDATE:
        record = merge_patch(previous, request.payload)
        record["metadata"] = {**(previous.get("metadata") or {}), "updated_at": now}
    else:
        record = merge_patch(previous, {})
        record["metadata"] = {
            **(previous.get("metadata") or {}), "updated_at": now, "deleted_at": now,
        }
        return record
    record["id"] = request.target_id
    return normalize_record(record, profile.trimmed)


def check_status_change(
    profile: KindProfile,
    request: MutationRequest,
    previous: dict | None,
    record: dict,
) -> list[Violation]:
    """Run the kind's transition table against the requested status, if any."""
    if profile.transitions is None:
        return []
    field = profile.status_field
    if request.operation == Operation.CREATE:
        violation = check_initial_status(profile.transitions, request.payload.get(field), field)
    elif field in request.payload:
        violation = check_transition(
            profile.transitions, previous.get(field), record.get(field), field,
        )
    else:
        violation = None
    return [violation] if violation else []


def _resolve_target(
    profile: KindProfile,
    operation: Operation,
    target_id: str,
    previous: dict | None,
) -> list[Violation]:
    if not target_id:
        return [Violation(
            code="REQUIRED", field="id",
            message=f"{profile.label} id is required.",
            category=ViolationCategory.FIELD,
        )]
    if operation == Operation.CREATE:
        if previous is None:
            return []
        return [Violation(
            code="DUPLICATE_ID", field="id",
            message=f"{profile.label} '{target_id}' already exists.",
            category=ViolationCategory.CONFLICT,
        )]
    if previous is None:
        return [Violation(
            code="REFERENCE_NOT_FOUND", field="id",
            message=f"{profile.label} '{target_id}' does not exist.",
            category=ViolationCategory.REFERENCE,
            http_status=404,
        )]
    return check_target_live(profile, operation, previous)
