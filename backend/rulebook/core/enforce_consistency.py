"""Cross-Resource Consistency Enforcement — invariants spanning a record and its relatives.

Invariants:
    - All functions are PURE: relatives are read from a ResourceSnapshot, never a store
    - Return list of Violation; empty list means every rule is satisfied
    - check_consistency evaluates EVERY applicable rule (no first-error-wins)
    - Aggregate sums only ever include non-deleted children, converted to the parent's unit
    - A quantity whose unit has no conversion path is rejected, never assumed equal

Design Decisions:
    - Separated from enforce_fields: field checks look at one record,
      these checks look at the graph around it (responsibility separation)
    - Rules read KindProfile data (parent_field, capacity, unique_key...) so the
      same functions serve every domain
    - The record under evaluation replaces its stored copy in every sum and
      uniqueness scan (post-state semantics)
"""

from decimal import Decimal

from rulebook.core.domain_types import Operation, ResourceRole
from rulebook.core.enforce_fields import get_path
from rulebook.core.errors import UnconvertibleUnitsError, Violation, ViolationCategory
from rulebook.core.mutation import ResourceSnapshot, is_deleted
from rulebook.core.resource_kinds import KindProfile, children_of, get_profile
from rulebook.core.units import convert, dimension_of, is_unit_of, quantity_le, to_decimal


# --- Target liveness ----------------------------------------------------------

def check_target_live(
    profile: KindProfile, operation: Operation, previous: dict | None,
) -> list[Violation]:
    """Soft-deleted records are immutable."""
    if operation == Operation.CREATE or previous is None or not is_deleted(previous):
        return []
    return [_conflict(
        "RESOURCE_DELETED", "metadata.deleted_at",
        f"{profile.label} '{previous['id']}' is deleted and can no longer change.",
    )]


def check_terminal_immutability(
    profile: KindProfile, operation: Operation, record: dict, previous: dict | None,
) -> list[Violation]:
    """Parents in a terminal status are frozen; measurements freeze frozen_when_terminal."""
    if operation != Operation.UPDATE or previous is None or profile.transitions is None:
        return []
    current = previous.get(profile.status_field)
    if not profile.transitions.is_terminal(current):
        return []
    if profile.role == ResourceRole.PARENT:
        return [_conflict(
            "RESOURCE_IMMUTABLE", profile.status_field,
            f"{profile.label} '{previous['id']}' is {current} and can no longer change.",
        )]
    return [
        _conflict(
            "FIELD_IMMUTABLE", path,
            f"{path} cannot change once {profile.label} is {current}.",
        )
        for path in profile.frozen_when_terminal
        if get_path(record, path) != get_path(previous, path)
    ]


# --- Referential liveness -----------------------------------------------------

def check_parent_reference(
    profile: KindProfile,
    operation: Operation,
    record: dict,
    previous: dict | None,
    snapshot: ResourceSnapshot,
) -> list[Violation]:
    """Children/measurements must hang off a live parent whose status allows the change."""
    if profile.role == ResourceRole.PARENT or profile.parent_field is None:
        return []
    parent_profile = get_profile(profile.parent_kind)
    field = profile.parent_field
    old_id = get_path(previous, field) if previous else None
    new_id = get_path(record, field)
    violations: list[Violation] = []
    approved_reported: set[str] = set()

    if operation != Operation.CREATE and old_id is not None:
        old_parent = snapshot.get(profile.parent_kind, old_id)
        if old_parent is not None and _parent_frozen(parent_profile, old_parent):
            violations.append(_parent_frozen_violation(profile, parent_profile, old_parent, field))
            approved_reported.add(old_id)

    if operation == Operation.DELETE or new_id is None:
        return violations

    parent = snapshot.get(profile.parent_kind, new_id)
    if parent is None:
        violations.append(Violation(
            code="REFERENCE_NOT_FOUND",
            field=field,
            message=f"{parent_profile.label} '{new_id}' does not exist.",
            category=ViolationCategory.REFERENCE,
            http_status=404,
            details={"kind": parent_profile.kind.value, "id": new_id},
        ))
        return violations
    if is_deleted(parent):
        violations.append(_reference(
            "PARENT_DELETED", field,
            f"{parent_profile.label} '{new_id}' is deleted.",
        ))
        return violations

    attaching = operation == Operation.CREATE or new_id != old_id
    if not attaching:
        return violations
    status = parent.get(parent_profile.status_field)
    if _parent_frozen(parent_profile, parent) and new_id not in approved_reported:
        violations.append(_parent_frozen_violation(profile, parent_profile, parent, field))
    elif parent_profile.transitions is not None and not _parent_accepts_new(parent_profile, status):
        violations.append(_reference(
            "PARENT_REJECTED", field,
            f"{parent_profile.label} '{new_id}' is {status}; "
            f"no new {profile.label.lower()}s can be attached.",
        ))
    return violations


def _parent_frozen(parent_profile: KindProfile, parent: dict) -> bool:
    if parent_profile.transitions is None:
        return False
    return parent_profile.transitions.is_terminal(parent.get(parent_profile.status_field))


def _parent_accepts_new(parent_profile: KindProfile, status: str | None) -> bool:
    """New attachments only while the parent sits in its initial status."""
    return status == parent_profile.transitions.initial


def _parent_frozen_violation(
    profile: KindProfile, parent_profile: KindProfile, parent: dict, field: str,
) -> Violation:
    status = parent.get(parent_profile.status_field)
    return _reference(
        f"PARENT_{status}", field,
        f"{parent_profile.label} '{parent['id']}' is {status}; "
        f"its {profile.label.lower()}s can no longer change.",
    )


# --- Units --------------------------------------------------------------------

def check_unit_dimensions(profile: KindProfile, record: dict) -> list[Violation]:
    """Every quantity's unit must belong to the quantity's dimension."""
    violations = []
    for quantity in profile.quantities:
        unit = get_path(record, quantity.unit_path)
        if not isinstance(unit, str) or dimension_of(unit) is None:
            continue  # missing or misspelt units are field errors
        if not is_unit_of(unit, quantity.dimension):
            violations.append(Violation(
                code="UNCONVERTIBLE_UNITS",
                field=quantity.unit_path,
                message=(
                    f"{quantity.unit_path} '{unit}' is not a "
                    f"{quantity.dimension.value} unit."
                ),
                category=ViolationCategory.SEMANTIC,
                details={"unit": unit, "dimension": quantity.dimension.value},
            ))
    return violations


# --- Aggregate ----------------------------------------------------------------

def aggregate_children(
    parent_profile: KindProfile,
    parent: dict,
    children: list[dict],
    child_profile: KindProfile,
) -> tuple[Decimal, list[Violation]]:
    """Sum children's matching quantity in the parent's capacity unit."""
    capacity = parent_profile.capacity
    target_unit = get_path(parent, capacity.unit_path)
    child_quantity = next(
        q for q in child_profile.quantities if q.dimension == capacity.dimension
    )
    total = Decimal(0)
    violations = []
    for child in children:
        value = get_path(child, child_quantity.value_path)
        unit = get_path(child, child_quantity.unit_path)
        if value is None:
            continue
        try:
            total += convert(value, unit, target_unit, capacity.dimension)
        except UnconvertibleUnitsError as e:
            violations.append(Violation(
                code="UNCONVERTIBLE_UNITS",
                field=f"{child_profile.kind.value}s[{child['id']}].{child_quantity.unit_path}",
                message=e.message,
                category=ViolationCategory.SEMANTIC,
                details={"from": e.from_unit, "to": e.to_unit},
            ))
    return total, violations


def check_capacity(
    parent_profile: KindProfile,
    parent: dict,
    children: list[dict],
    child_profile: KindProfile,
    field: str,
) -> list[Violation]:
    """Aggregate invariant: Σ active children ≤ parent capacity (within EPSILON)."""
    capacity = parent_profile.capacity
    limit = get_path(parent, capacity.value_path)
    unit = get_path(parent, capacity.unit_path)
    if limit is None or unit is None or not is_unit_of(unit, capacity.dimension):
        return []  # reported by field / unit checks
    total, violations = aggregate_children(parent_profile, parent, children, child_profile)
    if violations:
        return violations
    if quantity_le(total, to_decimal(limit)):
        return []
    return [Violation(
        code=f"{capacity.value_path.rsplit('.', 1)[-1].upper()}_EXCEEDED",
        field=field,
        message=(
            f"Total {child_profile.label.lower()} {capacity.dimension.value} "
            f"{_fmt(total)} {unit} exceeds {parent_profile.label} "
            f"'{parent['id']}' capacity {_fmt(to_decimal(limit))} {unit}."
        ),
        category=ViolationCategory.AGGREGATE,
        details={"total": _fmt(total), "capacity": _fmt(to_decimal(limit)), "unit": unit},
    )]


def check_aggregate(
    profile: KindProfile,
    operation: Operation,
    record: dict,
    snapshot: ResourceSnapshot,
) -> list[Violation]:
    """Recompute the aggregate for whichever parent this mutation touches."""
    if profile.role == ResourceRole.PARENT:
        if profile.capacity is None or operation != Operation.UPDATE:
            return []
        violations = []
        for child_profile in children_of(profile.kind, ResourceRole.CHILD):
            children = snapshot.list(
                child_profile.kind, child_profile.parent_field, record["id"],
            )
            violations.extend(check_capacity(
                profile, record, children, child_profile, profile.capacity.value_path,
            ))
        return violations

    if profile.role != ResourceRole.CHILD:
        return []
    parent_profile = get_profile(profile.parent_kind)
    parent_id = get_path(record, profile.parent_field)
    if parent_profile.capacity is None or parent_id is None:
        return []
    parent = snapshot.get(profile.parent_kind, parent_id)
    if parent is None or is_deleted(parent):
        return []
    siblings = [
        c for c in snapshot.list(profile.kind, profile.parent_field, parent_id)
        if c["id"] != record["id"]
    ]
    if not is_deleted(record):
        siblings.append(record)
    quantity = next(
        (q for q in profile.quantities if q.dimension == parent_profile.capacity.dimension),
        None,
    )
    if quantity is None:
        return []
    return check_capacity(parent_profile, parent, siblings, profile, quantity.value_path)


# --- Uniqueness ---------------------------------------------------------------

def check_uniqueness(
    profile: KindProfile,
    operation: Operation,
    record: dict,
    snapshot: ResourceSnapshot,
) -> list[Violation]:
    """(parent, *unique_key) must be distinct among non-deleted siblings."""
    if not profile.unique_key or operation == Operation.DELETE or is_deleted(record):
        return []
    parent_id = get_path(record, profile.parent_field) if profile.parent_field else None
    if profile.parent_field and parent_id is None:
        return []
    key = _unique_key(profile, record)
    for sibling in snapshot.list(profile.kind, profile.parent_field, parent_id):
        if sibling["id"] == record["id"]:
            continue
        if _unique_key(profile, sibling) == key:
            return [Violation(
                code=f"DUPLICATE_{profile.label.upper()}",
                field=profile.unique_key[0],
                message=(
                    f"A {profile.label.lower()} with "
                    + ", ".join(f"{k} '{get_path(record, k)}'" for k in profile.unique_key)
                    + f" already exists (id '{sibling['id']}')."
                ),
                category=ViolationCategory.UNIQUENESS,
                details={"existing_id": sibling["id"]},
            )]
    return []


def _unique_key(profile: KindProfile, record: dict) -> tuple:
    parts = []
    for path in profile.unique_key:
        value = get_path(record, path)
        parts.append(value.strip().casefold() if isinstance(value, str) else value)
    return tuple(parts)


# --- Reciprocal readiness -----------------------------------------------------

def check_terminal_readiness(
    profile: KindProfile,
    record: dict,
    previous: dict | None,
    snapshot: ResourceSnapshot,
) -> list[Violation]:
    """Entering a terminal parent status needs passing measurements and required text."""
    if profile.role != ResourceRole.PARENT or profile.transitions is None or previous is None:
        return []
    requested = record.get(profile.status_field)
    if requested == previous.get(profile.status_field):
        return []
    if not profile.transitions.is_terminal(requested):
        return []

    violations = [
        Violation(
            code=f"{path.upper()}_REQUIRED",
            field=path,
            message=f"{path} must be non-empty before {profile.label} becomes {requested}.",
            category=ViolationCategory.SEMANTIC,
        )
        for path in profile.required_on_terminal
        if not (get_path(record, path) or "").strip()
    ]

    for measure_profile in children_of(profile.kind, ResourceRole.MEASUREMENT):
        measurements = snapshot.list(
            measure_profile.kind, measure_profile.parent_field, record["id"],
        )
        table = measure_profile.transitions
        pending = [
            m for m in measurements
            if not table.is_terminal(m.get(measure_profile.status_field))
        ]
        failing = [
            m for m in measurements
            if table.is_terminal(m.get(measure_profile.status_field))
            and m.get(measure_profile.outcome_field) not in measure_profile.passing_outcomes
        ]
        plural = f"{measure_profile.label.upper()}S"
        if pending:
            violations.append(Violation(
                code=f"{plural}_NOT_COMPLETE",
                field=profile.status_field,
                message=(
                    f"Cannot set {profile.label} to {requested}: "
                    f"{len(pending)} {measure_profile.label.lower()}(s) still "
                    + ", ".join(
                        f"{m.get(measure_profile.status_field)} ('{m['id']}')"
                        for m in pending
                    ) + "."
                ),
                category=ViolationCategory.TRANSITION,
                http_status=409,
                details={"pending": [m["id"] for m in pending]},
            ))
        if failing:
            violations.append(Violation(
                code=f"{plural}_NOT_PASSING",
                field=profile.status_field,
                message=(
                    f"Cannot set {profile.label} to {requested}: "
                    f"{len(failing)} {measure_profile.label.lower()}(s) did not pass."
                ),
                category=ViolationCategory.TRANSITION,
                http_status=409,
                details={"failing": [m["id"] for m in failing]},
            ))
    return violations


# --- Parent deletion ----------------------------------------------------------

def check_parent_deletion(
    profile: KindProfile,
    operation: Operation,
    previous: dict | None,
    snapshot: ResourceSnapshot,
) -> list[Violation]:
    """A terminal (approved) parent with active children cannot be deleted."""
    if (
        operation != Operation.DELETE or profile.role != ResourceRole.PARENT
        or previous is None or profile.transitions is None
    ):
        return []
    if not profile.transitions.is_terminal(previous.get(profile.status_field)):
        return []
    violations = []
    for child_profile in children_of(profile.kind, ResourceRole.CHILD):
        children = snapshot.list(
            child_profile.kind, child_profile.parent_field, previous["id"],
        )
        if children:
            violations.append(_conflict(
                f"{profile.label.upper()}_HAS_{child_profile.label.upper()}S", "id",
                f"{profile.label} '{previous['id']}' is "
                f"{previous.get(profile.status_field)} and still has "
                f"{len(children)} {child_profile.label.lower()}(s).",
            ))
    return violations


# --- Composite validator ------------------------------------------------------

def check_consistency(
    profile: KindProfile,
    operation: Operation,
    record: dict,
    previous: dict | None,
    snapshot: ResourceSnapshot,
) -> list[Violation]:
    """Evaluate every applicable cross-resource rule and return all violations."""
    violations = check_target_live(profile, operation, previous)
    if violations:
        return violations  # deleted records get no further evaluation
    violations.extend(check_terminal_immutability(profile, operation, record, previous))
    violations.extend(check_parent_reference(profile, operation, record, previous, snapshot))
    violations.extend(check_parent_deletion(profile, operation, previous, snapshot))
    if operation != Operation.DELETE:
        violations.extend(check_unit_dimensions(profile, record))
        violations.extend(check_uniqueness(profile, operation, record, snapshot))
        violations.extend(check_terminal_readiness(profile, record, previous, snapshot))
    if not any(v.code == "UNCONVERTIBLE_UNITS" for v in violations):
        violations.extend(check_aggregate(profile, operation, record, snapshot))
    return violations


# --- Helpers ------------------------------------------------------------------

def _conflict(code: str, field: str, message: str) -> Violation:
    return Violation(
        code=code, field=field, message=message, category=ViolationCategory.CONFLICT,
    )


def _reference(code: str, field: str, message: str) -> Violation:
    return Violation(
        code=code, field=field, message=message, category=ViolationCategory.REFERENCE,
    )


def _fmt(value: Decimal) -> str:
    return format(value.normalize(), "f")
