"""Resource Kinds — per-kind profiles: role, transition table, field rules, quantities.

Invariants:
    - Exactly one KindProfile per ResourceKind (PROFILES is exhaustive)
    - A CHILD or MEASUREMENT profile names its parent kind and foreign-key field
    - Every quantity pair names the Dimension its unit must belong to
    - Generic engines read profiles; nothing outside this module names a kind's fields

Design Decisions:
    - Tagged variant (ResourceKind) + data profile over a class hierarchy:
      adding a domain means adding profiles, not subclasses
    - The aircraft Design/Component/Test graph is the shipped domain
"""

from dataclasses import dataclass, field

from rulebook.core.domain_types import (
    MAX_DESIGN_WEIGHT, NAME_MAX_LENGTH, TEXT_MAX_LENGTH,
    ComponentType, DesignStatus, Dimension, ResourceKind, ResourceRole,
    TestResult, TestStatus, TestType,
)
from rulebook.core.enforce_fields import (
    EnumRule, FieldRule, ForbiddenUnless, NumberRule, ReferenceRule,
    RequiredIf, RequiredTogether, StringRule, VersionRule,
)
from rulebook.core.errors import UnknownResourceKindError
from rulebook.core.state_machine import TransitionTable, transition_table
from rulebook.core.units import KNOWN_UNITS


@dataclass(frozen=True)
class Quantity:
    """A value field paired with its unit-of-measure field."""
    value_path: str
    unit_path: str
    dimension: Dimension


@dataclass(frozen=True)
class KindProfile:
    """Everything the generic engines need to know about one kind."""
    kind: ResourceKind
    role: ResourceRole
    label: str
    rules: tuple[FieldRule, ...]
    trimmed: tuple[str, ...] = ()
    status_field: str | None = None
    transitions: TransitionTable | None = None
    parent_kind: ResourceKind | None = None
    parent_field: str | None = None
    quantities: tuple[Quantity, ...] = ()
    capacity: Quantity | None = None
    unique_key: tuple[str, ...] = ()
    frozen_when_terminal: tuple[str, ...] = ()
    required_on_terminal: tuple[str, ...] = ()
    outcome_field: str | None = None
    passing_outcomes: frozenset[str] = frozenset()
    defaults: dict = field(default_factory=dict)


_UNITS = frozenset(KNOWN_UNITS)
_COMPLETED = frozenset({TestStatus.COMPLETED.value})

DESIGN_TRANSITIONS = transition_table(
    DesignStatus.DRAFT,
    [
        (DesignStatus.DRAFT, DesignStatus.APPROVED),
        (DesignStatus.DRAFT, DesignStatus.REJECTED),
        (DesignStatus.REJECTED, DesignStatus.DRAFT),
    ],
)

TEST_TRANSITIONS = transition_table(
    TestStatus.PLANNED,
    [
        (TestStatus.PLANNED, TestStatus.IN_PROGRESS),
        (TestStatus.PLANNED, TestStatus.COMPLETED),
        (TestStatus.IN_PROGRESS, TestStatus.COMPLETED),
    ],
)

DESIGN_WEIGHT = Quantity(
    "specifications.weight", "specifications.weight_unit", Dimension.MASS,
)

DESIGN = KindProfile(
    kind=ResourceKind.DESIGN,
    role=ResourceRole.PARENT,
    label="Design",
    rules=(
        StringRule("name", NAME_MAX_LENGTH, required=True),
        StringRule("description", TEXT_MAX_LENGTH),
        VersionRule("version", tracked="specifications"),
        NumberRule("specifications.weight", gt=0, le=MAX_DESIGN_WEIGHT),
        EnumRule("specifications.weight_unit", _UNITS),
        RequiredTogether("specifications.weight", "specifications.weight_unit", required=True),
        NumberRule("specifications.wingspan", gt=0),
        EnumRule("specifications.wingspan_unit", _UNITS),
        RequiredTogether("specifications.wingspan", "specifications.wingspan_unit"),
        NumberRule("specifications.length", gt=0),
        EnumRule("specifications.length_unit", _UNITS),
        RequiredTogether("specifications.length", "specifications.length_unit"),
        NumberRule("specifications.passenger_capacity", ge=0, le=1000, integer=True),
    ),
    trimmed=("name", "description", "version"),
    status_field="status",
    transitions=DESIGN_TRANSITIONS,
    quantities=(
        DESIGN_WEIGHT,
        Quantity("specifications.wingspan", "specifications.wingspan_unit", Dimension.LENGTH),
        Quantity("specifications.length", "specifications.length_unit", Dimension.LENGTH),
    ),
    capacity=DESIGN_WEIGHT,
    required_on_terminal=("description",),
    defaults={"status": DesignStatus.DRAFT.value, "version": "1.0"},
)

COMPONENT = KindProfile(
    kind=ResourceKind.COMPONENT,
    role=ResourceRole.CHILD,
    label="Component",
    rules=(
        ReferenceRule("design_id"),
        StringRule("name", NAME_MAX_LENGTH, required=True),
        EnumRule("type", frozenset(t.value for t in ComponentType), required=True),
        NumberRule("weight", gt=0),
        EnumRule("weight_unit", _UNITS),
        RequiredTogether("weight", "weight_unit", required=True),
        StringRule("material", NAME_MAX_LENGTH),
    ),
    trimmed=("name", "material"),
    parent_kind=ResourceKind.DESIGN,
    parent_field="design_id",
    quantities=(Quantity("weight", "weight_unit", Dimension.MASS),),
    unique_key=("name", "type"),
)

TEST = KindProfile(
    kind=ResourceKind.TEST,
    role=ResourceRole.MEASUREMENT,
    label="Test",
    rules=(
        ReferenceRule("design_id"),
        StringRule("name", NAME_MAX_LENGTH, required=True),
        EnumRule("test_type", frozenset(t.value for t in TestType), required=True),
        EnumRule("result", frozenset(r.value for r in TestResult)),
        RequiredIf("result", "status", _COMPLETED),
        ForbiddenUnless("result", "status", _COMPLETED),
        StringRule("notes", TEXT_MAX_LENGTH),
    ),
    trimmed=("name", "notes"),
    status_field="status",
    transitions=TEST_TRANSITIONS,
    parent_kind=ResourceKind.DESIGN,
    parent_field="design_id",
    frozen_when_terminal=("test_type",),
    outcome_field="result",
    passing_outcomes=frozenset({TestResult.PASS.value}),
    defaults={"status": TestStatus.PLANNED.value},
)

PROFILES: dict[ResourceKind, KindProfile] = {
    ResourceKind.DESIGN: DESIGN,
    ResourceKind.COMPONENT: COMPONENT,
    ResourceKind.TEST: TEST,
}


def get_profile(kind: ResourceKind | str) -> KindProfile:
    """Resolve a kind (enum or its string value) to its profile."""
    try:
        return PROFILES[ResourceKind(kind)]
    except ValueError:
        raise UnknownResourceKindError(str(kind))


def children_of(kind: ResourceKind, role: ResourceRole) -> list[KindProfile]:
    """Profiles whose parent is kind and whose role is role."""
    return [
        p for p in PROFILES.values()
        if p.parent_kind == kind and p.role == role
    ]
