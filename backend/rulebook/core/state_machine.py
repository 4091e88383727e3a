"""State Machine Engine — generic transition-table evaluator.

Invariants:
    - All functions are PURE: the table arrives as a parameter, nothing is mutated
    - Edges are the only legal moves; unlisted moves are rejected
    - A self-move is legal only when the status is declared idempotent
    - Terminal statuses have no outgoing edges

Design Decisions:
    - One evaluator for every kind: tables are data on KindProfile, not subclasses
    - Return Violation (not raise): evaluate_mutation collects stage results uniformly
"""

from dataclasses import dataclass, field

from rulebook.core.errors import Violation, ViolationCategory


@dataclass(frozen=True)
class TransitionTable:
    """Directed status graph for one status field."""
    initial: str
    edges: frozenset[tuple[str, str]]
    idempotent: frozenset[str] = field(default_factory=frozenset)

    @property
    def statuses(self) -> frozenset[str]:
        nodes = {self.initial}
        for source, target in self.edges:
            nodes.add(source)
            nodes.add(target)
        return frozenset(nodes)

    def is_terminal(self, status: str) -> bool:
        return isinstance(status, str) and status in self.statuses and not any(
            source == status for source, _ in self.edges
        )

    def allows(self, current: str, requested: str) -> bool:
        if not isinstance(requested, str):
            return False
        if current == requested:
            return current in self.idempotent
        return (current, requested) in self.edges


def transition_table(
    initial: str, edges: list[tuple[str, str]], idempotent: tuple[str, ...] = (),
) -> TransitionTable:
    """Build a table from plain string pairs (str Enum members compare as strings)."""
    return TransitionTable(
        initial=str(getattr(initial, "value", initial)),
        edges=frozenset(
            (str(getattr(a, "value", a)), str(getattr(b, "value", b)))
            for a, b in edges
        ),
        idempotent=frozenset(str(getattr(s, "value", s)) for s in idempotent),
    )


def check_transition(
    table: TransitionTable, current: str, requested: str, field_name: str = "status",
) -> Violation | None:
    """Reject any move that is not an edge of table."""
    if table.allows(current, requested):
        return None
    if not isinstance(requested, str):
        reason = "status must be a status name"
    elif requested not in table.statuses:
        reason = f"'{requested}' is not a known status"
    elif table.is_terminal(current):
        reason = f"'{current}' is terminal"
    else:
        allowed = sorted(target for source, target in table.edges if source == current)
        reason = f"allowed from '{current}': {', '.join(allowed) or 'none'}"
    return Violation(
        code="INVALID_TRANSITION",
        field=field_name,
        message=f"Cannot move {field_name} from {current} to {requested} ({reason}).",
        category=ViolationCategory.TRANSITION,
        details={"from": current, "to": requested},
    )


def check_initial_status(
    table: TransitionTable, requested: str | None, field_name: str = "status",
) -> Violation | None:
    """Creates must start in the table's initial status (or leave it unset)."""
    if requested is None or requested == table.initial:
        return None
    if not isinstance(requested, str):
        return Violation(
            code="INVALID_INITIAL_STATUS",
            field=field_name,
            message=f"{field_name} must be a status name such as {table.initial}.",
            category=ViolationCategory.TRANSITION,
            details={"from": None, "to": None},
        )
    return Violation(
        code="INVALID_INITIAL_STATUS",
        field=field_name,
        message=f"New resources start in {table.initial}, not {requested}.",
        category=ViolationCategory.TRANSITION,
        details={"from": None, "to": requested},
    )
