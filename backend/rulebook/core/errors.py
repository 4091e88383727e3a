"""Error Hierarchy — typed violations and categorized exceptions for all Rulebook failure modes.

Invariants:
    - Every Violation has a code (rule id), field path, message and ViolationCategory
    - Every exception has a code (str), category (ErrorCategory), severity and http_status
    - Violations are values (returned by core checks); exceptions cross the shell boundary
    - to_response() produces the {error_id, message | errors[]} envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with RulebookError base: FastAPI global handler catches all (uniform error shape)
    - Violation as frozen dataclass: core checks stay pure and comparable in tests
    - http_status derived from category at construction: orchestrator never guesses
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


class ViolationCategory(str, Enum):
    """Which rule family detected the violation."""
    FIELD = "field"
    TRANSITION = "transition"
    REFERENCE = "reference"
    AGGREGATE = "aggregate"
    UNIQUENESS = "uniqueness"
    CONFLICT = "conflict"
    SEMANTIC = "semantic"


_CATEGORY_STATUS: dict[ViolationCategory, int] = {
    ViolationCategory.FIELD: 400,
    ViolationCategory.TRANSITION: 400,
    ViolationCategory.REFERENCE: 409,
    ViolationCategory.AGGREGATE: 409,
    ViolationCategory.UNIQUENESS: 409,
    ViolationCategory.CONFLICT: 409,
    ViolationCategory.SEMANTIC: 422,
}

# Most specific first: a missing resource outranks a conflict, a conflict
# outranks a semantic gap, which outranks a plain field error.
_STATUS_PRECEDENCE: tuple[int, ...] = (404, 409, 422, 400)


@dataclass(frozen=True)
class Violation:
    """One broken rule, scoped to a field path (dotted, e.g. specifications.weight)."""
    code: str
    field: str
    message: str
    category: ViolationCategory
    http_status: int = 0
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.http_status:
            object.__setattr__(
                self, "http_status", _CATEGORY_STATUS[self.category],
            )

    def to_dict(self) -> dict:
        return {
            "id": self.code,
            "field": self.field,
            "message": self.message,
            "category": self.category.value,
            "http_status": self.http_status,
            "details": dict(self.details),
        }


def violation_status(violations: list[Violation]) -> int:
    """Pick the HTTP status for a rejected request (404 > 409 > 422 > 400)."""
    present = {v.http_status for v in violations}
    for status in _STATUS_PRECEDENCE:
        if status in present:
            return status
    return 400


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resource_kind: str | None = None
    resource_id: str | None = None
    operation: str | None = None
    debug_info: dict[str, Any] | None = None


class RulebookError(Exception):
    """Base exception for all Rulebook errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to the single-error envelope."""
        return {"error_id": self.code, "message": self.message}


# ─── Domain Errors (400-level) ──────────────────────────────────

class MutationRejectedError(RulebookError):
    """A mutation broke one or more rules. Carries every violation of the failing stage."""
    def __init__(
        self, violations: list[Violation], stage: str,
        context: ErrorContext | None = None,
    ):
        if not violations:
            raise ValueError("MutationRejectedError requires at least one violation")
        first = violations[0]
        super().__init__(
            first.message if len(violations) == 1
            else f"{len(violations)} rule violations in {stage} stage",
            first.code if len(violations) == 1 else f"{stage.upper()}_REJECTED",
            ErrorCategory.CONFLICT if violation_status(violations) == 409
            else ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, violation_status(violations),
        )
        self.violations = violations
        self.stage = stage

    def to_response(self) -> dict:
        if len(self.violations) == 1:
            return {"error_id": self.code, "message": self.message}
        return {
            "error_id": self.code,
            "errors": [
                {"id": v.code, "field": v.field, "message": v.message}
                for v in self.violations
            ],
        }


class ResourceNotFoundError(RulebookError):
    """Requested resource does not exist (or is soft-deleted and hidden)."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class UnknownResourceKindError(RulebookError):
    """Request named a resource kind the engine has no profile for."""
    def __init__(self, kind: str, context: ErrorContext | None = None):
        super().__init__(
            f"Unknown resource kind '{kind}'",
            "UNKNOWN_RESOURCE_KIND", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.kind = kind


class UnconvertibleUnitsError(RulebookError):
    """No conversion path between two units within a dimension."""
    def __init__(
        self, from_unit: str, to_unit: str, dimension: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Cannot convert '{from_unit}' to '{to_unit}' as {dimension}",
            "UNCONVERTIBLE_UNITS", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 422,
        )
        self.from_unit = from_unit
        self.to_unit = to_unit
        self.dimension = dimension


# ─── Infrastructure Errors (500-level) ──────────────────────────

class StoreError(RulebookError):
    """Resource store operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Store {operation} failed: {message}",
            "STORE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.operation = operation

    def to_response(self) -> dict:
        return {"error_id": self.code, "message": "An internal storage error occurred"}
