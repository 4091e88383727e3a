"""Field Validation Enforcement — structural and field-level checks per resource kind.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Runs on the MERGED record (previous + patch), so every field is re-validated
    - Never short-circuits: every field error of a request is collected
    - Strings are trimmed (normalize_record) before length checks
    - Status fields are not checked here (state machine owns them)
    - Unit spelling is checked here; unit dimension is checked by enforce_consistency

Design Decisions:
    - Declarative rule dataclasses over per-kind functions: KindProfile lists its rules,
      one runner evaluates them (tagged-variant kinds, no inheritance)
    - Null and missing are the same thing: PATCH {"field": null} clears a field
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Protocol

from rulebook.core.domain_types import Operation
from rulebook.core.errors import Violation, ViolationCategory

VERSION_PATTERN = re.compile(r"^\d+(\.\d+)*$")


# --- Path helpers -------------------------------------------------------------

def get_path(record: dict, path: str) -> Any:
    """Read a dotted path; returns None when any segment is absent."""
    node: Any = record
    for part in path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
        if node is None:
            return None
    return node


def set_path(record: dict, path: str, value: Any) -> None:
    """Write a dotted path, creating intermediate dicts."""
    parts = path.split(".")
    node = record
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def is_present(value: Any) -> bool:
    return value is not None


def _holds(value: Any, values: frozenset[str]) -> bool:
    return isinstance(value, str) and value in values


# --- Rules --------------------------------------------------------------------

class FieldRule(Protocol):
    """Structural contract for declarative field rules."""
    def check(
        self, record: dict, previous: dict | None, operation: Operation, cascade: bool,
    ) -> list[Violation]: ...


@dataclass(frozen=True)
class StringRule:
    """Trimmed string with length bounds."""
    path: str
    max_length: int
    min_length: int = 1
    required: bool = False

    def check(self, record, previous, operation, cascade) -> list[Violation]:
        value = get_path(record, self.path)
        if value is None:
            return [_required(self.path)] if self.required else []
        if not isinstance(value, str):
            return [_field(self.path, "INVALID_TYPE", f"{self.path} must be a string.")]
        if len(value) < self.min_length:
            return [_field(
                self.path, "TOO_SHORT",
                f"{self.path} must be at least {self.min_length} character(s).",
            )]
        if len(value) > self.max_length:
            return [_field(
                self.path, "TOO_LONG",
                f"{self.path} must be at most {self.max_length} characters "
                f"(got {len(value)}).",
            )]
        return []


@dataclass(frozen=True)
class NumberRule:
    """Numeric range; bools are never numbers."""
    path: str
    required: bool = False
    gt: float | None = None
    ge: float | None = None
    le: float | None = None
    integer: bool = False

    def check(self, record, previous, operation, cascade) -> list[Violation]:
        value = get_path(record, self.path)
        if value is None:
            return [_required(self.path)] if self.required else []
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return [_field(self.path, "INVALID_TYPE", f"{self.path} must be a number.")]
        if self.integer and not isinstance(value, int):
            return [_field(self.path, "INVALID_TYPE", f"{self.path} must be an integer.")]
        if isinstance(value, float) and not math.isfinite(value):
            return [_range(self.path, value, "a finite number")]
        if self.gt is not None and not value > self.gt:
            return [_range(self.path, value, f"greater than {self.gt:g}")]
        if self.ge is not None and not value >= self.ge:
            return [_range(self.path, value, f"at least {self.ge:g}")]
        if self.le is not None and not value <= self.le:
            return [_range(self.path, value, f"at most {self.le:g}")]
        return []


@dataclass(frozen=True)
class EnumRule:
    """Strict membership: case-sensitive, no coercion."""
    path: str
    values: frozenset[str]
    required: bool = False

    def check(self, record, previous, operation, cascade) -> list[Violation]:
        value = get_path(record, self.path)
        if value is None:
            return [_required(self.path)] if self.required else []
        if not isinstance(value, str) or value not in self.values:
            return [_field(
                self.path, "INVALID_ENUM",
                f"{self.path} must be one of: {', '.join(sorted(self.values))}.",
                details={"allowed": sorted(self.values)},
            )]
        return []


@dataclass(frozen=True)
class RequiredTogether:
    """Both fields present or both absent (a quantity and its unit).

    With required=True, both absent is two REQUIRED field errors; one without
    the other is always the semantic REQUIRED_TOGETHER.
    """
    first: str
    second: str
    required: bool = False

    def check(self, record, previous, operation, cascade) -> list[Violation]:
        has_first = is_present(get_path(record, self.first))
        has_second = is_present(get_path(record, self.second))
        if not has_first and not has_second and self.required:
            return [_required(self.first), _required(self.second)]
        if has_first == has_second:
            return []
        missing, present = (
            (self.second, self.first) if has_first else (self.first, self.second)
        )
        return [Violation(
            code="REQUIRED_TOGETHER",
            field=missing,
            message=f"{present} requires {missing}.",
            category=ViolationCategory.SEMANTIC,
        )]


@dataclass(frozen=True)
class RequiredIf:
    """Field required when another field holds one of when_values."""
    path: str
    when_path: str
    when_values: frozenset[str]

    def check(self, record, previous, operation, cascade) -> list[Violation]:
        if not _holds(get_path(record, self.when_path), self.when_values):
            return []
        if is_present(get_path(record, self.path)):
            return []
        return [Violation(
            code="CONDITIONALLY_REQUIRED",
            field=self.path,
            message=(
                f"{self.path} is required when {self.when_path} is "
                f"{get_path(record, self.when_path)}."
            ),
            category=ViolationCategory.SEMANTIC,
        )]


@dataclass(frozen=True)
class ForbiddenUnless:
    """Field must stay absent until another field holds one of when_values."""
    path: str
    when_path: str
    when_values: frozenset[str]

    def check(self, record, previous, operation, cascade) -> list[Violation]:
        if _holds(get_path(record, self.when_path), self.when_values):
            return []
        if not is_present(get_path(record, self.path)):
            return []
        return [Violation(
            code="FIELD_NOT_ALLOWED",
            field=self.path,
            message=(
                f"{self.path} may only be set when {self.when_path} is "
                f"{' or '.join(sorted(self.when_values))}."
            ),
            category=ViolationCategory.SEMANTIC,
        )]


@dataclass(frozen=True)
class ReferenceRule:
    """Foreign key: required at create, never cleared by a request."""
    path: str

    def check(self, record, previous, operation, cascade) -> list[Violation]:
        value = get_path(record, self.path)
        if value is not None and not isinstance(value, str):
            return [_field(self.path, "INVALID_TYPE", f"{self.path} must be an id string.")]
        if operation == Operation.CREATE and not value:
            return [_required(self.path)]
        if cascade or value or previous is None:
            return []
        if get_path(previous, self.path) is not None:
            return [_field(
                self.path, "REFERENCE_NOT_NULLABLE",
                f"{self.path} cannot be cleared.",
            )]
        return []


@dataclass(frozen=True)
class VersionRule:
    """Dotted numeric version; must increase whenever a tracked block changes."""
    path: str
    tracked: str

    def check(self, record, previous, operation, cascade) -> list[Violation]:
        value = get_path(record, self.path)
        if value is None:
            return [_required(self.path)]
        if not isinstance(value, str) or not VERSION_PATTERN.match(value):
            return [_field(
                self.path, "INVALID_VERSION",
                f"{self.path} must be dotted numbers such as 1.0.2.",
            )]
        if previous is None or cascade:
            return []
        old = get_path(previous, self.path)
        if not isinstance(old, str) or not VERSION_PATTERN.match(old):
            return []
        order = compare_versions(value, old)
        if order < 0:
            return [Violation(
                code="VERSION_DECREASED",
                field=self.path,
                message=f"{self.path} cannot go from {old} back to {value}.",
                category=ViolationCategory.SEMANTIC,
            )]
        changed = (previous.get(self.tracked) or {}) != (record.get(self.tracked) or {})
        if changed and order == 0:
            return [Violation(
                code="VERSION_NOT_INCREMENTED",
                field=self.path,
                message=(
                    f"{self.tracked} changed; {self.path} must be greater than {old}."
                ),
                category=ViolationCategory.SEMANTIC,
            )]
        return []


def compare_versions(left: str, right: str) -> int:
    """-1 / 0 / 1 comparison of dotted numeric versions (1.0 == 1)."""
    a = [int(p) for p in left.split(".")]
    b = [int(p) for p in right.split(".")]
    width = max(len(a), len(b))
    a += [0] * (width - len(a))
    b += [0] * (width - len(b))
    return (a > b) - (a < b)


# --- Runner -------------------------------------------------------------------

def normalize_record(record: dict, trimmed_paths: tuple[str, ...]) -> dict:
    """Trim whitespace on string fields; empty optional strings become None."""
    for path in trimmed_paths:
        value = get_path(record, path)
        if isinstance(value, str):
            set_path(record, path, value.strip() or None)
    return record


def validate_fields(
    rules: tuple[FieldRule, ...],
    record: dict,
    previous: dict | None,
    operation: Operation,
    cascade: bool = False,
) -> list[Violation]:
    """Run every rule and collect every violation."""
    violations: list[Violation] = []
    for rule in rules:
        violations.extend(rule.check(record, previous, operation, cascade))
    return violations


# --- Helpers ------------------------------------------------------------------

def _field(path: str, code: str, message: str, details: dict | None = None) -> Violation:
    return Violation(
        code=code, field=path, message=message,
        category=ViolationCategory.FIELD, details=details or {},
    )


def _required(path: str) -> Violation:
    return _field(path, "REQUIRED", f"{path} is required.")


def _range(path: str, value: float, bound: str) -> Violation:
    return _field(
        path, "OUT_OF_RANGE", f"{path} must be {bound} (got {value}).",
        details={"value": value},
    )
