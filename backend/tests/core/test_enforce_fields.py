"""Field Validation — tests for declarative per-kind field rules.

Tests cover:
    - string trimming and length bounds (name 1-100, description <= 2000)
    - numeric ranges, integer-only fields, bools rejected as numbers
    - strict enum membership (case-sensitive)
    - required-together quantity/unit pairs (422 semantic)
    - result required iff COMPLETED, forbidden otherwise
    - version format, decrease and missing increment
    - design_id required at create, never cleared by a request
    - every violation collected (no short-circuit)
"""

import pytest

from rulebook.core.domain_types import Operation
from rulebook.core.enforce_fields import (
    compare_versions, normalize_record, validate_fields,
)
from rulebook.core.errors import ViolationCategory
from rulebook.core.resource_kinds import COMPONENT, DESIGN, TEST
from tests.factories import make_component, make_design, make_test


def _codes(violations) -> set[tuple[str, str]]:
    return {(v.code, v.field) for v in violations}


def _design_errors(record, previous=None, operation=Operation.CREATE):
    normalize_record(record, DESIGN.trimmed)
    return validate_fields(DESIGN.rules, record, previous, operation)


# ─── Strings ─────────────────────────────────────────────────────

def test_valid_design_has_no_violations():
    assert _design_errors(make_design()) == []


def test_name_is_trimmed_before_length_check():
    record = make_design(name="   ")
    violations = _design_errors(record)
    assert record["name"] is None
    assert ("REQUIRED", "name") in _codes(violations)


def test_name_over_100_chars_rejected():
    violations = _design_errors(make_design(name="x" * 101))
    assert ("TOO_LONG", "name") in _codes(violations)
    assert violations[0].http_status == 400


def test_name_of_100_chars_with_padding_accepted():
    record = make_design(name="  " + "x" * 100 + "  ")
    assert _design_errors(record) == []
    assert len(record["name"]) == 100


def test_description_over_2000_chars_rejected():
    violations = _design_errors(make_design(description="d" * 2001))
    assert ("TOO_LONG", "description") in _codes(violations)


def test_non_string_name_rejected():
    assert ("INVALID_TYPE", "name") in _codes(_design_errors(make_design(name=42)))


# ─── Numbers ─────────────────────────────────────────────────────

def test_weight_must_be_positive():
    violations = _design_errors(make_design(weight=0))
    assert ("OUT_OF_RANGE", "specifications.weight") in _codes(violations)


def test_weight_upper_bound():
    assert _design_errors(make_design(weight=1_000_000)) == []
    violations = _design_errors(make_design(weight=1_000_001))
    assert ("OUT_OF_RANGE", "specifications.weight") in _codes(violations)


def test_bool_is_not_a_number():
    violations = _design_errors(make_design(weight=True))
    assert ("INVALID_TYPE", "specifications.weight") in _codes(violations)


def test_passenger_capacity_must_be_integer():
    record = make_design()
    record["specifications"]["passenger_capacity"] = 12.5
    assert ("INVALID_TYPE", "specifications.passenger_capacity") in _codes(
        _design_errors(record),
    )


def test_weight_without_unit_is_semantic_gap():
    record = make_design()
    del record["specifications"]["weight_unit"]
    violations = _design_errors(record)
    assert _codes(violations) == {("REQUIRED_TOGETHER", "specifications.weight_unit")}
    assert violations[0].http_status == 422


def test_unit_without_weight_is_semantic_gap():
    record = make_design()
    del record["specifications"]["weight"]
    assert _codes(_design_errors(record)) == {
        ("REQUIRED_TOGETHER", "specifications.weight"),
    }


def test_missing_weight_and_unit_are_plain_required():
    record = make_design()
    record["specifications"] = {}
    assert _codes(_design_errors(record)) == {
        ("REQUIRED", "specifications.weight"),
        ("REQUIRED", "specifications.weight_unit"),
    }


def test_component_weight_without_unit_is_semantic_gap():
    record = make_component()
    del record["weight_unit"]
    violations = validate_fields(COMPONENT.rules, record, None, Operation.CREATE)
    assert _codes(violations) == {("REQUIRED_TOGETHER", "weight_unit")}


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_numbers_rejected(value):
    record = make_design()
    record["specifications"].update(wingspan=value, wingspan_unit="m")
    assert _codes(_design_errors(record)) == {
        ("OUT_OF_RANGE", "specifications.wingspan"),
    }


# ─── Enums ───────────────────────────────────────────────────────

def test_unit_enum_is_case_sensitive():
    violations = _design_errors(make_design(unit="KG"))
    assert ("INVALID_ENUM", "specifications.weight_unit") in _codes(violations)


def test_component_type_must_be_known():
    record = make_component(type="ROTOR")
    violations = validate_fields(COMPONENT.rules, record, None, Operation.CREATE)
    assert _codes(violations) == {("INVALID_ENUM", "type")}
    assert "WING" in violations[0].details["allowed"]


def test_length_unit_spelling_checked_but_not_dimension():
    """A mass unit on a length field is a consistency error, not a field error."""
    record = make_design()
    record["specifications"].update(wingspan=28.7, wingspan_unit="kg")
    assert _design_errors(record) == []


# ─── Required together ───────────────────────────────────────────

def test_wingspan_without_unit_is_semantic_gap():
    record = make_design()
    record["specifications"]["wingspan"] = 28.7
    violations = _design_errors(record)
    assert _codes(violations) == {("REQUIRED_TOGETHER", "specifications.wingspan_unit")}
    assert violations[0].category == ViolationCategory.SEMANTIC
    assert violations[0].http_status == 422


def test_length_unit_without_value_is_semantic_gap():
    record = make_design()
    record["specifications"]["length_unit"] = "m"
    assert ("REQUIRED_TOGETHER", "specifications.length") in _codes(_design_errors(record))


# ─── Conditional result ──────────────────────────────────────────

def test_completed_test_requires_result():
    record = make_test(status="COMPLETED")
    violations = validate_fields(TEST.rules, record, None, Operation.UPDATE)
    assert _codes(violations) == {("CONDITIONALLY_REQUIRED", "result")}


def test_result_forbidden_before_completion():
    record = make_test(status="IN_PROGRESS", result="PASS")
    violations = validate_fields(TEST.rules, record, None, Operation.UPDATE)
    assert _codes(violations) == {("FIELD_NOT_ALLOWED", "result")}
    assert violations[0].http_status == 422


def test_completed_with_result_is_valid():
    record = make_test(status="COMPLETED", result="FAIL")
    assert validate_fields(TEST.rules, record, None, Operation.UPDATE) == []


@pytest.mark.parametrize("status", [["COMPLETED"], {"x": 1}])
def test_non_string_status_does_not_break_result_rules(status):
    record = make_test(status=status, result="PASS")
    violations = validate_fields(TEST.rules, record, None, Operation.UPDATE)
    assert _codes(violations) == {("FIELD_NOT_ALLOWED", "result")}


# ─── Versions ────────────────────────────────────────────────────

def test_compare_versions_treats_trailing_zeros_as_equal():
    assert compare_versions("1.0", "1") == 0
    assert compare_versions("2.10", "2.9") == 1
    assert compare_versions("1.0.1", "1.1") == -1


def test_version_must_be_dotted_numbers():
    violations = _design_errors(make_design(version="v2"))
    assert ("INVALID_VERSION", "version") in _codes(violations)


def test_specifications_change_without_version_bump_rejected():
    previous = make_design()
    record = make_design(weight=40000)
    violations = _design_errors(record, previous, Operation.UPDATE)
    assert _codes(violations) == {("VERSION_NOT_INCREMENTED", "version")}


def test_specifications_change_with_version_bump_accepted():
    previous = make_design()
    record = make_design(weight=40000, version="1.1")
    assert _design_errors(record, previous, Operation.UPDATE) == []


def test_version_may_not_decrease():
    previous = make_design(version="2.0")
    record = make_design(version="1.9")
    violations = _design_errors(record, previous, Operation.UPDATE)
    assert _codes(violations) == {("VERSION_DECREASED", "version")}


def test_text_change_needs_no_version_bump():
    previous = make_design()
    record = make_design(description="Updated notes")
    assert _design_errors(record, previous, Operation.UPDATE) == []


# ─── References ──────────────────────────────────────────────────

def test_design_id_required_on_create():
    record = make_component(design_id=None)
    violations = validate_fields(COMPONENT.rules, record, None, Operation.CREATE)
    assert _codes(violations) == {("REQUIRED", "design_id")}


def test_request_cannot_clear_design_id():
    previous = make_component()
    record = make_component(design_id=None)
    violations = validate_fields(COMPONENT.rules, record, previous, Operation.UPDATE)
    assert _codes(violations) == {("REFERENCE_NOT_NULLABLE", "design_id")}


def test_cascade_may_clear_design_id():
    previous = make_component()
    record = make_component(design_id=None)
    assert validate_fields(
        COMPONENT.rules, record, previous, Operation.UPDATE, cascade=True,
    ) == []


def test_orphaned_component_may_be_updated():
    previous = make_component(design_id=None)
    record = make_component(design_id=None, material="Titanium")
    assert validate_fields(COMPONENT.rules, record, previous, Operation.UPDATE) == []


# ─── Collection ──────────────────────────────────────────────────

def test_all_field_errors_collected():
    record = make_component(name="", type="rotor", weight=-1, unit="stone")
    record["material"] = "m" * 101
    violations = validate_fields(COMPONENT.rules, normalize_record(record, COMPONENT.trimmed),
                                 None, Operation.CREATE)
    assert _codes(violations) == {
        ("REQUIRED", "name"),
        ("INVALID_ENUM", "type"),
        ("OUT_OF_RANGE", "weight"),
        ("INVALID_ENUM", "weight_unit"),
        ("TOO_LONG", "material"),
    }
