"""Error Hierarchy — tests for violations, status precedence and response envelopes.

Tests cover:
    - Violation derives http_status from its category unless overridden
    - violation_status precedence 404 > 409 > 422 > 400
    - MutationRejectedError single vs multi-error envelope
    - StoreError never leaks its internal message
"""

import pytest

from rulebook.core.errors import (
    MutationRejectedError, ResourceNotFoundError, StoreError, UnknownResourceKindError,
    Violation, ViolationCategory, violation_status,
)


def _v(code, category, http_status=0, field="name"):
    return Violation(code, field, f"{code} happened", category, http_status)


# ─── Violation ───────────────────────────────────────────────────

@pytest.mark.parametrize("category,expected", [
    (ViolationCategory.FIELD, 400),
    (ViolationCategory.TRANSITION, 400),
    (ViolationCategory.REFERENCE, 409),
    (ViolationCategory.AGGREGATE, 409),
    (ViolationCategory.UNIQUENESS, 409),
    (ViolationCategory.CONFLICT, 409),
    (ViolationCategory.SEMANTIC, 422),
])
def test_violation_status_from_category(category, expected):
    assert _v("X", category).http_status == expected


def test_explicit_status_overrides_category():
    assert _v("REFERENCE_NOT_FOUND", ViolationCategory.REFERENCE, 404).http_status == 404


def test_violation_to_dict():
    data = _v("TOO_LONG", ViolationCategory.FIELD).to_dict()
    assert data["id"] == "TOO_LONG"
    assert data["category"] == "field"
    assert data["http_status"] == 400


# ─── Precedence ──────────────────────────────────────────────────

def test_not_found_outranks_everything():
    violations = [
        _v("A", ViolationCategory.FIELD),
        _v("B", ViolationCategory.SEMANTIC),
        _v("C", ViolationCategory.REFERENCE, 404),
        _v("D", ViolationCategory.AGGREGATE),
    ]
    assert violation_status(violations) == 404


def test_conflict_outranks_semantic_and_field():
    violations = [_v("A", ViolationCategory.SEMANTIC), _v("B", ViolationCategory.UNIQUENESS)]
    assert violation_status(violations) == 409


def test_semantic_outranks_field():
    violations = [_v("A", ViolationCategory.FIELD), _v("B", ViolationCategory.SEMANTIC)]
    assert violation_status(violations) == 422


# ─── Envelopes ───────────────────────────────────────────────────

def test_single_violation_envelope():
    error = MutationRejectedError([_v("WEIGHT_EXCEEDED", ViolationCategory.AGGREGATE)], "consistency")
    assert error.http_status == 409
    assert error.to_response() == {
        "error_id": "WEIGHT_EXCEEDED", "message": "WEIGHT_EXCEEDED happened",
    }


def test_multi_violation_envelope():
    error = MutationRejectedError([
        _v("REQUIRED", ViolationCategory.FIELD, field="name"),
        _v("OUT_OF_RANGE", ViolationCategory.FIELD, field="weight"),
    ], "field")
    assert error.http_status == 400
    assert error.to_response() == {
        "error_id": "FIELD_REJECTED",
        "errors": [
            {"id": "REQUIRED", "field": "name", "message": "REQUIRED happened"},
            {"id": "OUT_OF_RANGE", "field": "weight", "message": "OUT_OF_RANGE happened"},
        ],
    }


def test_rejection_requires_a_violation():
    with pytest.raises(ValueError):
        MutationRejectedError([], "field")


def test_not_found_and_unknown_kind_statuses():
    assert ResourceNotFoundError("Design", "d9").http_status == 404
    assert UnknownResourceKindError("rockets").to_response()["error_id"] == "UNKNOWN_RESOURCE_KIND"


def test_store_error_hides_internal_message():
    error = StoreError("password authentication failed for user rulebook", "commit")
    assert error.http_status == 500
    response = error.to_response()
    assert response["error_id"] == "STORE_ERROR"
    assert "password" not in response["message"]
