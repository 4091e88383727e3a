"""State Machine Engine — tests for the generic transition-table evaluator.

Tests cover:
    - listed edges are allowed, everything else is INVALID_TRANSITION
    - terminal statuses have no outgoing edges
    - self-moves need an explicit idempotent declaration
    - unknown statuses (DRAFT -> COMPLETED) are rejected
    - check_initial_status for creates
    - non-string requested statuses are violations, never crashes
"""

import pytest

from rulebook.core.errors import ViolationCategory
from rulebook.core.resource_kinds import DESIGN_TRANSITIONS, TEST_TRANSITIONS
from rulebook.core.state_machine import (
    check_initial_status, check_transition, transition_table,
)


# ─── Design table ────────────────────────────────────────────────

def test_draft_to_approved_allowed():
    assert check_transition(DESIGN_TRANSITIONS, "DRAFT", "APPROVED") is None


def test_rejected_back_to_draft_allowed():
    assert check_transition(DESIGN_TRANSITIONS, "REJECTED", "DRAFT") is None


def test_rejected_to_approved_blocked():
    violation = check_transition(DESIGN_TRANSITIONS, "REJECTED", "APPROVED")
    assert violation is not None
    assert violation.code == "INVALID_TRANSITION"
    assert violation.details == {"from": "REJECTED", "to": "APPROVED"}


def test_approved_is_terminal():
    assert DESIGN_TRANSITIONS.is_terminal("APPROVED")
    assert not DESIGN_TRANSITIONS.is_terminal("DRAFT")
    violation = check_transition(DESIGN_TRANSITIONS, "APPROVED", "DRAFT")
    assert violation is not None
    assert "terminal" in violation.message


def test_draft_to_completed_is_always_rejected():
    violation = check_transition(DESIGN_TRANSITIONS, "DRAFT", "COMPLETED")
    assert violation is not None
    assert violation.category == ViolationCategory.TRANSITION
    assert violation.http_status == 400
    assert "not a known status" in violation.message


def test_self_move_rejected_without_idempotent_flag():
    assert check_transition(DESIGN_TRANSITIONS, "DRAFT", "DRAFT") is not None


def test_self_move_allowed_when_idempotent():
    table = transition_table("OPEN", [("OPEN", "CLOSED")], idempotent=("OPEN",))
    assert check_transition(table, "OPEN", "OPEN") is None
    assert check_transition(table, "CLOSED", "CLOSED") is not None


# ─── Test table ──────────────────────────────────────────────────

def test_planned_may_skip_to_completed():
    assert check_transition(TEST_TRANSITIONS, "PLANNED", "COMPLETED") is None


def test_completed_cannot_reopen():
    violation = check_transition(TEST_TRANSITIONS, "COMPLETED", "IN_PROGRESS")
    assert violation is not None
    assert violation.field == "status"


def test_in_progress_cannot_go_back_to_planned():
    violation = check_transition(TEST_TRANSITIONS, "IN_PROGRESS", "PLANNED")
    assert violation is not None
    assert "COMPLETED" in violation.message


# ─── check_initial_status ────────────────────────────────────────

def test_initial_status_accepts_unset_or_initial():
    assert check_initial_status(DESIGN_TRANSITIONS, None) is None
    assert check_initial_status(DESIGN_TRANSITIONS, "DRAFT") is None


def test_initial_status_rejects_other_status():
    violation = check_initial_status(TEST_TRANSITIONS, "COMPLETED")
    assert violation is not None
    assert violation.code == "INVALID_INITIAL_STATUS"
    assert violation.category == ViolationCategory.TRANSITION


# ─── Malformed statuses ──────────────────────────────────────────

@pytest.mark.parametrize("requested", [["APPROVED"], {"x": 1}, 3])
def test_non_string_transition_is_rejected(requested):
    violation = check_transition(DESIGN_TRANSITIONS, "DRAFT", requested)
    assert violation.code == "INVALID_TRANSITION"
    assert violation.http_status == 400


@pytest.mark.parametrize("requested", [["PLANNED"], {"x": 1}])
def test_non_string_initial_status_is_rejected(requested):
    violation = check_initial_status(TEST_TRANSITIONS, requested)
    assert violation.code == "INVALID_INITIAL_STATUS"


def test_non_string_status_is_never_terminal():
    assert DESIGN_TRANSITIONS.is_terminal(["APPROVED"]) is False
