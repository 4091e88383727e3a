"""Cascade Executor — tests for side-effect writes derived from a primary mutation.

Tests cover:
    - deleting a DRAFT or REJECTED design de-references its active components
    - deleting an APPROVED design cascades nothing
    - tests and deleted components are never touched by the cascade
    - cascade writes carry the shared instant and the cascade flag
    - validate_cascade refuses cascades onto missing or deleted records
    - component deletion cascades nothing
"""

from rulebook.core.cascade import compute_cascade, validate_cascade
from rulebook.core.domain_types import Operation, ResourceKind
from rulebook.core.mutation import Write
from rulebook.core.resource_kinds import COMPONENT, DESIGN
from tests.factories import NOW, make_component, make_design, make_test, snapshot_of

D = ResourceKind.DESIGN
C = ResourceKind.COMPONENT
T = ResourceKind.TEST


def test_draft_design_delete_releases_components():
    design = make_design()
    snapshot = snapshot_of(
        (D, design),
        (C, make_component("a")),
        (C, make_component("b", name="Tail", type="TAIL")),
        (T, make_test("t1")),
    )
    writes = compute_cascade(DESIGN, Operation.DELETE, design, snapshot, NOW)
    assert [(w.kind, w.id) for w in writes] == [(C, "a"), (C, "b")]
    for write in writes:
        assert write.cascade is True
        assert write.patch == {"design_id": None}
        assert write.record["design_id"] is None
        assert write.record["metadata"]["updated_at"] == NOW
        assert write.record["metadata"]["deleted_at"] is None


def test_rejected_design_delete_also_releases_components():
    design = make_design(status="REJECTED")
    snapshot = snapshot_of((D, design), (C, make_component("a")))
    writes = compute_cascade(DESIGN, Operation.DELETE, design, snapshot, NOW)
    assert [w.id for w in writes] == ["a"]


def test_approved_design_delete_cascades_nothing():
    design = make_design(status="APPROVED")
    snapshot = snapshot_of((D, design), (C, make_component("a")))
    assert compute_cascade(DESIGN, Operation.DELETE, design, snapshot, NOW) == []


def test_deleted_components_are_left_alone():
    design = make_design()
    snapshot = snapshot_of((D, design), (C, make_component("a", deleted=True)))
    assert compute_cascade(DESIGN, Operation.DELETE, design, snapshot, NOW) == []


def test_design_update_cascades_nothing():
    design = make_design()
    snapshot = snapshot_of((D, design), (C, make_component("a")))
    assert compute_cascade(DESIGN, Operation.UPDATE, design, snapshot, NOW) == []


def test_component_delete_cascades_nothing():
    component = make_component("a")
    snapshot = snapshot_of((D, make_design()), (C, component))
    assert compute_cascade(COMPONENT, Operation.DELETE, component, snapshot, NOW) == []


def test_validate_cascade_accepts_released_components():
    design = make_design()
    snapshot = snapshot_of((D, design), (C, make_component("a")))
    writes = compute_cascade(DESIGN, Operation.DELETE, design, snapshot, NOW)
    assert validate_cascade(writes, snapshot) == []


def test_validate_cascade_refuses_deleted_target():
    snapshot = snapshot_of((C, make_component("a", deleted=True)))
    write = Write(C, "a", make_component("a", design_id=None), {"design_id": None}, True)
    violations = validate_cascade([write], snapshot)
    assert [v.code for v in violations] == ["CASCADE_TARGET_UNAVAILABLE"]
    assert violations[0].http_status == 409


def test_validate_cascade_wraps_field_violations():
    snapshot = snapshot_of((C, make_component("a")))
    write = Write(C, "a", make_component("a", design_id=None, weight=-5), cascade=True)
    violations = validate_cascade([write], snapshot)
    assert [v.code for v in violations] == ["CASCADE_REJECTED"]
    assert violations[0].details == {"cause": "OUT_OF_RANGE"}
    assert violations[0].field == "components[a].weight"
