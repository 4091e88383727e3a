"""Snapshot Loader — reads every record a mutation's rules may consult.

Invariants:
    - Loads the target (including soft-deleted), every parent it touches (old and new),
      and each such parent's non-deleted children and measurements
    - Never writes; called while the mutation service holds its lock, so the
      snapshot is consistent for the whole evaluation

Design Decisions:
    - Load-by-role from KindProfile: the loader has no per-kind branches
    - Over-fetch siblings rather than query per rule: one read phase, then pure checks
"""

from rulebook.core.domain_types import ResourceRole
from rulebook.core.mutation import MutationRequest, ResourceSnapshot
from rulebook.core.repository_protocols import ResourceStore
from rulebook.core.resource_kinds import PROFILES, get_profile


async def load_snapshot(store: ResourceStore, request: MutationRequest) -> ResourceSnapshot:
    """Build the ResourceSnapshot for one request."""
    profile = get_profile(request.kind)
    snapshot = ResourceSnapshot()

    target = await store.get(profile.kind, request.target_id, include_deleted=True)
    if target is not None:
        snapshot.add(profile.kind, target)

    if profile.role == ResourceRole.PARENT:
        await _load_family(store, snapshot, profile.kind, request.target_id)
        return snapshot

    parent_ids = set()
    if target is not None and isinstance(target.get(profile.parent_field), str):
        parent_ids.add(target[profile.parent_field])
    requested = request.payload.get(profile.parent_field)
    if isinstance(requested, str):
        parent_ids.add(requested)
    for parent_id in sorted(parent_ids):
        parent = await store.get(profile.parent_kind, parent_id, include_deleted=True)
        if parent is None:
            continue
        snapshot.add(profile.parent_kind, parent)
        await _load_family(store, snapshot, profile.parent_kind, parent_id)
    return snapshot


async def _load_family(
    store: ResourceStore, snapshot: ResourceSnapshot, parent_kind, parent_id: str,
) -> None:
    for member in PROFILES.values():
        if member.parent_kind != parent_kind:
            continue
        for record in await store.list(member.kind, {member.parent_field: parent_id}):
            snapshot.add(member.kind, record)
