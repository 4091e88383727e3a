"""Resource Routes — create, patch, soft-delete and read designs, components and tests.

Invariants:
    - One router serves every kind; the collection segment maps to a ResourceKind
    - Every mutation goes through MutationService.apply (lock, rules, commit, audit)
    - Rejections surface as MutationRejectedError and are rendered by the global handler
    - Reads hide soft-deleted records unless include_deleted=true

Design Decisions:
    - MutationService resolved from app.state via a dependency: tests override it
      with app.dependency_overrides instead of patching globals
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, status

from rulebook.core.domain_types import Operation, ResourceKind
from rulebook.core.errors import UnknownResourceKindError
from rulebook.core.mutation import Accepted
from rulebook.schemas.resources import (
    MutationResponse, ResourceCreate, ResourceListResponse, ResourcePatch, WriteSummary,
)
from rulebook.services.mutation_service import MutationService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["resources"])

COLLECTIONS: dict[str, ResourceKind] = {
    "designs": ResourceKind.DESIGN,
    "components": ResourceKind.COMPONENT,
    "tests": ResourceKind.TEST,
}


def get_mutation_service(request: Request) -> MutationService:
    return request.app.state.mutation_service


def resolve_collection(collection: str) -> ResourceKind:
    kind = COLLECTIONS.get(collection)
    if kind is None:
        raise UnknownResourceKindError(collection)
    return kind


def _mutation_response(accepted: Accepted) -> MutationResponse:
    return MutationResponse(
        resource=accepted.primary.record,
        cascaded=[WriteSummary(**w.summary()) for w in accepted.cascades],
    )


@router.post(
    "/{collection}", response_model=MutationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_resource(
    body: ResourceCreate,
    kind: ResourceKind = Depends(resolve_collection),
    service: MutationService = Depends(get_mutation_service),
):
    """Create a resource in its initial status."""
    accepted = await service.apply(kind, Operation.CREATE, body.id, body.payload())
    return _mutation_response(accepted)


@router.patch("/{collection}/{resource_id}", response_model=MutationResponse)
async def update_resource(
    resource_id: str,
    body: ResourcePatch,
    kind: ResourceKind = Depends(resolve_collection),
    service: MutationService = Depends(get_mutation_service),
):
    """Merge a partial update into the stored record and re-validate it."""
    accepted = await service.apply(kind, Operation.UPDATE, resource_id, body.payload())
    return _mutation_response(accepted)


@router.delete("/{collection}/{resource_id}", response_model=MutationResponse)
async def delete_resource(
    resource_id: str,
    kind: ResourceKind = Depends(resolve_collection),
    service: MutationService = Depends(get_mutation_service),
):
    """Soft-delete a resource; a draft design releases its components."""
    accepted = await service.apply(kind, Operation.DELETE, resource_id)
    return _mutation_response(accepted)


@router.get("/{collection}/{resource_id}")
async def get_resource(
    resource_id: str,
    include_deleted: bool = Query(False),
    kind: ResourceKind = Depends(resolve_collection),
    service: MutationService = Depends(get_mutation_service),
):
    """Get one resource."""
    return await service.get(kind, resource_id, include_deleted)


@router.get("/{collection}", response_model=ResourceListResponse)
async def list_resources(
    include_deleted: bool = Query(False),
    design_id: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    kind: ResourceKind = Depends(resolve_collection),
    service: MutationService = Depends(get_mutation_service),
):
    """List resources of one kind, optionally scoped to a design or a status."""
    filters = {}
    if design_id is not None:
        filters["design_id"] = design_id
    if status_filter is not None:
        filters["status"] = status_filter
    items = await service.list(kind, filters, include_deleted)
    return ResourceListResponse(items=items, count=len(items))
