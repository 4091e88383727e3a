"""Resource Schemas — shape-only envelopes around arbitrary resource payloads.

Invariants:
    - ResourceCreate/ResourcePatch accept any JSON object; unknown keys become the payload
    - ResourceCreate.id, when given, is a non-blank string of at most 64 chars
    - Responses always carry the committed record and the cascade writes it caused

Design Decisions:
    - extra="allow" over a per-kind pydantic model: field rules are declared once in
      core/resource_kinds.py, so the boundary cannot drift from the engine
    - Rejections are never expressed here: a pydantic failure means a malformed request
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rulebook.core.domain_types import ResourceKind


class ResourceCreate(BaseModel):
    """Create body: optional client id plus the resource fields."""
    model_config = ConfigDict(extra="allow")

    id: str | None = Field(None, min_length=1, max_length=64)

    @field_validator("id")
    @classmethod
    def strip_id(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("id cannot be empty or whitespace")
        return v

    def payload(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class ResourcePatch(BaseModel):
    """Partial update body: every key is merged into the stored record."""
    model_config = ConfigDict(extra="allow")

    def payload(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class WriteSummary(BaseModel):
    kind: ResourceKind
    id: str
    cascade: bool = False


class MutationResponse(BaseModel):
    """Committed primary record and the cascade writes applied with it."""
    resource: dict[str, Any]
    cascaded: list[WriteSummary] = []


class ResourceListResponse(BaseModel):
    items: list[dict[str, Any]]
    count: int
