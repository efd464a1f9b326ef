"""Sync center Pydantic v2 response schemas."""

from typing import Any

from pydantic import BaseModel


class SnapshotResponse(BaseModel):
    """Records of one entity kind from the store or the provider."""

    entity: str
    count: int
    items: list[dict[str, Any]]


class UnifiedEntityResponse(BaseModel):
    external_id: str
    source: str
    status: str
    mismatched_fields: list[str] = []
    db: dict[str, Any] | None = None
    provider: dict[str, Any] | None = None


class DiffSummaryResponse(BaseModel):
    total: int
    ok: int
    missing: int
    extra: int
    mismatch: int
    new: int
    db_count: int
    provider_count: int


class ReconciliationResponse(BaseModel):
    """Store/provider diff for one entity kind."""

    entity: str
    summary: DiffSummaryResponse
    items: list[UnifiedEntityResponse]
