"""Seeding job Pydantic v2 request/response schemas.

Request bodies accept snake_case names and their camelCase aliases.
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from sports_sync.schemas.common import PaginationMeta


class SeedSeasonRequest(BaseModel):
    """Seed one season, optionally with its teams and fixtures."""

    model_config = ConfigDict(populate_by_name=True)

    season_external_id: int = Field(alias="seasonExternalId", gt=0, description="Provider id of the season")
    include_teams: bool = Field(default=True, alias="includeTeams")
    include_fixtures: bool = Field(default=True, alias="includeFixtures")
    future_only: bool = Field(default=False, alias="futureOnly", description="Skip fixtures that already started")
    dry_run: bool = Field(default=False, alias="dryRun", description="Validate and report without writing")


class BatchSeedSeasonsRequest(BaseModel):
    """Seed several seasons in one background job."""

    model_config = ConfigDict(populate_by_name=True)

    season_external_ids: list[int] = Field(alias="seasonExternalIds", min_length=1)
    include_teams: bool = Field(default=True, alias="includeTeams")
    include_fixtures: bool = Field(default=True, alias="includeFixtures")
    future_only: bool = Field(default=True, alias="futureOnly")
    dry_run: bool = Field(default=False, alias="dryRun")


class JobAcceptedResponse(BaseModel):
    """A background job was queued."""

    job_id: str
    message: str


class BatchJobAcceptedResponse(JobAcceptedResponse):
    total_seasons: int


class JobStatusItem(BaseModel):
    key: str
    status: str
    error: str | None = None


class JobStatusResponse(BaseModel):
    """Polling view of a job. ``progress`` is omitted while the total is unknown."""

    job_id: str
    state: Literal["waiting", "active", "completed", "failed"]
    progress: int | None = None
    total: int = 0
    success: int = 0
    failed: int = 0
    result: dict[str, Any] | None = None
    error: str | None = None
    items: list[JobStatusItem] | None = None


class SeedBatchResponse(BaseModel):
    """Seed batch summary."""

    id: UUID
    name: str
    version: str | None = None
    status: str
    trigger: str
    triggered_by: str | None = None
    dry_run: bool
    job_run_id: UUID | None = None
    items_total: int
    items_success: int
    items_failed: int
    started_at: datetime
    finished_at: datetime | None = None
    duration_ms: int | None = None
    error_message: str | None = None
    meta: dict | None = None

    model_config = {"from_attributes": True}


class PaginatedSeedBatchResponse(BaseModel):
    items: list[SeedBatchResponse]
    pagination: PaginationMeta


class BatchItemResponse(BaseModel):
    """Outcome of one processed entity."""

    id: UUID
    batch_id: UUID
    entity_type: str
    external_id: str | None = None
    action: str
    error_message: str | None = None
    meta: dict | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PaginatedBatchItemResponse(BaseModel):
    items: list[BatchItemResponse]
    pagination: PaginationMeta
