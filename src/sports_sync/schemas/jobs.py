"""Job definition and run history Pydantic v2 schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from sports_sync.schemas.common import PaginationMeta


class JobRunResponse(BaseModel):
    """One execution of a job."""

    id: UUID
    job_key: str
    status: str
    trigger: str
    triggered_by: str | None = None
    started_at: datetime
    finished_at: datetime | None = None
    duration_ms: int | None = None
    rows_affected: int | None = None
    error_message: str | None = None
    meta: dict | None = None

    model_config = {"from_attributes": True}


class JobResponse(BaseModel):
    """Job definition with its latest run."""

    key: str
    description: str | None = None
    enabled: bool
    schedule_cron: str | None = None
    config: dict | None = None
    updated_at: datetime
    last_run: JobRunResponse | None = None

    model_config = {"from_attributes": True}


class JobListResponse(BaseModel):
    items: list[JobResponse]


class JobUpdateRequest(BaseModel):
    """Admin edits; omitted fields stay unchanged."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool | None = None
    description: str | None = Field(default=None, max_length=500)
    schedule_cron: str | None = Field(default=None, alias="scheduleCron", max_length=100)
    config: dict | None = None


class JobRunAcceptedResponse(BaseModel):
    run_id: UUID
    status: str
    message: str


class PaginatedJobRunResponse(BaseModel):
    items: list[JobRunResponse]
    pagination: PaginationMeta
