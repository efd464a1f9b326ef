"""Job API endpoints.

GET /jobs, PATCH /jobs/{key}, POST /jobs/{key}/run,
GET /jobs/{key}/runs, GET /jobs/runs/{run_id}/items.
"""

import math
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from sports_sync.core.background import task_runner
from sports_sync.core.dependencies import ProviderFactory, get_async_session, get_provider_factory
from sports_sync.models import Job, JobRun
from sports_sync.models.enums import RunStatus, RunTrigger
from sports_sync.schemas.common import PaginationMeta, PaginationParams
from sports_sync.schemas.jobs import (
    JobListResponse,
    JobResponse,
    JobRunAcceptedResponse,
    JobRunResponse,
    JobUpdateRequest,
    PaginatedJobRunResponse,
)
from sports_sync.schemas.sync import BatchItemResponse, PaginatedBatchItemResponse
from sports_sync.services import job_service

router = APIRouter(prefix="/jobs", tags=["jobs"])

_JOB_NOT_FOUND = "Job not found"


def _job_response(job: Job, last_run: JobRun | None) -> JobResponse:
    response = JobResponse.model_validate(job)
    response.last_run = JobRunResponse.model_validate(last_run) if last_run is not None else None
    return response


@router.get("", response_model=JobListResponse)
async def list_jobs(
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> JobListResponse:
    """List job definitions with their latest run."""
    rows = await job_service.list_jobs(session)
    return JobListResponse(items=[_job_response(job, run) for job, run in rows])


@router.patch("/{key}", response_model=JobResponse)
async def update_job(
    key: str,
    request: JobUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> JobResponse:
    """Enable/disable a job or edit its schedule and config."""
    job = await job_service.update_job(
        session,
        key,
        enabled=request.enabled,
        description=request.description,
        schedule_cron=request.schedule_cron,
        config=request.config,
    )
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND)
    return _job_response(job, None)


@router.post("/{key}/run", response_model=JobRunAcceptedResponse, status_code=202)
async def trigger_job(
    key: str,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    provider_factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
    dry_run: bool = False,
) -> JobRunAcceptedResponse:
    """Queue a manual run. Disabled jobs get an immediately skipped run."""
    if await job_service.get_job(session, key) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND)
    run = await job_service.create_job_run(session, key, trigger=RunTrigger.API)
    if run.status == RunStatus.SKIPPED:
        return JobRunAcceptedResponse(run_id=run.id, status=run.status, message=f"Job {key} is disabled")

    run_id = run.id

    async def _run_job() -> None:
        from sports_sync.core.database import get_session_factory

        provider = provider_factory()
        try:
            factory = get_session_factory()
            async with factory() as bg_session:
                await job_service.execute_job_run(bg_session, provider, run_id, dry_run=dry_run)
        finally:
            await provider.close()

    task_runner.submit_task(str(run_id), _run_job())
    return JobRunAcceptedResponse(run_id=run_id, status=run.status, message=f"Job {key} started")


@router.get("/{key}/runs", response_model=PaginatedJobRunResponse)
async def list_job_runs(
    key: str,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    pagination: Annotated[PaginationParams, Depends()],
    run_status: str | None = None,
) -> PaginatedJobRunResponse:
    """Runs of one job, newest first."""
    if await job_service.get_job(session, key) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND)
    runs, total = await job_service.list_job_runs(
        session, key, status=run_status, page=pagination.page, page_size=pagination.page_size
    )
    return PaginatedJobRunResponse(
        items=[JobRunResponse.model_validate(r) for r in runs],
        pagination=PaginationMeta(
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=max(1, math.ceil(total / pagination.page_size)),
        ),
    )


@router.get("/runs/{run_id}/items", response_model=PaginatedBatchItemResponse)
async def list_run_items(
    run_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    pagination: Annotated[PaginationParams, Depends()],
) -> PaginatedBatchItemResponse:
    """Per-entity outcomes recorded by a run."""
    if await job_service.get_job_run(session, run_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job run not found")
    items, total = await job_service.list_run_items(
        session, run_id, page=pagination.page, page_size=pagination.page_size
    )
    return PaginatedBatchItemResponse(
        items=[BatchItemResponse.model_validate(i) for i in items],
        pagination=PaginationMeta(
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=max(1, math.ceil(total / pagination.page_size)),
        ),
    )
