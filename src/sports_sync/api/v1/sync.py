"""Seeding API endpoints.

POST /sync/seed-season and POST /sync/batch-seed-seasons queue background
seeding jobs; GET /sync/jobs/{job_id}/status is polled by clients;
GET /sync/batches lists batch history.
"""

import math
import traceback
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from sports_sync.core.background import task_runner
from sports_sync.core.config import Settings, get_settings
from sports_sync.core.dependencies import ProviderFactory, get_async_session, get_provider_factory
from sports_sync.lib.provider import BaseSportsProvider
from sports_sync.models.enums import RunStatus, RunTrigger
from sports_sync.schemas.common import ErrorResponse, PaginationMeta, PaginationParams
from sports_sync.schemas.sync import (
    BatchItemResponse,
    BatchJobAcceptedResponse,
    BatchSeedSeasonsRequest,
    JobAcceptedResponse,
    JobStatusResponse,
    PaginatedBatchItemResponse,
    PaginatedSeedBatchResponse,
    SeedBatchResponse,
    SeedSeasonRequest,
)
from sports_sync.services import job_service, job_status_service
from sports_sync.services.seed_season_service import (
    BULK_SEED_SEASONS_BATCH,
    SEED_SEASON_BATCH,
    BulkSeedSeasonsParams,
    SeedSeasonParams,
    process_bulk_seed_seasons,
    process_seed_season,
)
from sports_sync.services.seed_service import finish_seed_batch, start_seed_batch

router = APIRouter(prefix="/sync", tags=["sync"])

SeedWork = Callable[[AsyncSession, BaseSportsProvider], Awaitable[object]]


async def _run_seed_job(batch_id: uuid.UUID, provider_factory: ProviderFactory, work: SeedWork) -> None:
    """Run queued seeding work in its own session, closing the provider afterwards.

    Anything that escapes ``work`` (including building the provider) is
    persisted on the batch as a failure so the job never stays queued or
    running, then re-raised for the task runner.
    """
    from sports_sync.core.database import get_session_factory

    factory = get_session_factory()
    provider: BaseSportsProvider | None = None
    try:
        provider = provider_factory()
        async with factory() as bg_session:
            await work(bg_session, provider)
    except Exception as exc:
        async with factory() as fail_session:
            await finish_seed_batch(
                fail_session,
                batch_id,
                RunStatus.FAILED,
                error_message=str(exc),
                error_stack=traceback.format_exc(),
            )
        raise
    finally:
        if provider is not None:
            await provider.close()


@router.post("/seed-season", response_model=JobAcceptedResponse, status_code=202)
async def seed_season(
    request: SeedSeasonRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    provider_factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
) -> JobAcceptedResponse:
    """Queue seeding of one season with its teams and fixtures."""
    params = SeedSeasonParams(
        season_external_id=request.season_external_id,
        include_teams=request.include_teams,
        include_fixtures=request.include_fixtures,
        future_only=request.future_only,
        dry_run=request.dry_run,
        trigger=RunTrigger.API,
    )
    batch = await start_seed_batch(
        session,
        SEED_SEASON_BATCH,
        trigger=RunTrigger.API,
        dry_run=request.dry_run,
        status=RunStatus.QUEUED,
    )
    batch_id = batch.id

    async def _seed(bg_session: AsyncSession, provider: BaseSportsProvider) -> object:
        return await process_seed_season(bg_session, provider, params, batch_id=batch_id)

    task_runner.submit_task(str(batch_id), _run_seed_job(batch_id, provider_factory, _seed))
    logger.info("Queued seed of season {} as job {}", request.season_external_id, batch_id)
    return JobAcceptedResponse(
        job_id=str(batch_id),
        message=f"Seeding season {request.season_external_id} started",
    )


@router.post("/batch-seed-seasons", response_model=BatchJobAcceptedResponse, status_code=202)
async def batch_seed_seasons(
    request: BatchSeedSeasonsRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    provider_factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> BatchJobAcceptedResponse:
    """Queue seeding of several seasons as one job with per-season progress."""
    if len(request.season_external_ids) > settings.seed_max_seasons_per_batch:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.seed_max_seasons_per_batch} seasons per batch",
        )
    params = BulkSeedSeasonsParams(
        season_external_ids=list(request.season_external_ids),
        include_teams=request.include_teams,
        include_fixtures=request.include_fixtures,
        future_only=request.future_only,
        dry_run=request.dry_run,
        trigger=RunTrigger.API,
    )
    batch = await start_seed_batch(
        session,
        BULK_SEED_SEASONS_BATCH,
        trigger=RunTrigger.API,
        dry_run=request.dry_run,
        status=RunStatus.QUEUED,
    )
    batch_id = batch.id

    async def _bulk_seed(bg_session: AsyncSession, provider: BaseSportsProvider) -> object:
        return await process_bulk_seed_seasons(bg_session, provider, params, batch_id=batch_id)

    task_runner.submit_task(str(batch_id), _run_seed_job(batch_id, provider_factory, _bulk_seed))
    total = len(request.season_external_ids)
    logger.info("Queued bulk seed of {} seasons as job {}", total, batch_id)
    return BatchJobAcceptedResponse(
        job_id=str(batch_id),
        total_seasons=total,
        message=f"Seeding {total} seasons started",
    )


@router.get(
    "/jobs/{job_id}/status",
    response_model=JobStatusResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse}},
)
async def get_job_status(
    job_id: str,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> JobStatusResponse:
    """Current state, progress and result of a seeding job."""
    job_status = await job_status_service.get_job_status(session, job_id)
    data = asdict(job_status)
    data["items"] = data["items"] or None
    return JobStatusResponse(**data)


@router.get("/batches", response_model=PaginatedSeedBatchResponse)
async def list_batches(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    pagination: Annotated[PaginationParams, Depends()],
    name: str | None = None,
    batch_status: str | None = None,
) -> PaginatedSeedBatchResponse:
    """List seed batches, newest first."""
    batches, total = await job_service.list_seed_batches(
        session, name=name, status=batch_status, page=pagination.page, page_size=pagination.page_size
    )
    return PaginatedSeedBatchResponse(
        items=[SeedBatchResponse.model_validate(b) for b in batches],
        pagination=PaginationMeta(
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=max(1, math.ceil(total / pagination.page_size)),
        ),
    )


@router.get("/batches/{batch_id}", response_model=SeedBatchResponse)
async def get_batch(
    batch_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> SeedBatchResponse:
    """Get one seed batch."""
    batch = await job_service.get_seed_batch(session, batch_id)
    if batch is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
    return SeedBatchResponse.model_validate(batch)


@router.get("/batches/{batch_id}/items", response_model=PaginatedBatchItemResponse)
async def list_batch_items(
    batch_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    pagination: Annotated[PaginationParams, Depends()],
    action: str | None = None,
) -> PaginatedBatchItemResponse:
    """Per-entity outcomes of a batch in processing order."""
    batch = await job_service.get_seed_batch(session, batch_id)
    if batch is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
    items, total = await job_service.list_batch_items(
        session, batch_id, action=action, page=pagination.page, page_size=pagination.page_size
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
