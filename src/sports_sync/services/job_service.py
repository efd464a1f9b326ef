"""Job service: job definitions, run lifecycle and history projections.

Job rows are created from the code-side definitions below and then owned
by admins (enable/disable, schedule, config). Running a job creates one
JobRun, fetches the provider snapshot and seeds it as a SeedBatch linked
to the run, then finalizes the run exactly once.
"""

import traceback
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from loguru import logger
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sports_sync.lib.provider import BaseSportsProvider
from sports_sync.models import BatchItem, Job, JobRun, SeedBatch
from sports_sync.models.base import as_utc, utcnow
from sports_sync.models.enums import EntityKind, RunStatus, RunTrigger
from sports_sync.services.entity_store import EntityDTO
from sports_sync.services.seed_service import BatchFetchError, fetch_and_run_batch, truncate_error

FetchSnapshot = Callable[[BaseSportsProvider, dict[str, Any]], Awaitable[Sequence[EntityDTO]]]


@dataclass(frozen=True)
class JobDefinition:
    """Code-side defaults for a job row plus the snapshot it syncs."""

    key: str
    description: str
    kind: EntityKind
    fetch: FetchSnapshot
    schedule_cron: str | None = None
    config: dict[str, Any] = field(default_factory=dict)


def _days_ahead(config: dict[str, Any], default: int) -> int:
    try:
        days = int(config.get("days_ahead", default))
    except (TypeError, ValueError):
        days = default
    return max(1, min(days, 30))


async def _fetch_countries(provider: BaseSportsProvider, config: dict[str, Any]) -> Sequence[EntityDTO]:
    return await provider.fetch_countries()


async def _fetch_leagues(provider: BaseSportsProvider, config: dict[str, Any]) -> Sequence[EntityDTO]:
    return await provider.fetch_leagues()


async def _fetch_bookmakers(provider: BaseSportsProvider, config: dict[str, Any]) -> Sequence[EntityDTO]:
    return await provider.fetch_bookmakers()


async def _fetch_upcoming_fixtures(provider: BaseSportsProvider, config: dict[str, Any]) -> Sequence[EntityDTO]:
    today = date.today()
    return await provider.fetch_fixtures_between(today, today + timedelta(days=_days_ahead(config, 3)))


async def _fetch_prematch_odds(provider: BaseSportsProvider, config: dict[str, Any]) -> Sequence[EntityDTO]:
    today = date.today()
    return await provider.fetch_odds_between(today, today + timedelta(days=_days_ahead(config, 2)))


JOB_DEFINITIONS: dict[str, JobDefinition] = {
    definition.key: definition
    for definition in (
        JobDefinition(
            key="sync-countries",
            description="Fetch all countries from the provider and upsert them",
            kind=EntityKind.COUNTRY,
            fetch=_fetch_countries,
            schedule_cron="0 3 * * 1",
        ),
        JobDefinition(
            key="sync-leagues",
            description="Fetch all leagues from the provider and upsert them",
            kind=EntityKind.LEAGUE,
            fetch=_fetch_leagues,
            schedule_cron="15 3 * * 1",
        ),
        JobDefinition(
            key="sync-bookmakers",
            description="Fetch all bookmakers from the provider and upsert them",
            kind=EntityKind.BOOKMAKER,
            fetch=_fetch_bookmakers,
            schedule_cron="30 3 * * 1",
        ),
        JobDefinition(
            key="sync-upcoming-fixtures",
            description="Fetch fixtures starting in the next days and upsert them",
            kind=EntityKind.FIXTURE,
            fetch=_fetch_upcoming_fixtures,
            # Offset from the hour to spread provider load
            schedule_cron="10 */6 * * *",
            config={"days_ahead": 3},
        ),
        JobDefinition(
            key="sync-prematch-odds",
            description="Fetch pre-match odds for upcoming fixtures and upsert them",
            kind=EntityKind.ODDS,
            fetch=_fetch_prematch_odds,
            schedule_cron="20 */2 * * *",
            config={"days_ahead": 2},
        ),
    )
}


async def ensure_jobs(session: AsyncSession) -> int:
    """Insert a row for every defined job that has none. Existing rows are never overwritten.

    Returns:
        Number of rows created.
    """
    result = await session.execute(select(Job.key))
    existing = set(result.scalars().all())
    created = 0
    for definition in JOB_DEFINITIONS.values():
        if definition.key in existing:
            continue
        session.add(
            Job(
                key=definition.key,
                description=definition.description,
                enabled=True,
                schedule_cron=definition.schedule_cron,
                config=dict(definition.config) or None,
            )
        )
        created += 1
    if created:
        await session.commit()
        logger.info("Created {} job definition(s)", created)
    return created


async def get_job(session: AsyncSession, key: str) -> Job | None:
    result = await session.execute(select(Job).where(Job.key == key))
    return result.scalar_one_or_none()


async def update_job(
    session: AsyncSession,
    key: str,
    *,
    enabled: bool | None = None,
    description: str | None = None,
    schedule_cron: str | None = None,
    config: dict[str, Any] | None = None,
) -> Job | None:
    """Apply admin edits to a job. Fields left as None are unchanged.

    Returns:
        The updated job, or None if it does not exist.
    """
    job = await get_job(session, key)
    if job is None:
        return None
    if enabled is not None:
        job.enabled = enabled
    if description is not None:
        job.description = description
    if schedule_cron is not None:
        job.schedule_cron = schedule_cron or None
    if config is not None:
        job.config = config
    await session.commit()
    await session.refresh(job)
    return job


async def create_job_run(
    session: AsyncSession,
    key: str,
    *,
    trigger: RunTrigger = RunTrigger.MANUAL,
    triggered_by: str | None = None,
) -> JobRun:
    """Open a run for a job: ``queued``, or an already-final ``skipped`` run when the job is disabled.

    Raises:
        ValueError: If the job is unknown.
    """
    job = await get_job(session, key)
    if job is None or key not in JOB_DEFINITIONS:
        msg = f"Unknown job: {key!r}"
        raise ValueError(msg)

    now = utcnow()
    run = JobRun(job_key=key, trigger=trigger, triggered_by=triggered_by, started_at=now)
    if job.enabled:
        run.status = RunStatus.QUEUED
    else:
        run.status = RunStatus.SKIPPED
        run.finished_at = now
        run.duration_ms = 0
        run.rows_affected = 0
        run.meta = {"reason": "disabled"}
        logger.info("Job {} is disabled; run skipped", key)
    session.add(run)
    await session.commit()
    await session.refresh(run)
    return run


async def finish_job_run(
    session: AsyncSession,
    run_id: uuid.UUID,
    status: RunStatus,
    *,
    rows_affected: int | None = None,
    error_message: str | None = None,
    error_stack: str | None = None,
    meta: dict[str, Any] | None = None,
) -> JobRun | None:
    """Finalize a run exactly once; a second call is ignored with a warning."""
    run = await session.get(JobRun, run_id)
    if run is None:
        logger.warning("Cannot finish unknown job run {}", run_id)
        return None
    await session.refresh(run)
    if RunStatus(run.status).is_final:
        logger.warning("Job run {} already finished as {}; ignoring {}", run_id, run.status, status)
        return run

    finished = utcnow()
    run.status = status
    run.finished_at = finished
    run.duration_ms = int((finished - as_utc(run.started_at)).total_seconds() * 1000)
    run.rows_affected = rows_affected
    run.error_message = truncate_error(error_message)
    run.error_stack = error_stack
    if meta is not None:
        run.meta = {**(run.meta or {}), **meta}
    await session.commit()
    logger.info("Job run {} ({}) finished: {} in {}ms", run_id, run.job_key, status, run.duration_ms)
    return run


async def execute_job_run(
    session: AsyncSession,
    provider: BaseSportsProvider,
    run_id: uuid.UUID,
    *,
    dry_run: bool = False,
) -> JobRun | None:
    """Execute a queued run. Failures are persisted on the run, never raised."""
    run = await session.get(JobRun, run_id)
    if run is None or run.status != RunStatus.QUEUED:
        return run
    key, trigger, triggered_by = run.job_key, RunTrigger(run.trigger), run.triggered_by
    run.status = RunStatus.RUNNING
    run.started_at = utcnow()
    await session.commit()

    definition = JOB_DEFINITIONS[key]
    job = await get_job(session, key)
    config = {**definition.config, **((job.config if job else None) or {})}

    try:
        outcome = await fetch_and_run_batch(
            session,
            definition.kind,
            lambda: definition.fetch(provider, config),
            name=key,
            dry_run=dry_run,
            trigger=trigger,
            triggered_by=triggered_by,
            job_run_id=run_id,
        )
    except BatchFetchError as exc:
        return await finish_job_run(
            session,
            run_id,
            RunStatus.FAILED,
            rows_affected=0,
            error_message=str(exc),
            error_stack=traceback.format_exc(),
            meta={"batch_id": str(exc.batch_id)},
        )
    except Exception as exc:
        await session.rollback()
        logger.exception("Job run {} ({}) crashed", run_id, key)
        return await finish_job_run(
            session,
            run_id,
            RunStatus.FAILED,
            error_message=str(exc),
            error_stack=traceback.format_exc(),
        )

    return await finish_job_run(
        session,
        run_id,
        outcome.status,
        rows_affected=outcome.ok,
        error_message="All items failed" if outcome.status is RunStatus.FAILED else None,
        meta={
            "batch_id": str(outcome.batch_id),
            "ok": outcome.ok,
            "fail": outcome.fail,
            "total": outcome.total,
            "config": config,
        },
    )


async def run_job(
    session: AsyncSession,
    provider: BaseSportsProvider,
    key: str,
    *,
    trigger: RunTrigger = RunTrigger.MANUAL,
    triggered_by: str | None = None,
    dry_run: bool = False,
) -> JobRun:
    """Create and execute a run in one go (CLI and scheduler path).

    Raises:
        ValueError: If the job is unknown.
    """
    run = await create_job_run(session, key, trigger=trigger, triggered_by=triggered_by)
    if run.status == RunStatus.SKIPPED:
        return run
    finished = await execute_job_run(session, provider, run.id, dry_run=dry_run)
    return finished or run


# --- History projections ---


async def list_jobs(session: AsyncSession) -> list[tuple[Job, JobRun | None]]:
    """Every job with its most recent run."""
    result = await session.execute(select(Job).order_by(Job.key))
    jobs = result.scalars().all()

    latest = (
        select(JobRun.job_key, func.max(JobRun.started_at).label("started_at"))
        .group_by(JobRun.job_key)
        .subquery()
    )
    runs_result = await session.execute(
        select(JobRun).join(
            latest,
            and_(JobRun.job_key == latest.c.job_key, JobRun.started_at == latest.c.started_at),
        )
    )
    last_runs = {run.job_key: run for run in runs_result.scalars().all()}
    return [(job, last_runs.get(job.key)) for job in jobs]


async def list_job_runs(
    session: AsyncSession,
    key: str,
    *,
    status: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[JobRun], int]:
    """Runs of one job, newest first.

    Returns:
        Tuple of (runs, total count).
    """
    filters = [JobRun.job_key == key]
    if status:
        filters.append(JobRun.status == status)

    total_result = await session.execute(select(func.count(JobRun.id)).where(*filters))
    total = total_result.scalar_one()

    offset = (page - 1) * page_size
    result = await session.execute(
        select(JobRun).where(*filters).order_by(JobRun.started_at.desc()).offset(offset).limit(page_size)
    )
    return list(result.scalars().all()), total


async def get_job_run(session: AsyncSession, run_id: uuid.UUID) -> JobRun | None:
    return await session.get(JobRun, run_id)


async def list_run_items(
    session: AsyncSession,
    run_id: uuid.UUID,
    *,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[BatchItem], int]:
    """BatchItems of every batch linked to a run.

    Returns:
        Tuple of (items, total count).
    """
    condition = SeedBatch.job_run_id == run_id
    total_result = await session.execute(
        select(func.count(BatchItem.id)).join(SeedBatch, BatchItem.batch_id == SeedBatch.id).where(condition)
    )
    total = total_result.scalar_one()

    offset = (page - 1) * page_size
    result = await session.execute(
        select(BatchItem)
        .join(SeedBatch, BatchItem.batch_id == SeedBatch.id)
        .where(condition)
        .order_by(BatchItem.created_at, BatchItem.id)
        .offset(offset)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def list_seed_batches(
    session: AsyncSession,
    *,
    name: str | None = None,
    status: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[SeedBatch], int]:
    """Seed batches, newest first.

    Returns:
        Tuple of (batches, total count).
    """
    filters = []
    if name:
        filters.append(SeedBatch.name == name)
    if status:
        filters.append(SeedBatch.status == status)

    total_result = await session.execute(select(func.count(SeedBatch.id)).where(*filters))
    total = total_result.scalar_one()

    offset = (page - 1) * page_size
    result = await session.execute(
        select(SeedBatch).where(*filters).order_by(SeedBatch.started_at.desc()).offset(offset).limit(page_size)
    )
    return list(result.scalars().all()), total


async def get_seed_batch(session: AsyncSession, batch_id: uuid.UUID) -> SeedBatch | None:
    return await session.get(SeedBatch, batch_id)


async def list_batch_items(
    session: AsyncSession,
    batch_id: uuid.UUID,
    *,
    action: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[BatchItem], int]:
    """Items of one batch in processing order.

    Returns:
        Tuple of (items, total count).
    """
    filters = [BatchItem.batch_id == batch_id]
    if action:
        filters.append(BatchItem.action == action)

    total_result = await session.execute(select(func.count(BatchItem.id)).where(*filters))
    total = total_result.scalar_one()

    offset = (page - 1) * page_size
    result = await session.execute(
        select(BatchItem).where(*filters).order_by(BatchItem.created_at, BatchItem.id).offset(offset).limit(page_size)
    )
    return list(result.scalars().all()), total
