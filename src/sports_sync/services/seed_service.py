"""Seed service: runs entity batches against the record store.

A batch is a SeedBatch row plus one BatchItem per processed input. Every
item is written in its own transaction together with its BatchItem row
and the batch counters, so one failing item rolls back only itself and the
batch always satisfies ``items_total == items_success + items_failed ==
count(BatchItem)`` once finalized.
"""

import traceback
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from sports_sync.models import BatchItem, SeedBatch
from sports_sync.models.base import as_utc, utcnow
from sports_sync.models.enums import EntityKind, ItemAction, RunStatus, RunTrigger
from sports_sync.schemas.batch_meta import EntityBatchResult, StepResult
from sports_sync.services.entity_store import EntityDTO, upsert_entity

# Width of the error_message columns
ERROR_MESSAGE_MAX_LENGTH = 500


class BatchFetchError(Exception):
    """The provider snapshot could not be fetched; the batch never ran.

    Args:
        message: Error description.
        batch_id: The batch that was marked failed.
    """

    def __init__(self, message: str, batch_id: uuid.UUID) -> None:
        self.batch_id = batch_id
        super().__init__(message)


@dataclass
class BatchOutcome:
    """Aggregate result of processing a list of items."""

    batch_id: uuid.UUID
    ok: int = 0
    fail: int = 0
    total: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0

    @property
    def status(self) -> RunStatus:
        """``failed`` only when every item failed; an empty batch succeeds."""
        if self.total > 0 and self.ok == 0:
            return RunStatus.FAILED
        return RunStatus.SUCCESS

    def as_step(self) -> StepResult:
        return StepResult(
            ok=self.ok,
            fail=self.fail,
            total=self.total,
            inserted=self.inserted,
            updated=self.updated,
            skipped=self.skipped,
        )


def truncate_error(message: str | None) -> str | None:
    """Clip an error message to the width of the error columns."""
    if message is None:
        return None
    return message[:ERROR_MESSAGE_MAX_LENGTH]


async def start_seed_batch(
    session: AsyncSession,
    name: str,
    *,
    version: str | None = "1",
    meta: dict[str, Any] | None = None,
    trigger: RunTrigger = RunTrigger.MANUAL,
    triggered_by: str | None = None,
    dry_run: bool = False,
    job_run_id: uuid.UUID | None = None,
    status: RunStatus = RunStatus.RUNNING,
) -> SeedBatch:
    """Create and commit a new SeedBatch.

    Args:
        session: Database session.
        name: Batch name (e.g. "seed-season", "sync-countries").
        version: Name-specific version tag.
        meta: Initial result meta.
        trigger: What started the batch.
        triggered_by: Free-form actor.
        dry_run: Mark the batch as a dry run.
        job_run_id: JobRun this batch belongs to, if any.
        status: Initial status; ``queued`` for batches handed to a background task.

    Returns:
        The persisted SeedBatch.
    """
    batch = SeedBatch(
        name=name,
        version=version,
        status=status,
        trigger=trigger,
        triggered_by=triggered_by,
        dry_run=dry_run,
        job_run_id=job_run_id,
        meta=meta,
        started_at=utcnow(),
    )
    session.add(batch)
    await session.commit()
    await session.refresh(batch)
    logger.info("Started seed batch {} ({}){}", batch.id, name, " [dry run]" if dry_run else "")
    return batch


async def mark_batch_running(session: AsyncSession, batch_id: uuid.UUID) -> None:
    """Move a queued batch to ``running`` when its background task picks it up."""
    await session.execute(
        update(SeedBatch)
        .where(SeedBatch.id == batch_id, SeedBatch.status == RunStatus.QUEUED)
        .values(status=RunStatus.RUNNING, started_at=utcnow())
    )
    await session.commit()


async def update_batch_meta(session: AsyncSession, batch_id: uuid.UUID, meta: dict[str, Any]) -> None:
    """Replace a running batch's meta so pollers can see intermediate progress."""
    await session.execute(update(SeedBatch).where(SeedBatch.id == batch_id).values(meta=meta))
    await session.commit()


async def add_items_total(session: AsyncSession, batch_id: uuid.UUID, count: int) -> None:
    """Announce ``count`` more items so progress can be computed while running."""
    if count <= 0:
        return
    await session.execute(
        update(SeedBatch).where(SeedBatch.id == batch_id).values(items_total=SeedBatch.items_total + count)
    )
    await session.commit()


async def record_item(
    session: AsyncSession,
    batch_id: uuid.UUID,
    entity_type: str,
    external_id: str | None,
    action: ItemAction,
    *,
    error_message: str | None = None,
    meta: dict[str, Any] | None = None,
) -> None:
    """Add a BatchItem and bump the matching counter. The caller commits."""
    session.add(
        BatchItem(
            batch_id=batch_id,
            entity_type=entity_type,
            external_id=external_id,
            action=action,
            error_message=truncate_error(error_message),
            meta=meta or None,
        )
    )
    counter = SeedBatch.items_failed if action is ItemAction.FAILED else SeedBatch.items_success
    await session.execute(update(SeedBatch).where(SeedBatch.id == batch_id).values({counter: counter + 1}))


async def finish_seed_batch(
    session: AsyncSession,
    batch_id: uuid.UUID,
    status: RunStatus,
    *,
    items_total: int | None = None,
    items_success: int | None = None,
    items_failed: int | None = None,
    error_message: str | None = None,
    error_stack: str | None = None,
    meta: dict[str, Any] | None = None,
) -> SeedBatch | None:
    """Finalize a batch exactly once.

    A batch that is already final is left untouched and a warning is logged.

    Returns:
        The batch, or None if it does not exist.
    """
    batch = await session.get(SeedBatch, batch_id)
    if batch is None:
        logger.warning("Cannot finish unknown seed batch {}", batch_id)
        return None
    await session.refresh(batch)
    if RunStatus(batch.status).is_final:
        logger.warning("Seed batch {} already finished as {}; ignoring {}", batch_id, batch.status, status)
        return batch

    finished = utcnow()
    batch.status = status
    batch.finished_at = finished
    batch.duration_ms = int((finished - as_utc(batch.started_at)).total_seconds() * 1000)
    if items_total is not None:
        batch.items_total = items_total
    if items_success is not None:
        batch.items_success = items_success
    if items_failed is not None:
        batch.items_failed = items_failed
    batch.error_message = truncate_error(error_message)
    batch.error_stack = error_stack
    if meta is not None:
        batch.meta = {**(batch.meta or {}), **meta}
    await session.commit()
    logger.info(
        "Finished seed batch {}: {} ({}/{} ok, {} failed, {}ms)",
        batch_id,
        status,
        batch.items_success,
        batch.items_total,
        batch.items_failed,
        batch.duration_ms,
    )
    return batch


async def process_items(
    session: AsyncSession,
    kind: EntityKind,
    items: Sequence[EntityDTO],
    batch_id: uuid.UUID,
    *,
    dry_run: bool = False,
) -> BatchOutcome:
    """Upsert items one by one into an existing batch.

    Later duplicates of an external id are recorded as ``skipped``. In a dry
    run nothing is written except ``skipped`` BatchItems carrying the
    planned action.
    """
    outcome = BatchOutcome(batch_id=batch_id)
    await add_items_total(session, batch_id, len(items))
    seen: set[str] = set()

    for dto in items:
        outcome.total += 1
        key = str(dto.external_id).strip() if dto.external_id is not None else ""

        if key and key in seen:
            await record_item(session, batch_id, kind, key, ItemAction.SKIPPED, meta={"reason": "duplicate"})
            await session.commit()
            outcome.ok += 1
            outcome.skipped += 1
            continue
        seen.add(key)

        try:
            result = await upsert_entity(session, kind, dto, dry_run=dry_run)
            meta: dict[str, Any] = {}
            if result.changes:
                meta["changes"] = result.changes
            if dry_run:
                meta["planned_action"] = str(result.action)
                action = ItemAction.SKIPPED
            else:
                action = result.action
            await record_item(session, batch_id, kind, key or None, action, meta=meta)
            await session.commit()
        except Exception as exc:
            await session.rollback()
            logger.error("Batch {}: {} {} failed: {}", batch_id, kind, key or "<no id>", exc)
            await record_item(session, batch_id, kind, key or None, ItemAction.FAILED, error_message=str(exc))
            await session.commit()
            outcome.fail += 1
            continue

        outcome.ok += 1
        if action is ItemAction.INSERTED:
            outcome.inserted += 1
        elif action is ItemAction.UPDATED:
            outcome.updated += 1
        else:
            outcome.skipped += 1

    return outcome


async def _finish_entity_batch(
    session: AsyncSession,
    kind: EntityKind,
    outcome: BatchOutcome,
    *,
    dry_run: bool,
) -> None:
    result = EntityBatchResult(
        entity_type=kind,
        dry_run=dry_run,
        reason="no-input" if outcome.total == 0 else None,
        **outcome.as_step().model_dump(),
    )
    await finish_seed_batch(
        session,
        outcome.batch_id,
        outcome.status,
        items_total=outcome.total,
        items_success=outcome.ok,
        items_failed=outcome.fail,
        meta=result.model_dump(mode="json"),
    )


async def run_batch(
    session: AsyncSession,
    kind: EntityKind,
    items: Sequence[EntityDTO],
    *,
    batch_id: uuid.UUID | None = None,
    dry_run: bool = False,
    name: str | None = None,
    trigger: RunTrigger = RunTrigger.MANUAL,
    triggered_by: str | None = None,
    job_run_id: uuid.UUID | None = None,
) -> BatchOutcome:
    """Upsert already-fetched provider items as one batch.

    Without ``batch_id`` a new batch is created and finalized here: status
    ``success`` unless every item failed, meta an ``EntityBatchResult``. With
    ``batch_id`` the items are appended to that batch and finalizing it is
    left to the caller.

    Args:
        session: Database session.
        kind: Entity kind of every item.
        items: Provider DTOs, processed in order.
        batch_id: Existing batch to append to.
        dry_run: Validate and classify without writing entities.
        name: Name for a new batch (default ``seed-<kind>``).
        trigger: What started the batch.
        triggered_by: Free-form actor.
        job_run_id: JobRun a new batch belongs to.

    Returns:
        Counters for the processed items.
    """
    if batch_id is not None:
        return await process_items(session, kind, items, batch_id, dry_run=dry_run)

    batch = await start_seed_batch(
        session,
        name or f"seed-{kind}",
        trigger=trigger,
        triggered_by=triggered_by,
        dry_run=dry_run,
        job_run_id=job_run_id,
    )
    outcome = await process_items(session, kind, items, batch.id, dry_run=dry_run)
    await _finish_entity_batch(session, kind, outcome, dry_run=dry_run)
    return outcome


async def fetch_and_run_batch(
    session: AsyncSession,
    kind: EntityKind,
    fetch: Callable[[], Awaitable[Sequence[EntityDTO]]],
    *,
    name: str | None = None,
    dry_run: bool = False,
    trigger: RunTrigger = RunTrigger.MANUAL,
    triggered_by: str | None = None,
    job_run_id: uuid.UUID | None = None,
) -> BatchOutcome:
    """Fetch a provider snapshot, then run it as a new batch.

    Raises:
        BatchFetchError: If the fetch failed. The batch is already marked
            ``failed`` with no items.
    """
    batch = await start_seed_batch(
        session,
        name or f"seed-{kind}",
        trigger=trigger,
        triggered_by=triggered_by,
        dry_run=dry_run,
        job_run_id=job_run_id,
    )
    try:
        items = list(await fetch())
    except Exception as exc:
        logger.error("Batch {}: fetching {} snapshot failed: {}", batch.id, kind, exc)
        await finish_seed_batch(
            session,
            batch.id,
            RunStatus.FAILED,
            items_total=0,
            items_success=0,
            items_failed=0,
            error_message=str(exc),
            error_stack=traceback.format_exc(),
            meta=EntityBatchResult(entity_type=kind, dry_run=dry_run, reason="fetch-failed").model_dump(mode="json"),
        )
        raise BatchFetchError(str(exc), batch_id=batch.id) from exc

    outcome = await process_items(session, kind, items, batch.id, dry_run=dry_run)
    await _finish_entity_batch(session, kind, outcome, dry_run=dry_run)
    return outcome
