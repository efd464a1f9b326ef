"""Job status service: read-only projection of a seed batch for pollers.

A job id is the string form of a SeedBatch id. The batch status maps onto
the smaller vocabulary pollers understand:

    queued -> waiting, running -> active,
    success | skipped -> completed, failed -> failed
"""

import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from sports_sync.models import SeedBatch
from sports_sync.models.enums import RunStatus
from sports_sync.schemas.batch_meta import BulkSeedSeasonsResult, parse_batch_meta

_STATE_MAP: dict[str, str] = {
    RunStatus.QUEUED: "waiting",
    RunStatus.RUNNING: "active",
    RunStatus.SUCCESS: "completed",
    RunStatus.SKIPPED: "completed",
    RunStatus.FAILED: "failed",
}


class JobNotFoundError(LookupError):
    """No batch exists for the requested job id."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


@dataclass
class JobStatus:
    job_id: str
    state: str
    total: int = 0
    success: int = 0
    failed: int = 0
    progress: int | None = None
    result: dict[str, Any] | None = None
    error: str | None = None
    items: list[dict[str, Any]] = field(default_factory=list)


def map_state(status: str) -> str:
    """Caller-facing state for a batch status; unknown values read as ``waiting``."""
    return _STATE_MAP.get(status, "waiting")


def compute_progress(success: int, failed: int, total: int) -> int | None:
    """Percentage of processed items, or None while the total is unknown."""
    if total <= 0:
        return None
    return round((success + failed) / total * 100)


def _parse_job_id(job_id: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(job_id))
    except ValueError:
        return None


async def get_job_status(session: AsyncSession, job_id: str) -> JobStatus:
    """Project a batch onto the polling status shape.

    ``result`` is the stored meta, returned only once the job completed.
    Bulk seeds also expose per-season progress as ``items`` while running.

    Raises:
        JobNotFoundError: If no batch has this id (including malformed ids).
    """
    batch_id = _parse_job_id(job_id)
    batch = await session.get(SeedBatch, batch_id) if batch_id is not None else None
    if batch is None:
        raise JobNotFoundError(job_id)

    state = map_state(batch.status)
    status = JobStatus(
        job_id=str(batch.id),
        state=state,
        total=batch.items_total,
        success=batch.items_success,
        failed=batch.items_failed,
        progress=compute_progress(batch.items_success, batch.items_failed, batch.items_total),
    )
    if state == "completed":
        status.result = batch.meta
    elif state == "failed":
        status.error = batch.error_message or "Job failed"

    meta = parse_batch_meta(batch.meta)
    if isinstance(meta, BulkSeedSeasonsResult):
        status.items = [
            {"key": entry.season_external_id, "status": entry.status, "error": entry.error} for entry in meta.seasons
        ]
    return status
