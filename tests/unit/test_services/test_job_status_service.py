"""Tests for the job status projection."""

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from sports_sync.models.enums import EntityKind, ItemAction, RunStatus
from sports_sync.schemas.batch_meta import BulkSeasonEntry, BulkSeedSeasonsResult
from sports_sync.services.job_status_service import (
    JobNotFoundError,
    compute_progress,
    get_job_status,
    map_state,
)
from sports_sync.services.seed_service import (
    add_items_total,
    finish_seed_batch,
    record_item,
    start_seed_batch,
    update_batch_meta,
)


class TestMapState:
    """Tests for map_state."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            ("queued", "waiting"),
            ("running", "active"),
            ("success", "completed"),
            ("skipped", "completed"),
            ("failed", "failed"),
            ("something-else", "waiting"),
        ],
    )
    def test_mapping(self, status: str, expected: str) -> None:
        assert map_state(status) == expected


class TestComputeProgress:
    """Tests for compute_progress."""

    def test_unknown_total(self) -> None:
        assert compute_progress(0, 0, 0) is None

    def test_rounds_processed_share(self) -> None:
        assert compute_progress(1, 0, 3) == 33
        assert compute_progress(1, 1, 3) == 67
        assert compute_progress(2, 1, 3) == 100


class TestGetJobStatus:
    """Tests for get_job_status."""

    async def test_unknown_id(self, async_session: AsyncSession) -> None:
        with pytest.raises(JobNotFoundError):
            await get_job_status(async_session, str(uuid.uuid4()))

    async def test_malformed_id(self, async_session: AsyncSession) -> None:
        with pytest.raises(JobNotFoundError) as exc_info:
            await get_job_status(async_session, "not-a-uuid")
        assert exc_info.value.job_id == "not-a-uuid"

    async def test_queued_batch_is_waiting(self, async_session: AsyncSession) -> None:
        batch = await start_seed_batch(async_session, "seed-season", status=RunStatus.QUEUED)

        status = await get_job_status(async_session, str(batch.id))

        assert status.job_id == str(batch.id)
        assert status.state == "waiting"
        assert status.progress is None
        assert status.result is None

    async def test_running_batch_reports_progress(self, async_session: AsyncSession) -> None:
        batch = await start_seed_batch(async_session, "seed-season")
        await add_items_total(async_session, batch.id, 4)
        await record_item(async_session, batch.id, EntityKind.TEAM, "1", ItemAction.INSERTED)
        await async_session.commit()

        status = await get_job_status(async_session, str(batch.id))

        assert status.state == "active"
        assert (status.total, status.success, status.failed) == (4, 1, 0)
        assert status.progress == 25
        assert status.result is None

    async def test_completed_batch_exposes_result(self, async_session: AsyncSession) -> None:
        batch = await start_seed_batch(async_session, "seed-season")
        await finish_seed_batch(async_session, batch.id, RunStatus.SUCCESS, meta={"kind": "seed-season"})

        status = await get_job_status(async_session, str(batch.id))

        assert status.state == "completed"
        assert status.result == {"kind": "seed-season"}
        assert status.error is None

    async def test_failed_batch_exposes_error(self, async_session: AsyncSession) -> None:
        batch = await start_seed_batch(async_session, "seed-season")
        await finish_seed_batch(async_session, batch.id, RunStatus.FAILED, error_message="provider down")

        status = await get_job_status(async_session, str(batch.id))

        assert status.state == "failed"
        assert status.error == "provider down"
        assert status.result is None

    async def test_failed_batch_without_message(self, async_session: AsyncSession) -> None:
        batch = await start_seed_batch(async_session, "seed-season")
        await finish_seed_batch(async_session, batch.id, RunStatus.FAILED)

        status = await get_job_status(async_session, str(batch.id))

        assert status.error == "Job failed"

    async def test_bulk_batch_lists_seasons(self, async_session: AsyncSession) -> None:
        batch = await start_seed_batch(async_session, "bulk-seed-seasons")
        meta = BulkSeedSeasonsResult(
            total_seasons=2,
            seasons=[
                BulkSeasonEntry(season_external_id="1", status="done"),
                BulkSeasonEntry(season_external_id="2", status="failed", error="boom"),
            ],
        )
        await update_batch_meta(async_session, batch.id, meta.model_dump(mode="json"))

        status = await get_job_status(async_session, str(batch.id))

        assert status.items == [
            {"key": "1", "status": "done", "error": None},
            {"key": "2", "status": "failed", "error": "boom"},
        ]
