"""Tests for job definitions, runs and history queries."""

import uuid

import pytest
from conftest import FakeProvider
from sqlalchemy.ext.asyncio import AsyncSession

from sports_sync.models import SeedBatch
from sports_sync.models.enums import ItemAction, RunStatus, RunTrigger
from sports_sync.services import job_service
from sports_sync.services.job_service import JOB_DEFINITIONS


@pytest.fixture
async def jobs(async_session: AsyncSession) -> None:
    await job_service.ensure_jobs(async_session)


class TestEnsureJobs:
    """Tests for ensure_jobs."""

    async def test_creates_missing_jobs_once(self, async_session: AsyncSession) -> None:
        assert await job_service.ensure_jobs(async_session) == len(JOB_DEFINITIONS)
        assert await job_service.ensure_jobs(async_session) == 0

    async def test_keeps_admin_edits(self, async_session: AsyncSession, jobs: None) -> None:
        await job_service.update_job(async_session, "sync-countries", enabled=False, schedule_cron="0 4 * * *")

        await job_service.ensure_jobs(async_session)

        job = await job_service.get_job(async_session, "sync-countries")
        assert job.enabled is False
        assert job.schedule_cron == "0 4 * * *"


class TestUpdateJob:
    """Tests for update_job."""

    async def test_unknown_job(self, async_session: AsyncSession, jobs: None) -> None:
        assert await job_service.update_job(async_session, "nope", enabled=False) is None

    async def test_partial_update(self, async_session: AsyncSession, jobs: None) -> None:
        job = await job_service.update_job(async_session, "sync-upcoming-fixtures", config={"days_ahead": 7})

        assert job.config == {"days_ahead": 7}
        assert job.enabled is True
        assert job.description == JOB_DEFINITIONS["sync-upcoming-fixtures"].description


class TestRunJob:
    """Tests for creating and executing runs."""

    async def test_unknown_job_raises(self, async_session: AsyncSession, jobs: None) -> None:
        with pytest.raises(ValueError, match="Unknown job"):
            await job_service.create_job_run(async_session, "nope")

    async def test_disabled_job_is_skipped(self, async_session: AsyncSession, jobs: None) -> None:
        await job_service.update_job(async_session, "sync-countries", enabled=False)

        run = await job_service.create_job_run(async_session, "sync-countries")

        assert run.status == RunStatus.SKIPPED
        assert run.finished_at is not None
        assert run.meta == {"reason": "disabled"}

    async def test_successful_run_links_batch(
        self, async_session: AsyncSession, jobs: None, provider: FakeProvider
    ) -> None:
        run = await job_service.run_job(async_session, provider, "sync-countries", trigger=RunTrigger.SCHEDULED)

        assert run.status == RunStatus.SUCCESS
        assert run.rows_affected == 1
        assert run.trigger == RunTrigger.SCHEDULED
        batch = await async_session.get(SeedBatch, uuid.UUID(run.meta["batch_id"]))
        assert batch.job_run_id == run.id
        assert batch.name == "sync-countries"

    async def test_fetch_failure_fails_run(
        self, async_session: AsyncSession, jobs: None, provider: FakeProvider
    ) -> None:
        provider.fail_on.add("bookmakers")

        run = await job_service.run_job(async_session, provider, "sync-bookmakers")

        assert run.status == RunStatus.FAILED
        assert "bookmakers unavailable" in run.error_message
        assert run.rows_affected == 0
        assert "batch_id" in run.meta

    async def test_all_items_failing_fails_run(
        self, async_session: AsyncSession, jobs: None, provider: FakeProvider
    ) -> None:
        # No teams are stored, so every fixture fails
        run = await job_service.run_job(async_session, provider, "sync-upcoming-fixtures")

        assert "fixtures_between" in provider.calls
        assert run.status == RunStatus.FAILED
        assert run.error_message == "All items failed"
        assert run.meta["config"] == {"days_ahead": 3}

    async def test_dry_run(self, async_session: AsyncSession, jobs: None, provider: FakeProvider) -> None:
        run = await job_service.run_job(async_session, provider, "sync-bookmakers", dry_run=True)

        assert run.status == RunStatus.SUCCESS
        items, total = await job_service.list_run_items(async_session, run.id)
        assert total == 2
        assert {item.action for item in items} == {ItemAction.SKIPPED}

    async def test_execute_ignores_non_queued_run(
        self, async_session: AsyncSession, jobs: None, provider: FakeProvider
    ) -> None:
        run = await job_service.run_job(async_session, provider, "sync-countries")
        provider.calls.clear()

        again = await job_service.execute_job_run(async_session, provider, run.id)

        assert again.status == RunStatus.SUCCESS
        assert provider.calls == []

    async def test_finish_is_applied_once(self, async_session: AsyncSession, jobs: None) -> None:
        run = await job_service.create_job_run(async_session, "sync-countries")
        await job_service.finish_job_run(async_session, run.id, RunStatus.SUCCESS, rows_affected=3)

        again = await job_service.finish_job_run(async_session, run.id, RunStatus.FAILED)

        assert again.status == RunStatus.SUCCESS
        assert again.rows_affected == 3


class TestHistory:
    """Tests for the history projections."""

    async def test_list_jobs_with_last_run(
        self, async_session: AsyncSession, jobs: None, provider: FakeProvider
    ) -> None:
        await job_service.run_job(async_session, provider, "sync-countries")

        listed = {job.key: last_run for job, last_run in await job_service.list_jobs(async_session)}

        assert set(listed) == set(JOB_DEFINITIONS)
        assert listed["sync-countries"].status == RunStatus.SUCCESS
        assert listed["sync-leagues"] is None

    async def test_list_job_runs_filters_by_status(
        self, async_session: AsyncSession, jobs: None, provider: FakeProvider
    ) -> None:
        await job_service.run_job(async_session, provider, "sync-countries")
        provider.fail_on.add("countries")
        await job_service.run_job(async_session, provider, "sync-countries")

        runs, total = await job_service.list_job_runs(async_session, "sync-countries")
        failed, failed_total = await job_service.list_job_runs(async_session, "sync-countries", status="failed")

        assert total == 2
        assert len(runs) == 2
        assert failed_total == 1
        assert failed[0].status == RunStatus.FAILED

    async def test_list_seed_batches_and_items(
        self, async_session: AsyncSession, jobs: None, provider: FakeProvider
    ) -> None:
        await job_service.run_job(async_session, provider, "sync-bookmakers")
        await job_service.run_job(async_session, provider, "sync-countries")

        batches, total = await job_service.list_seed_batches(async_session, name="sync-bookmakers")
        assert total == 1
        batch = batches[0]

        items, items_total = await job_service.list_batch_items(async_session, batch.id, action="inserted")
        assert items_total == 2
        assert sorted(item.external_id for item in items) == ["2", "9"]

        none, none_total = await job_service.list_batch_items(async_session, batch.id, action="failed")
        assert none == []
        assert none_total == 0

    async def test_pagination(self, async_session: AsyncSession, jobs: None, provider: FakeProvider) -> None:
        await job_service.run_job(async_session, provider, "sync-bookmakers")
        batch = (await job_service.list_seed_batches(async_session))[0][0]

        page, total = await job_service.list_batch_items(async_session, batch.id, page=2, page_size=1)

        assert total == 2
        assert len(page) == 1
