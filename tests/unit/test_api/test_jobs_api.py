"""Tests for the job endpoints."""

import uuid

import pytest
from conftest import DeferredTaskRunner, FakeProvider
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sports_sync.services.job_service import JOB_DEFINITIONS, ensure_jobs


@pytest.fixture(autouse=True)
async def jobs(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        await ensure_jobs(session)


class TestListJobs:
    """Tests for GET /api/v1/jobs."""

    async def test_lists_every_job(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/jobs")

        assert resp.status_code == 200
        items = resp.json()["items"]
        assert [item["key"] for item in items] == sorted(JOB_DEFINITIONS)
        assert all(item["last_run"] is None for item in items)
        countries = next(item for item in items if item["key"] == "sync-countries")
        assert countries["enabled"] is True
        assert countries["schedule_cron"] == "0 3 * * 1"


class TestUpdateJob:
    """Tests for PATCH /api/v1/jobs/{key}."""

    async def test_updates_fields(self, client: AsyncClient) -> None:
        resp = await client.patch(
            "/api/v1/jobs/sync-prematch-odds", json={"enabled": False, "scheduleCron": "0 * * * *"}
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["enabled"] is False
        assert body["schedule_cron"] == "0 * * * *"
        assert body["config"] == {"days_ahead": 2}

    async def test_unknown_job(self, client: AsyncClient) -> None:
        resp = await client.patch("/api/v1/jobs/nope", json={"enabled": False})
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Job not found"


class TestTriggerJob:
    """Tests for POST /api/v1/jobs/{key}/run."""

    async def test_run_is_queued_then_executed(
        self, client: AsyncClient, deferred_runner: DeferredTaskRunner, provider: FakeProvider
    ) -> None:
        resp = await client.post("/api/v1/jobs/sync-bookmakers/run")

        assert resp.status_code == 202
        body = resp.json()
        assert body["status"] == "queued"
        assert body["message"] == "Job sync-bookmakers started"

        await deferred_runner.run_all()

        runs = (await client.get("/api/v1/jobs/sync-bookmakers/runs")).json()
        assert runs["pagination"]["total"] == 1
        run = runs["items"][0]
        assert run["id"] == body["run_id"]
        assert run["status"] == "success"
        assert run["trigger"] == "api"
        assert run["rows_affected"] == 2

        items = (await client.get(f"/api/v1/jobs/runs/{run['id']}/items")).json()
        assert sorted(item["external_id"] for item in items["items"]) == ["2", "9"]

        listed = (await client.get("/api/v1/jobs")).json()["items"]
        bookmakers = next(item for item in listed if item["key"] == "sync-bookmakers")
        assert bookmakers["last_run"]["id"] == body["run_id"]

    async def test_disabled_job_is_skipped(self, client: AsyncClient, deferred_runner: DeferredTaskRunner) -> None:
        await client.patch("/api/v1/jobs/sync-countries", json={"enabled": False})

        resp = await client.post("/api/v1/jobs/sync-countries/run")

        assert resp.status_code == 202
        assert resp.json()["status"] == "skipped"
        assert resp.json()["message"] == "Job sync-countries is disabled"
        assert deferred_runner.pending == {}

    async def test_unknown_job(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/jobs/nope/run")
        assert resp.status_code == 404

    async def test_runs_filter_by_status(self, client: AsyncClient, deferred_runner: DeferredTaskRunner) -> None:
        await client.post("/api/v1/jobs/sync-leagues/run")
        await deferred_runner.run_all()

        failed = (await client.get("/api/v1/jobs/sync-leagues/runs", params={"run_status": "failed"})).json()
        assert failed["pagination"]["total"] == 0

    async def test_unknown_run_items(self, client: AsyncClient) -> None:
        resp = await client.get(f"/api/v1/jobs/runs/{uuid.uuid4()}/items")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Job run not found"
