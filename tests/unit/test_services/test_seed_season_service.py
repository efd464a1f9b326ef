"""Tests for composite season seeding."""

import uuid
from collections.abc import Callable

import pytest
from conftest import FakeProvider
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sports_sync.lib.provider import FixtureDTO
from sports_sync.models import BatchItem, Country, Fixture, League, Season, SeedBatch, Team
from sports_sync.models.enums import RunStatus
from sports_sync.schemas.batch_meta import BulkSeedSeasonsResult, SeedSeasonResult, parse_batch_meta
from sports_sync.services import seed_season_service
from sports_sync.services.seed_season_service import (
    BULK_SEED_SEASONS_BATCH,
    SEED_SEASON_BATCH,
    BulkSeedSeasonsParams,
    SeedSeasonParams,
    process_bulk_seed_seasons,
    process_seed_season,
)
from sports_sync.services.seed_service import start_seed_batch


async def _count(session: AsyncSession, model: type) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


async def _queued_batch(session: AsyncSession, name: str = SEED_SEASON_BATCH) -> uuid.UUID:
    batch = await start_seed_batch(session, name, status=RunStatus.QUEUED)
    return batch.id


async def _seed(session: AsyncSession, provider: FakeProvider, **params: object) -> tuple[SeedSeasonResult, SeedBatch]:
    batch_id = await _queued_batch(session)
    season_params = SeedSeasonParams(**{"season_external_id": 23614, **params})  # type: ignore[arg-type]
    result = await process_seed_season(session, provider, season_params, batch_id=batch_id)
    batch = await session.get(SeedBatch, batch_id)
    await session.refresh(batch)
    return result, batch


class TestProcessSeedSeason:
    """Tests for process_seed_season."""

    async def test_seeds_season_with_teams_and_fixtures(
        self, async_session: AsyncSession, provider: FakeProvider
    ) -> None:
        result, batch = await _seed(async_session, provider)

        assert result.error is None
        assert result.season.created is True
        assert result.season.league_created is True
        assert result.season.country_created is True
        assert result.season.league == "Premier League"
        assert result.teams.inserted == 2
        assert result.fixtures.inserted == 2

        assert batch.status == RunStatus.SUCCESS
        # country + league + season + 2 teams + 2 fixtures
        assert batch.items_total == 7
        assert batch.items_success == 7
        assert batch.items_failed == 0
        items = await async_session.execute(select(func.count(BatchItem.id)).where(BatchItem.batch_id == batch.id))
        assert items.scalar_one() == 7

        for model, expected in ((Country, 1), (League, 1), (Season, 1), (Team, 2), (Fixture, 2)):
            assert await _count(async_session, model) == expected
        assert isinstance(parse_batch_meta(batch.meta), SeedSeasonResult)

    async def test_unknown_season_fails_batch(self, async_session: AsyncSession, provider: FakeProvider) -> None:
        result, batch = await _seed(async_session, provider, season_external_id=999)

        assert "Season 999 not found in provider" in result.error
        assert batch.status == RunStatus.FAILED
        assert batch.error_message.startswith("Season 999 not found")
        assert batch.error_stack is not None
        assert await _count(async_session, Season) == 0

    async def test_unknown_league_fails_batch(self, async_session: AsyncSession, provider: FakeProvider) -> None:
        provider.leagues.clear()

        result, batch = await _seed(async_session, provider)

        assert result.error == "League 8 not found in provider"
        assert batch.status == RunStatus.FAILED

    async def test_team_fetch_error_does_not_fail_composite(
        self, async_session: AsyncSession, provider: FakeProvider
    ) -> None:
        provider.fail_on.add("teams")

        result, batch = await _seed(async_session, provider)

        assert result.error is None
        assert "teams unavailable" in result.teams.error
        # Fixtures cannot resolve their teams
        assert result.fixtures.fail == 2
        assert batch.status == RunStatus.SUCCESS
        assert batch.items_failed == 2

    async def test_malformed_team_data_does_not_fail_composite(
        self, async_session: AsyncSession, provider: FakeProvider, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def broken_teams(season_external_id: int | str) -> list:
            raise KeyError("id")

        monkeypatch.setattr(provider, "fetch_teams_by_season", broken_teams)

        result, batch = await _seed(async_session, provider)

        assert result.error is None
        assert "KeyError('id')" in result.teams.error
        assert result.season.created is True
        assert result.fixtures.total == 2
        assert batch.status == RunStatus.SUCCESS
        assert batch.error_message is None

    async def test_existing_season_is_reused(self, async_session: AsyncSession, provider: FakeProvider) -> None:
        await _seed(async_session, provider)
        provider.calls.clear()

        result, batch = await _seed(async_session, provider, include_teams=False)

        assert "season" not in provider.calls
        assert result.season.skipped == 1
        assert result.season.created is False
        assert result.season.name == "2030/2031"
        assert result.teams is None
        assert result.fixtures.updated == 2
        assert batch.status == RunStatus.SUCCESS

    async def test_future_only_drops_started_fixtures(
        self,
        async_session: AsyncSession,
        provider: FakeProvider,
        fixture_factory: Callable[..., FixtureDTO],
    ) -> None:
        provider.fixtures["23614"].append(fixture_factory(103, 1, 2, 1_000_000_000, season_external_id=23614))

        result, _ = await _seed(async_session, provider, future_only=True)

        assert result.fixtures.total == 2
        assert await _count(async_session, Fixture) == 2

    async def test_without_fixtures(self, async_session: AsyncSession, provider: FakeProvider) -> None:
        result, _ = await _seed(async_session, provider, include_fixtures=False)

        assert result.fixtures is None
        assert "fixtures" not in provider.calls

    async def test_dry_run_writes_nothing(self, async_session: AsyncSession, provider: FakeProvider) -> None:
        result, batch = await _seed(async_session, provider, dry_run=True)

        assert result.error is None
        assert result.dry_run is True
        assert result.season.created is True
        assert result.season.league_created is True
        assert result.fixtures is None
        assert batch.status == RunStatus.SUCCESS
        for model in (Country, League, Season, Team, Fixture):
            assert await _count(async_session, model) == 0


class TestProcessBulkSeedSeasons:
    """Tests for process_bulk_seed_seasons."""

    async def test_one_bad_season_does_not_fail_parent(
        self, async_session: AsyncSession, provider: FakeProvider
    ) -> None:
        batch_id = await _queued_batch(async_session, BULK_SEED_SEASONS_BATCH)
        params = BulkSeedSeasonsParams(season_external_ids=[23614, 999], future_only=False)

        result = await process_bulk_seed_seasons(async_session, provider, params, batch_id=batch_id)

        assert result.total_seasons == 2
        assert result.completed_seasons == 1
        assert result.failed_seasons == 1
        assert [entry.status for entry in result.seasons] == ["done", "failed"]
        assert "not found in provider" in result.seasons[1].error
        assert all(entry.batch_id for entry in result.seasons)

        parent = await async_session.get(SeedBatch, batch_id)
        await async_session.refresh(parent)
        assert parent.status == RunStatus.SUCCESS
        assert (parent.items_total, parent.items_success, parent.items_failed) == (2, 1, 1)
        assert isinstance(parse_batch_meta(parent.meta), BulkSeedSeasonsResult)

        child = await async_session.get(SeedBatch, uuid.UUID(result.seasons[0].batch_id))
        assert child.name == SEED_SEASON_BATCH
        assert child.meta["parent_batch_id"] == str(batch_id)

    async def test_all_seasons_failing_fails_parent(
        self, async_session: AsyncSession, provider: FakeProvider
    ) -> None:
        batch_id = await _queued_batch(async_session, BULK_SEED_SEASONS_BATCH)
        params = BulkSeedSeasonsParams(season_external_ids=[998, 999])

        result = await process_bulk_seed_seasons(async_session, provider, params, batch_id=batch_id)

        assert result.failed_seasons == 2
        parent = await async_session.get(SeedBatch, batch_id)
        await async_session.refresh(parent)
        assert parent.status == RunStatus.FAILED
        assert parent.error_message == "All seasons failed"

    async def test_loop_error_fails_parent_instead_of_leaving_it_running(
        self, async_session: AsyncSession, provider: FakeProvider, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def broken_start(*args: object, **kwargs: object) -> SeedBatch:
            raise RuntimeError("database went away")

        monkeypatch.setattr(seed_season_service, "start_seed_batch", broken_start)
        batch_id = await _queued_batch(async_session, BULK_SEED_SEASONS_BATCH)
        params = BulkSeedSeasonsParams(season_external_ids=[23614, 999])

        result = await process_bulk_seed_seasons(async_session, provider, params, batch_id=batch_id)

        assert [entry.status for entry in result.seasons] == ["failed", "pending"]
        assert result.seasons[0].error == "database went away"
        parent = await async_session.get(SeedBatch, batch_id)
        await async_session.refresh(parent)
        assert parent.status == RunStatus.FAILED
        assert parent.error_message == "database went away"
        assert "RuntimeError" in parent.error_stack
        assert parent.finished_at is not None
        assert isinstance(parse_batch_meta(parent.meta), BulkSeedSeasonsResult)
