"""Shared test fixtures for async database, sessions and a scriptable provider."""

from collections.abc import AsyncGenerator, Callable, Coroutine, Generator
from datetime import date
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sports_sync.core.config import Settings, get_settings
from sports_sync.core.dependencies import get_async_session, get_provider, get_provider_factory
from sports_sync.lib.provider import (
    BaseSportsProvider,
    BookmakerDTO,
    CountryDTO,
    ExternalId,
    FixtureDTO,
    LeagueDTO,
    OddsDTO,
    ProviderError,
    SeasonDTO,
    TeamDTO,
)
from sports_sync.main import create_app
from sports_sync.models.base import Base


class FakeProvider(BaseSportsProvider):
    """In-memory provider. Tests fill the dicts/lists and may set ``fail_on``."""

    def __init__(self) -> None:
        self.countries: dict[str, CountryDTO] = {}
        self.leagues: dict[str, LeagueDTO] = {}
        self.seasons: dict[str, SeasonDTO] = {}
        self.teams: dict[str, list[TeamDTO]] = {}
        self.fixtures: dict[str, list[FixtureDTO]] = {}
        self.bookmakers: list[BookmakerDTO] = []
        self.odds: list[OddsDTO] = []
        self.fail_on: set[str] = set()
        self.calls: list[str] = []
        self.closed = False

    @property
    def provider_name(self) -> str:
        return "fake"

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise ProviderError("fake", f"{name} unavailable", status_code=503)

    async def fetch_countries(self) -> list[CountryDTO]:
        self._call("countries")
        return list(self.countries.values())

    async def fetch_country_by_id(self, external_id: ExternalId) -> CountryDTO | None:
        self._call("country")
        return self.countries.get(str(external_id))

    async def fetch_leagues(self) -> list[LeagueDTO]:
        self._call("leagues")
        return list(self.leagues.values())

    async def fetch_league_by_id(self, external_id: ExternalId) -> LeagueDTO | None:
        self._call("league")
        return self.leagues.get(str(external_id))

    async def fetch_season_by_id(self, external_id: ExternalId) -> SeasonDTO | None:
        self._call("season")
        return self.seasons.get(str(external_id))

    async def fetch_teams_by_season(self, season_external_id: ExternalId) -> list[TeamDTO]:
        self._call("teams")
        return list(self.teams.get(str(season_external_id), []))

    async def fetch_fixtures_by_season(self, season_external_id: ExternalId) -> list[FixtureDTO]:
        self._call("fixtures")
        return list(self.fixtures.get(str(season_external_id), []))

    async def fetch_fixtures_between(self, start: date, end: date) -> list[FixtureDTO]:
        self._call("fixtures_between")
        return [fx for fixtures in self.fixtures.values() for fx in fixtures]

    async def fetch_bookmakers(self) -> list[BookmakerDTO]:
        self._call("bookmakers")
        return list(self.bookmakers)

    async def fetch_odds_between(self, start: date, end: date) -> list[OddsDTO]:
        self._call("odds")
        return list(self.odds)

    async def close(self) -> None:
        self.closed = True


def make_fixture(external_id: int, home: int, away: int, start_ts: int, **overrides: object) -> FixtureDTO:
    """Build a fixture DTO with sensible defaults."""
    values: dict[str, object] = {
        "external_id": external_id,
        "name": f"Team {home} vs Team {away}",
        "home_team_external_id": home,
        "away_team_external_id": away,
        "start_iso": "2030-08-17T14:00:00+00:00",
        "start_ts": start_ts,
        "state": "NS",
    }
    values.update(overrides)
    return FixtureDTO(**values)  # type: ignore[arg-type]


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        provider_api_token="test-token",
        poll_interval_seconds=0.01,
    )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def provider() -> FakeProvider:
    """Provider with one country, league and season plus two teams and two fixtures."""
    fake = FakeProvider()
    fake.countries["462"] = CountryDTO(external_id=462, name="England", iso2="GB", iso3="GBR")
    fake.leagues["8"] = LeagueDTO(external_id=8, name="Premier League", country_external_id=462, type="league")
    fake.seasons["23614"] = SeasonDTO(
        external_id=23614,
        name="2030/2031",
        league_external_id=8,
        start_date=date(2030, 8, 16),
        end_date=date(2031, 5, 24),
        is_current=True,
        league_name="Premier League",
    )
    fake.teams["23614"] = [
        TeamDTO(external_id=1, name="Arsenal", short_code="ARS", country_external_id=462),
        TeamDTO(external_id=2, name="Chelsea", short_code="CHE", country_external_id=462),
    ]
    fake.fixtures["23614"] = [
        make_fixture(101, 1, 2, 1913205600, league_external_id=8, season_external_id=23614),
        make_fixture(102, 2, 1, 1913810400, league_external_id=8, season_external_id=23614),
    ]
    fake.bookmakers = [BookmakerDTO(external_id=2, name="bet365"), BookmakerDTO(external_id=9, name="Betfair")]
    return fake


@pytest.fixture
def fixture_factory() -> Callable[..., FixtureDTO]:
    """The ``make_fixture`` builder, for tests that need extra fixtures."""
    return make_fixture


class DeferredTaskRunner:
    """Collects submitted coroutines so tests decide when background work runs."""

    def __init__(self) -> None:
        self.pending: dict[str, Coroutine[Any, Any, Any]] = {}

    def submit_task(self, task_id: str, coro: Coroutine[Any, Any, Any]) -> str:
        self.pending[task_id] = coro
        return task_id

    async def run_all(self) -> None:
        while self.pending:
            _, coro = self.pending.popitem()
            await coro

    def discard(self) -> None:
        for coro in self.pending.values():
            coro.close()
        self.pending.clear()


@pytest.fixture
def deferred_runner(monkeypatch: pytest.MonkeyPatch) -> Generator[DeferredTaskRunner]:
    """Replace the API's task runner; submitted jobs run on ``run_all``."""
    runner = DeferredTaskRunner()
    monkeypatch.setattr("sports_sync.api.v1.sync.task_runner", runner)
    monkeypatch.setattr("sports_sync.api.v1.jobs.task_runner", runner)
    yield runner
    runner.discard()


@pytest.fixture
def app(
    monkeypatch: pytest.MonkeyPatch,
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    provider: FakeProvider,
    deferred_runner: DeferredTaskRunner,
) -> FastAPI:
    """Application wired to the test database and the fake provider."""
    monkeypatch.setenv("DATABASE_URL", settings.database_url)
    monkeypatch.setattr("sports_sync.core.database.get_session_factory", lambda: session_factory)

    async def _session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app = create_app()
    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_provider] = lambda: provider
    app.dependency_overrides[get_provider_factory] = lambda: lambda: provider
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Async test client for the application."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
