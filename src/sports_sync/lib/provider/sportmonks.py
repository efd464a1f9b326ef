"""SportMonks API v3 provider for football reference data."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import date, datetime
from typing import Any, TypeVar

import httpx
from loguru import logger

from sports_sync.lib.provider.base import (
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

_T = TypeVar("_T")

_DEFAULT_BASE_URL = "https://api.sportmonks.com/v3/football"

# SportMonks score type id for the 90-minute result
_FULLTIME_SCORE_TYPE = 1525

_FIXTURE_INCLUDE = "participants;league;league.country;stage:name;round:name;state;scores"

_NOT_STARTED = {"not_started", "scheduled", "ns", "pre_match"}
_FINISHED = {"finished", "ft", "fulltime", "full_time"}
_HALF_TIME = {"half_time", "halftime", "ht"}


def map_fixture_state(short_name: str | None) -> str:
    """Collapse SportMonks state short names into NS / LIVE / FT / CAN."""
    s = (short_name or "").lower()
    if s in _NOT_STARTED:
        return "NS"
    if s in _FINISHED:
        return "FT"
    if s in _HALF_TIME:
        return "LIVE"
    if any(token in s for token in ("1st", "first", "h1", "2nd", "second", "h2")):
        return "LIVE"
    return "CAN"


def _epoch_seconds(timestamp: Any, iso: str | None) -> int:
    if isinstance(timestamp, int | float):
        return int(timestamp)
    if iso:
        try:
            parsed = datetime.fromisoformat(iso.replace(" ", "T").replace("Z", "+00:00"))
        except ValueError:
            return 0
        return int(parsed.timestamp())
    return 0


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


class SportMonksProvider(BaseSportsProvider):
    """Fetches football reference data from the SportMonks v3 API.

    The football, core and odds APIs share one ``/v3`` root; requests are
    addressed relative to it.

    Args:
        api_token: SportMonks API token, sent as the ``api_token`` query parameter.
        base_url: Football API base URL (``.../v3/football``).
        timeout: Request timeout in seconds.
        per_page: Page size for paginated endpoints (SportMonks caps it at 50).
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = _DEFAULT_BASE_URL,
        *,
        timeout: float = 30.0,
        per_page: int = 50,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        root = base_url.rstrip("/").removesuffix("/football")
        self._per_page = max(1, min(per_page, 50))
        self._client = httpx.AsyncClient(
            base_url=root,
            params={"api_token": api_token},
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def provider_name(self) -> str:
        return "sportmonks"

    async def fetch_countries(self) -> list[CountryDTO]:
        path = "/core/countries"
        rows = await self._fetch_all(path, {"select": "id,name,image_path,iso2,iso3"})
        countries = self._map_rows(path, rows, self._map_country)
        logger.info("Fetched {} countries from SportMonks", len(countries))
        return countries

    async def fetch_country_by_id(self, external_id: ExternalId) -> CountryDTO | None:
        path = f"/core/countries/{external_id}"
        row = await self._fetch_one(path, {"select": "id,name,image_path,iso2,iso3"})
        return self._map_one(path, row, self._map_country)

    async def fetch_leagues(self) -> list[LeagueDTO]:
        path = "/football/leagues"
        rows = await self._fetch_all(path, {"select": "id,name,image_path,country_id,short_code,type,sub_type"})
        leagues = self._map_rows(path, rows, self._map_league)
        logger.info("Fetched {} leagues from SportMonks", len(leagues))
        return leagues

    async def fetch_league_by_id(self, external_id: ExternalId) -> LeagueDTO | None:
        path = f"/football/leagues/{external_id}"
        row = await self._fetch_one(path, {"select": "id,name,image_path,country_id,short_code,type,sub_type"})
        return self._map_one(path, row, self._map_league)

    async def fetch_season_by_id(self, external_id: ExternalId) -> SeasonDTO | None:
        path = f"/football/seasons/{external_id}"
        row = await self._fetch_one(
            path,
            {
                "select": "id,league_id,name,starting_at,ending_at,is_current,finished",
                "include": "league:id,name;league.country:id,name",
            },
        )
        return self._map_one(path, row, self._map_season)

    async def fetch_teams_by_season(self, season_external_id: ExternalId) -> list[TeamDTO]:
        path = f"/football/teams/seasons/{season_external_id}"
        rows = await self._fetch_all(path, {})
        teams = self._map_rows(path, rows, self._map_team)
        logger.info("Fetched {} teams for season {}", len(teams), season_external_id)
        return teams

    async def fetch_fixtures_by_season(self, season_external_id: ExternalId) -> list[FixtureDTO]:
        path = f"/football/seasons/{season_external_id}"
        row = await self._fetch_one(
            path,
            {"include": "fixtures;fixtures.participants;fixtures.state;fixtures.scores;fixtures.stage;fixtures.round"},
        )
        raw_fixtures = (row or {}).get("fixtures") or []
        if not isinstance(raw_fixtures, list):
            raise self._malformed(path, f"fixtures is {type(raw_fixtures).__name__}, expected list")
        fixtures = self._map_rows(path, raw_fixtures, self._map_fixture)
        logger.info("Fetched {} fixtures for season {}", len(fixtures), season_external_id)
        return fixtures

    async def fetch_fixtures_between(self, start: date, end: date) -> list[FixtureDTO]:
        path = f"/football/fixtures/between/{start.isoformat()}/{end.isoformat()}"
        rows = await self._fetch_all(path, {"include": _FIXTURE_INCLUDE, "sortBy": "starting_at", "order": "asc"})
        fixtures = self._map_rows(path, rows, self._map_fixture)
        logger.info("Fetched {} fixtures between {} and {}", len(fixtures), start, end)
        return fixtures

    async def fetch_bookmakers(self) -> list[BookmakerDTO]:
        path = "/odds/bookmakers"
        rows = await self._fetch_all(path, {})
        return self._map_rows(path, rows, self._map_bookmaker)

    async def fetch_odds_between(self, start: date, end: date) -> list[OddsDTO]:
        path = f"/football/fixtures/between/{start.isoformat()}/{end.isoformat()}"
        rows = await self._fetch_all(path, {"include": "odds;odds.market", "sortBy": "starting_at", "order": "asc"})
        odds: list[OddsDTO] = []
        for lines in self._map_rows(path, rows, self._map_odds):
            odds.extend(lines)
        logger.info("Fetched {} odds lines between {} and {}", len(odds), start, end)
        return odds

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _malformed(self, path: str, detail: str) -> ProviderError:
        logger.error("SportMonks returned a malformed response for {}: {}", path, detail)
        return ProviderError(self.provider_name, f"Malformed response for {path}: {detail}")

    def _map_rows(self, path: str, rows: list[Any], mapper: Callable[[dict[str, Any]], _T | None]) -> list[_T]:
        """Map every row, dropping the ones the mapper skips.

        A row that is not an object or lacks a required key raises
        :class:`ProviderError` instead of leaking the mapping error.
        """
        mapped: list[_T] = []
        for row in rows:
            if not isinstance(row, dict):
                raise self._malformed(path, f"row is {type(row).__name__}, expected object")
            try:
                item = mapper(row)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise self._malformed(path, repr(exc)) from exc
            if item is not None:
                mapped.append(item)
        return mapped

    def _map_one(self, path: str, row: dict[str, Any] | None, mapper: Callable[[dict[str, Any]], _T]) -> _T | None:
        if not row:
            return None
        mapped = self._map_rows(path, [row], mapper)
        return mapped[0] if mapped else None

    async def _fetch_all(self, path: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        """Follow ``pagination.has_more`` and collect every ``data`` row."""
        rows: list[dict[str, Any]] = []
        page = 1
        params = {**params, "per_page": self._per_page}

        while True:
            params["page"] = page
            payload = await self._request(path, params)
            data = payload.get("data") or []
            if isinstance(data, dict):
                data = [data]
            if not isinstance(data, list):
                raise self._malformed(path, f"data is {type(data).__name__}, expected list")
            rows.extend(data)

            pagination = payload.get("pagination") or {}
            if not isinstance(pagination, dict) or not pagination.get("has_more"):
                break
            page += 1

        return rows

    async def _fetch_one(self, path: str, params: dict[str, Any]) -> dict[str, Any] | None:
        """Fetch a single entity; a 404 means the provider does not know it."""
        try:
            payload = await self._request(path, params)
        except ProviderError as exc:
            if exc.status_code == 404:
                return None
            raise
        data = payload.get("data")
        if isinstance(data, list):
            data = data[0] if data else None
        if data and not isinstance(data, dict):
            raise self._malformed(path, f"data is {type(data).__name__}, expected object")
        return data or None

    async def _request(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        """Make an authenticated GET request to the SportMonks API."""
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "SportMonks API error: {} {} for {}",
                exc.response.status_code,
                exc.response.reason_phrase,
                path,
            )
            raise ProviderError(
                self.provider_name,
                f"HTTP {exc.response.status_code}: {exc.response.reason_phrase}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            logger.error("SportMonks request failed: {}", exc)
            raise ProviderError(self.provider_name, f"Request failed: {exc}") from exc
        except json.JSONDecodeError as exc:
            logger.error("SportMonks returned non-JSON response for {}", path)
            raise ProviderError(self.provider_name, f"Invalid JSON response for {path}") from exc
        if not isinstance(result, dict):
            raise self._malformed(path, f"payload is {type(result).__name__}, expected object")
        return result

    @staticmethod
    def _map_bookmaker(row: dict[str, Any]) -> BookmakerDTO:
        return BookmakerDTO(external_id=row["id"], name=row.get("name") or "")

    @staticmethod
    def _map_country(row: dict[str, Any]) -> CountryDTO:
        return CountryDTO(
            external_id=row["id"],
            name=row.get("name") or "",
            iso2=row.get("iso2"),
            iso3=row.get("iso3"),
            image_path=row.get("image_path"),
        )

    @staticmethod
    def _map_league(row: dict[str, Any]) -> LeagueDTO:
        return LeagueDTO(
            external_id=row["id"],
            name=row.get("name") or "",
            country_external_id=row.get("country_id"),
            type=row.get("type"),
            sub_type=row.get("sub_type"),
            short_code=row.get("short_code"),
            image_path=row.get("image_path"),
        )

    @staticmethod
    def _map_season(row: dict[str, Any]) -> SeasonDTO:
        league = row.get("league") or {}
        return SeasonDTO(
            external_id=row["id"],
            name=row.get("name") or "",
            league_external_id=row.get("league_id") or league.get("id") or 0,
            start_date=_parse_date(row.get("starting_at")),
            end_date=_parse_date(row.get("ending_at")),
            is_current=bool(row.get("is_current")),
            is_finished=bool(row.get("finished")),
            league_name=league.get("name"),
            country_name=(league.get("country") or {}).get("name"),
        )

    @staticmethod
    def _map_team(row: dict[str, Any]) -> TeamDTO | None:
        name = row.get("name") or ""
        # Placeholder participants ("TBC", "Winner Match 1") carry no logo
        if not name or (not row.get("image_path") and name.upper().startswith(("TBC", "TBD", "WINNER", "LOSER"))):
            logger.warning("Skipping SportMonks placeholder team id={!r} name={!r}", row.get("id"), name)
            return None
        founded = row.get("founded")
        team_type = row.get("type")
        return TeamDTO(
            external_id=row["id"],
            name=name,
            short_code=row.get("short_code"),
            image_path=row.get("image_path"),
            country_external_id=row.get("country_id"),
            founded=founded if isinstance(founded, int) else None,
            type=team_type.lower() if isinstance(team_type, str) else None,
        )

    @staticmethod
    def _map_fixture(row: dict[str, Any]) -> FixtureDTO | None:
        """Map a SportMonks fixture, or None when home/away cannot be resolved."""
        home_id = away_id = None
        for participant in row.get("participants") or []:
            location = str((participant.get("meta") or {}).get("location", "")).lower()
            if location == "home":
                home_id = participant.get("id")
            elif location == "away":
                away_id = participant.get("id")
        if home_id is None or away_id is None:
            logger.warning("Skipping SportMonks fixture {!r}: missing participants", row.get("id"))
            return None

        home_goals = away_goals = None
        for score in row.get("scores") or []:
            if score.get("type_id") != _FULLTIME_SCORE_TYPE:
                continue
            detail = score.get("score") or {}
            side = str(detail.get("participant", "")).lower()
            if side == "home":
                home_goals = detail.get("goals")
            elif side == "away":
                away_goals = detail.get("goals")
        result = f"{home_goals}:{away_goals}" if home_goals is not None and away_goals is not None else None

        league = row.get("league") or {}
        start_iso = row.get("starting_at") or ""
        return FixtureDTO(
            external_id=row["id"],
            name=row.get("name") or "",
            home_team_external_id=home_id,
            away_team_external_id=away_id,
            start_iso=start_iso,
            start_ts=_epoch_seconds(row.get("starting_at_timestamp"), start_iso),
            state=map_fixture_state((row.get("state") or {}).get("short_name")),
            league_external_id=row.get("league_id"),
            season_external_id=row.get("season_id"),
            result=result,
            home_score_90=home_goals,
            away_score_90=away_goals,
            stage=(row.get("stage") or {}).get("name"),
            round=(row.get("round") or {}).get("name"),
            leg=row.get("leg"),
            has_odds=bool(row.get("has_odds")),
            league_name=league.get("name"),
            country_name=(league.get("country") or {}).get("name"),
        )

    @staticmethod
    def _map_odds(fixture: dict[str, Any]) -> list[OddsDTO]:
        lines = []
        for odd in fixture.get("odds") or []:
            lines.append(
                OddsDTO(
                    external_id=odd["id"],
                    fixture_external_id=fixture["id"],
                    bookmaker_external_id=odd.get("bookmaker_id"),
                    market_external_id=odd.get("market_id"),
                    label=odd.get("label") or odd.get("name") or "",
                    value=str(odd.get("value") or ""),
                    market_name=(odd.get("market") or {}).get("name") or odd.get("market_description"),
                    probability=odd.get("probability"),
                    handicap=odd.get("handicap"),
                    total=odd.get("total"),
                    winning=bool(odd.get("winning")),
                    starting_at_ts=fixture.get("starting_at_timestamp"),
                    sort_order=odd.get("sort_order"),
                )
            )
        return lines
