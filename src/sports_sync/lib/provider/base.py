"""Abstract base interface and normalized DTOs for sports data providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date

ExternalId = str | int


@dataclass
class CountryDTO:
    """Normalized country record."""

    external_id: ExternalId
    name: str
    iso2: str | None = None
    iso3: str | None = None
    image_path: str | None = None


@dataclass
class LeagueDTO:
    """Normalized league record."""

    external_id: ExternalId
    name: str
    country_external_id: ExternalId | None = None
    type: str | None = None
    sub_type: str | None = None
    short_code: str | None = None
    image_path: str | None = None


@dataclass
class TeamDTO:
    """Normalized team record."""

    external_id: ExternalId
    name: str
    short_code: str | None = None
    image_path: str | None = None
    country_external_id: ExternalId | None = None
    founded: int | None = None
    type: str | None = None


@dataclass
class SeasonDTO:
    """Normalized season record."""

    external_id: ExternalId
    name: str
    league_external_id: ExternalId
    start_date: date | None = None
    end_date: date | None = None
    is_current: bool = False
    is_finished: bool = False
    league_name: str | None = None
    country_name: str | None = None


@dataclass
class FixtureDTO:
    """Normalized fixture record.

    ``start_ts`` is epoch seconds (UTC); ``result`` is the provider's raw
    score string (e.g. "2:1").
    """

    external_id: ExternalId
    name: str
    home_team_external_id: ExternalId
    away_team_external_id: ExternalId
    start_iso: str
    start_ts: int
    state: str
    league_external_id: ExternalId | None = None
    season_external_id: ExternalId | None = None
    result: str | None = None
    live_minute: int | None = None
    home_score_90: int | None = None
    away_score_90: int | None = None
    stage: str | None = None
    round: str | None = None
    leg: str | None = None
    has_odds: bool = False
    league_name: str | None = None
    country_name: str | None = None


@dataclass
class BookmakerDTO:
    """Normalized bookmaker record."""

    external_id: ExternalId
    name: str


@dataclass
class OddsDTO:
    """Normalized odds line."""

    external_id: ExternalId
    fixture_external_id: ExternalId
    bookmaker_external_id: ExternalId
    market_external_id: ExternalId
    label: str
    value: str
    market_name: str | None = None
    probability: str | None = None
    handicap: str | None = None
    total: str | None = None
    winning: bool = False
    starting_at_ts: int | None = None
    sort_order: int | None = None


class ProviderError(Exception):
    """Raised when a provider experiences a transport or service error.

    Args:
        provider_name: Name of the failing provider.
        message: Human-readable error description.
        status_code: Optional HTTP status code from the provider.
    """

    def __init__(self, provider_name: str, message: str, status_code: int | None = None) -> None:
        self.provider_name = provider_name
        self.message = message
        self.status_code = status_code
        super().__init__(f"{provider_name}: {message}")


class BaseSportsProvider(ABC):
    """Abstract interface for sports reference data providers.

    Concrete implementations fetch raw payloads and normalize them into
    the DTOs above. Every failure surfaces as ``ProviderError``.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique short name for this provider (e.g. 'sportmonks')."""

    @abstractmethod
    async def fetch_countries(self) -> list[CountryDTO]:
        """Fetch every country."""

    @abstractmethod
    async def fetch_country_by_id(self, external_id: ExternalId) -> CountryDTO | None:
        """Fetch one country, or None when the provider does not know it."""

    @abstractmethod
    async def fetch_leagues(self) -> list[LeagueDTO]:
        """Fetch every league."""

    @abstractmethod
    async def fetch_league_by_id(self, external_id: ExternalId) -> LeagueDTO | None:
        """Fetch one league, or None when the provider does not know it."""

    @abstractmethod
    async def fetch_season_by_id(self, external_id: ExternalId) -> SeasonDTO | None:
        """Fetch one season, or None when the provider does not know it."""

    @abstractmethod
    async def fetch_teams_by_season(self, season_external_id: ExternalId) -> list[TeamDTO]:
        """Fetch the teams taking part in a season."""

    @abstractmethod
    async def fetch_fixtures_by_season(self, season_external_id: ExternalId) -> list[FixtureDTO]:
        """Fetch every fixture of a season."""

    @abstractmethod
    async def fetch_fixtures_between(self, start: date, end: date) -> list[FixtureDTO]:
        """Fetch fixtures starting between two dates (inclusive)."""

    @abstractmethod
    async def fetch_bookmakers(self) -> list[BookmakerDTO]:
        """Fetch every bookmaker."""

    @abstractmethod
    async def fetch_odds_between(self, start: date, end: date) -> list[OddsDTO]:
        """Fetch pre-match odds for fixtures starting between two dates."""

    async def fetch_seasons_by_ids(self, external_ids: list[ExternalId]) -> list[SeasonDTO]:
        """Fetch several seasons one by one, dropping unknown ids."""
        seasons = []
        for external_id in external_ids:
            season = await self.fetch_season_by_id(external_id)
            if season is not None:
                seasons.append(season)
        return seasons

    async def close(self) -> None:  # noqa: B027
        """Release transport resources. No-op by default."""
