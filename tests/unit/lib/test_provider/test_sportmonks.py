"""Tests for the SportMonks provider using a mocked transport."""

from collections.abc import Callable
from datetime import date

import httpx
import pytest

from sports_sync.lib.provider import ProviderError, SportMonksProvider, get_provider
from sports_sync.lib.provider.sportmonks import map_fixture_state

Handler = Callable[[httpx.Request], httpx.Response]


def _provider(handler: Handler) -> SportMonksProvider:
    return SportMonksProvider(
        "secret",
        "https://api.example.test/v3/football",
        transport=httpx.MockTransport(handler),
    )


def _fixture_row(fixture_id: int = 101, **overrides: object) -> dict:
    row: dict = {
        "id": fixture_id,
        "name": "Arsenal vs Chelsea",
        "league_id": 8,
        "season_id": 23614,
        "starting_at": "2030-08-17 14:00:00",
        "starting_at_timestamp": 1913205600,
        "has_odds": True,
        "participants": [
            {"id": 1, "meta": {"location": "home"}},
            {"id": 2, "meta": {"location": "away"}},
        ],
        "state": {"short_name": "FT"},
        "scores": [
            {"type_id": 1525, "score": {"participant": "home", "goals": 2}},
            {"type_id": 1525, "score": {"participant": "away", "goals": 1}},
            {"type_id": 1, "score": {"participant": "home", "goals": 1}},
        ],
        "stage": {"name": "Regular Season"},
        "round": {"name": "1"},
    }
    row.update(overrides)
    return row


class TestMapFixtureState:
    """Tests for map_fixture_state."""

    @pytest.mark.parametrize(
        ("short_name", "expected"),
        [
            ("NS", "NS"),
            ("ft", "FT"),
            ("HT", "LIVE"),
            ("1st_half", "LIVE"),
            ("2nd_half", "LIVE"),
            ("POSTPONED", "CAN"),
            (None, "CAN"),
        ],
    )
    def test_mapping(self, short_name: str | None, expected: str) -> None:
        assert map_fixture_state(short_name) == expected


class TestSportMonksProvider:
    """Tests for SportMonksProvider."""

    async def test_sends_token_and_follows_pagination(self) -> None:
        seen: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            page = int(request.url.params["page"])
            data = [{"id": page, "name": f"Country {page}", "iso2": "GB"}]
            return httpx.Response(200, json={"data": data, "pagination": {"has_more": page < 2}})

        provider = _provider(handler)
        countries = await provider.fetch_countries()
        await provider.close()

        assert [c.external_id for c in countries] == [1, 2]
        assert all(url.path == "/v3/core/countries" for url in seen)
        assert all(url.params["api_token"] == "secret" for url in seen)
        assert seen[0].params["per_page"] == "50"

    async def test_league_by_id_404_is_none(self) -> None:
        provider = _provider(lambda request: httpx.Response(404, json={"message": "not found"}))
        assert await provider.fetch_league_by_id(999) is None
        await provider.close()

    async def test_season_mapping(self) -> None:
        row = {
            "id": 23614,
            "league_id": 8,
            "name": "2030/2031",
            "starting_at": "2030-08-16",
            "ending_at": "2031-05-24",
            "is_current": True,
            "finished": False,
            "league": {"id": 8, "name": "Premier League", "country": {"id": 462, "name": "England"}},
        }

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v3/football/seasons/23614"
            return httpx.Response(200, json={"data": row})

        provider = _provider(handler)
        season = await provider.fetch_season_by_id(23614)
        await provider.close()

        assert season is not None
        assert season.league_external_id == 8
        assert season.start_date == date(2030, 8, 16)
        assert season.end_date == date(2031, 5, 24)
        assert season.is_current is True
        assert season.league_name == "Premier League"
        assert season.country_name == "England"

    async def test_teams_skip_placeholders(self) -> None:
        rows = [
            {"id": 1, "name": "Arsenal", "image_path": "a.png", "type": "Domestic", "founded": 1886},
            {"id": 2, "name": "TBC", "image_path": None},
            {"id": 3, "name": "Winner Match 4", "image_path": None},
        ]
        provider = _provider(lambda request: httpx.Response(200, json={"data": rows}))

        teams = await provider.fetch_teams_by_season(23614)
        await provider.close()

        assert [t.external_id for t in teams] == [1]
        assert teams[0].type == "domestic"
        assert teams[0].founded == 1886

    async def test_fixture_mapping(self) -> None:
        provider = _provider(lambda request: httpx.Response(200, json={"data": [_fixture_row()]}))

        [fixture] = await provider.fetch_fixtures_between(date(2030, 8, 17), date(2030, 8, 18))
        await provider.close()

        assert fixture.home_team_external_id == 1
        assert fixture.away_team_external_id == 2
        assert fixture.result == "2:1"
        assert fixture.home_score_90 == 2
        assert fixture.state == "FT"
        assert fixture.start_ts == 1913205600
        assert fixture.stage == "Regular Season"
        assert fixture.has_odds is True

    async def test_fixture_without_participants_is_skipped(self) -> None:
        provider = _provider(lambda request: httpx.Response(200, json={"data": [_fixture_row(participants=[])]}))
        assert await provider.fetch_fixtures_between(date(2030, 8, 17), date(2030, 8, 18)) == []
        await provider.close()

    async def test_fixtures_by_season_reads_included_fixtures(self) -> None:
        payload = {"data": {"id": 23614, "fixtures": [_fixture_row(101), _fixture_row(102)]}}
        provider = _provider(lambda request: httpx.Response(200, json=payload))

        fixtures = await provider.fetch_fixtures_by_season(23614)
        await provider.close()

        assert [f.external_id for f in fixtures] == [101, 102]

    async def test_odds_mapping(self) -> None:
        row = _fixture_row(
            odds=[
                {
                    "id": 5001,
                    "bookmaker_id": 2,
                    "market_id": 1,
                    "label": "Home",
                    "value": "1.85",
                    "winning": True,
                    "market": {"name": "Fulltime Result"},
                }
            ]
        )
        provider = _provider(lambda request: httpx.Response(200, json={"data": [row]}))

        [line] = await provider.fetch_odds_between(date(2030, 8, 17), date(2030, 8, 18))
        await provider.close()

        assert line.fixture_external_id == 101
        assert line.market_name == "Fulltime Result"
        assert line.value == "1.85"
        assert line.winning is True
        assert line.starting_at_ts == 1913205600

    async def test_http_error_becomes_provider_error(self) -> None:
        provider = _provider(lambda request: httpx.Response(500))
        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch_bookmakers()
        await provider.close()
        assert exc_info.value.status_code == 500

    async def test_transport_error_becomes_provider_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        provider = _provider(handler)
        with pytest.raises(ProviderError, match="Request failed"):
            await provider.fetch_leagues()
        await provider.close()

    async def test_invalid_json_becomes_provider_error(self) -> None:
        provider = _provider(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(ProviderError, match="Invalid JSON"):
            await provider.fetch_countries()
        await provider.close()

    async def test_team_row_without_id_becomes_provider_error(self) -> None:
        provider = _provider(lambda request: httpx.Response(200, json={"data": [{"name": "Arsenal"}]}))
        with pytest.raises(ProviderError, match="Malformed response") as exc_info:
            await provider.fetch_teams_by_season(23614)
        await provider.close()
        assert "KeyError" in exc_info.value.message
        assert exc_info.value.status_code is None

    async def test_non_object_payload_becomes_provider_error(self) -> None:
        provider = _provider(lambda request: httpx.Response(200, json=["not", "an", "object"]))
        with pytest.raises(ProviderError, match="Malformed response"):
            await provider.fetch_leagues()
        await provider.close()

    async def test_non_object_row_becomes_provider_error(self) -> None:
        provider = _provider(lambda request: httpx.Response(200, json={"data": [42]}))
        with pytest.raises(ProviderError, match="Malformed response"):
            await provider.fetch_bookmakers()
        await provider.close()

    async def test_fixture_without_id_in_season_becomes_provider_error(self) -> None:
        row = _fixture_row()
        del row["id"]
        body = {"data": {"id": 23614, "fixtures": [row]}}
        provider = _provider(lambda request: httpx.Response(200, json=body))
        with pytest.raises(ProviderError, match="Malformed response"):
            await provider.fetch_fixtures_by_season(23614)
        await provider.close()


class TestRegistry:
    """Tests for the provider registry."""

    def test_get_provider(self) -> None:
        provider = get_provider("sportmonks", api_token="secret")
        assert isinstance(provider, SportMonksProvider)

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError, match="Unknown sports-data provider"):
            get_provider("nope")
