"""Tests for the versioned batch result schemas."""

import pytest

from sports_sync.schemas.batch_meta import (
    BulkSeasonEntry,
    BulkSeedSeasonsResult,
    EntityBatchResult,
    SeasonStepResult,
    SeedSeasonResult,
    StepResult,
    parse_batch_meta,
)


class TestParseBatchMeta:
    """Tests for parse_batch_meta."""

    def test_seed_season_result(self) -> None:
        stored = SeedSeasonResult(
            season=SeasonStepResult(external_id="23614", ok=1, total=1, inserted=1, created=True),
            teams=StepResult(ok=2, total=2, inserted=2),
        ).model_dump(mode="json")

        parsed = parse_batch_meta(stored)

        assert isinstance(parsed, SeedSeasonResult)
        assert parsed.season.created is True
        assert parsed.teams.inserted == 2
        assert parsed.fixtures is None

    def test_bulk_result(self) -> None:
        stored = BulkSeedSeasonsResult(
            total_seasons=1,
            seasons=[BulkSeasonEntry(season_external_id="1", status="processing")],
        ).model_dump(mode="json")

        parsed = parse_batch_meta(stored)

        assert isinstance(parsed, BulkSeedSeasonsResult)
        assert parsed.seasons[0].status == "processing"

    def test_entity_batch_result(self) -> None:
        stored = EntityBatchResult(entity_type="country", reason="no-input").model_dump(mode="json")

        parsed = parse_batch_meta(stored)

        assert isinstance(parsed, EntityBatchResult)
        assert parsed.version == 1

    @pytest.mark.parametrize(
        "meta",
        [
            None,
            "seed-season",
            [],
            {},
            {"parent_batch_id": "abc"},
            {"kind": "seed-season", "version": 2},
            {"kind": "legacy", "version": 1},
        ],
    )
    def test_unknown_shapes_are_none(self, meta: object) -> None:
        assert parse_batch_meta(meta) is None


class TestBulkSeasonEntry:
    """Tests for BulkSeasonEntry."""

    def test_defaults_to_pending(self) -> None:
        assert BulkSeasonEntry(season_external_id="1").status == "pending"
