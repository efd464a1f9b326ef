"""Versioned result schemas stored in ``SeedBatch.meta``.

The meta column holds exactly one of the models below, tagged by ``kind``
and carrying a ``version``. Readers go through :func:`parse_batch_meta`,
which returns ``None`` for anything it does not recognize instead of
guessing at legacy shapes.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

BATCH_META_VERSION = 1


class StepResult(BaseModel):
    """Counters for one step of a seeding run."""

    ok: int = 0
    fail: int = 0
    total: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    error: str | None = None


class SeasonStepResult(StepResult):
    """Season step of a composite seed, with what had to be created."""

    external_id: str
    name: str | None = None
    league: str | None = None
    created: bool = False
    league_created: bool = False
    country_created: bool = False


class SeedSeasonResult(BaseModel):
    """Result of seeding one season with its teams and fixtures."""

    kind: Literal["seed-season"] = "seed-season"
    version: Literal[1] = BATCH_META_VERSION
    dry_run: bool = False
    season: SeasonStepResult | None = None
    teams: StepResult | None = None
    fixtures: StepResult | None = None
    error: str | None = None


class BulkSeasonEntry(BaseModel):
    """Progress of one season within a bulk seed."""

    season_external_id: str
    status: Literal["pending", "processing", "done", "failed"] = "pending"
    batch_id: str | None = None
    error: str | None = None
    result: SeedSeasonResult | None = None


class BulkSeedSeasonsResult(BaseModel):
    """Result of seeding several seasons in sequence."""

    kind: Literal["bulk-seed-seasons"] = "bulk-seed-seasons"
    version: Literal[1] = BATCH_META_VERSION
    total_seasons: int = 0
    completed_seasons: int = 0
    failed_seasons: int = 0
    seasons: list[BulkSeasonEntry] = Field(default_factory=list)


class EntityBatchResult(StepResult):
    """Result of a single-kind entity batch (countries, leagues, ...)."""

    kind: Literal["entity-batch"] = "entity-batch"
    version: Literal[1] = BATCH_META_VERSION
    entity_type: str
    dry_run: bool = False
    reason: str | None = None


BatchResult = Annotated[
    SeedSeasonResult | BulkSeedSeasonsResult | EntityBatchResult,
    Field(discriminator="kind"),
]

_adapter: TypeAdapter[SeedSeasonResult | BulkSeedSeasonsResult | EntityBatchResult] = TypeAdapter(BatchResult)


def parse_batch_meta(meta: Any) -> SeedSeasonResult | BulkSeedSeasonsResult | EntityBatchResult | None:
    """Parse a stored meta blob, or return None for unknown/legacy shapes."""
    if not isinstance(meta, dict):
        return None
    try:
        return _adapter.validate_python(meta)
    except ValidationError:
        return None
