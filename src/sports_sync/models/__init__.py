"""ORM model registry — import all models so Alembic autogenerate discovers them."""

from sports_sync.models.base import Base
from sports_sync.models.bookmaker import Bookmaker
from sports_sync.models.country import Country
from sports_sync.models.fixture import Fixture
from sports_sync.models.job import Job, JobRun
from sports_sync.models.league import League
from sports_sync.models.odds import Odds
from sports_sync.models.season import Season
from sports_sync.models.seed_batch import BatchItem, SeedBatch
from sports_sync.models.team import Team

__all__ = [
    "BatchItem",
    "Base",
    "Bookmaker",
    "Country",
    "Fixture",
    "Job",
    "JobRun",
    "League",
    "Odds",
    "Season",
    "SeedBatch",
    "Team",
]
