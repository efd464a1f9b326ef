"""Status vocabularies shared by job, run, batch and item rows."""

import enum


class RunStatus(enum.StrEnum):
    """Lifecycle of a JobRun or SeedBatch: queued -> running -> success|failed|skipped."""

    QUEUED = "queued"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_final(self) -> bool:
        return self in (RunStatus.SUCCESS, RunStatus.FAILED, RunStatus.SKIPPED)


class RunTrigger(enum.StrEnum):
    """What started a run or batch."""

    MANUAL = "manual"
    SCHEDULED = "scheduled"
    API = "api"


class ItemAction(enum.StrEnum):
    """Outcome of processing one entity within a batch."""

    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class EntityKind(enum.StrEnum):
    """Entity types synchronized from the provider."""

    COUNTRY = "country"
    LEAGUE = "league"
    TEAM = "team"
    SEASON = "season"
    FIXTURE = "fixture"
    BOOKMAKER = "bookmaker"
    ODDS = "odds"
