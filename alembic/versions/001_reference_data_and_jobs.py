"""Add reference-data, job and seed batch tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _reference_columns() -> list[sa.Column]:
    return [
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("external_id", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "countries",
        *_reference_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("iso2", sa.String(2), nullable=True),
        sa.Column("iso3", sa.String(3), nullable=True),
        sa.Column("image_path", sa.String(500), nullable=True),
    )
    op.create_index("ix_countries_external_id", "countries", ["external_id"], unique=True)

    op.create_table(
        "leagues",
        *_reference_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(50), nullable=True),
        sa.Column("sub_type", sa.String(50), nullable=True),
        sa.Column("short_code", sa.String(20), nullable=True),
        sa.Column("image_path", sa.String(500), nullable=True),
        sa.Column(
            "country_id", UUID(as_uuid=True), sa.ForeignKey("countries.id", ondelete="SET NULL"), nullable=True
        ),
    )
    op.create_index("ix_leagues_external_id", "leagues", ["external_id"], unique=True)
    op.create_index("ix_leagues_country_id", "leagues", ["country_id"])

    op.create_table(
        "teams",
        *_reference_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("short_code", sa.String(20), nullable=True),
        sa.Column("image_path", sa.String(500), nullable=True),
        sa.Column("founded", sa.Integer, nullable=True),
        sa.Column("type", sa.String(50), nullable=True),
        sa.Column(
            "country_id", UUID(as_uuid=True), sa.ForeignKey("countries.id", ondelete="SET NULL"), nullable=True
        ),
    )
    op.create_index("ix_teams_external_id", "teams", ["external_id"], unique=True)
    op.create_index("ix_teams_name", "teams", ["name"])
    op.create_index("ix_teams_country_id", "teams", ["country_id"])

    op.create_table(
        "seasons",
        *_reference_columns(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("is_current", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_finished", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("league_id", UUID(as_uuid=True), sa.ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False),
    )
    op.create_index("ix_seasons_external_id", "seasons", ["external_id"], unique=True)
    op.create_index("ix_seasons_league_id", "seasons", ["league_id"])

    op.create_table(
        "fixtures",
        *_reference_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("start_iso", sa.String(40), nullable=False),
        sa.Column("start_ts", sa.BigInteger, nullable=False),
        sa.Column("state", sa.String(30), nullable=False),
        sa.Column("result", sa.String(20), nullable=True),
        sa.Column("live_minute", sa.Integer, nullable=True),
        sa.Column("home_score_90", sa.Integer, nullable=True),
        sa.Column("away_score_90", sa.Integer, nullable=True),
        sa.Column("stage", sa.String(100), nullable=True),
        sa.Column("round", sa.String(100), nullable=True),
        sa.Column("leg", sa.String(10), nullable=True),
        sa.Column("has_odds", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("league_id", UUID(as_uuid=True), sa.ForeignKey("leagues.id", ondelete="SET NULL"), nullable=True),
        sa.Column("season_id", UUID(as_uuid=True), sa.ForeignKey("seasons.id", ondelete="SET NULL"), nullable=True),
        sa.Column("home_team_id", UUID(as_uuid=True), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("away_team_id", UUID(as_uuid=True), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
    )
    op.create_index("ix_fixtures_external_id", "fixtures", ["external_id"], unique=True)
    op.create_index("ix_fixtures_start_ts", "fixtures", ["start_ts"])
    op.create_index("ix_fixtures_season_id", "fixtures", ["season_id"])
    op.create_index("ix_fixtures_state", "fixtures", ["state"])

    op.create_table(
        "bookmakers",
        *_reference_columns(),
        sa.Column("name", sa.String(255), nullable=False),
    )
    op.create_index("ix_bookmakers_external_id", "bookmakers", ["external_id"], unique=True)

    op.create_table(
        "odds",
        *_reference_columns(),
        sa.Column("fixture_id", UUID(as_uuid=True), sa.ForeignKey("fixtures.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "bookmaker_id", UUID(as_uuid=True), sa.ForeignKey("bookmakers.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("market_external_id", sa.String(64), nullable=False),
        sa.Column("market_name", sa.String(255), nullable=True),
        sa.Column("label", sa.String(100), nullable=False),
        sa.Column("value", sa.String(30), nullable=False),
        sa.Column("probability", sa.String(30), nullable=True),
        sa.Column("handicap", sa.String(30), nullable=True),
        sa.Column("total", sa.String(30), nullable=True),
        sa.Column("winning", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("starting_at_ts", sa.BigInteger, nullable=True),
        sa.Column("sort_order", sa.Integer, nullable=True),
    )
    op.create_index("ix_odds_external_id", "odds", ["external_id"], unique=True)
    op.create_index("ix_odds_fixture_id", "odds", ["fixture_id"])
    op.create_index("ix_odds_bookmaker_id", "odds", ["bookmaker_id"])

    op.create_table(
        "jobs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("schedule_cron", sa.String(100), nullable=True),
        sa.Column("config", JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_jobs_key", "jobs", ["key"], unique=True)

    op.create_table(
        "job_runs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("job_key", sa.String(100), sa.ForeignKey("jobs.key", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="queued"),
        sa.Column("trigger", sa.String(20), nullable=False, server_default="manual"),
        sa.Column("triggered_by", sa.String(100), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_ms", sa.BigInteger, nullable=True),
        sa.Column("rows_affected", sa.Integer, nullable=True),
        sa.Column("error_message", sa.String(500), nullable=True),
        sa.Column("error_stack", sa.Text, nullable=True),
        sa.Column("meta", JSONB, nullable=True),
    )
    op.create_index("ix_job_runs_job_key", "job_runs", ["job_key"])
    op.create_index("ix_job_runs_status", "job_runs", ["status"])
    op.create_index("ix_job_runs_started_at", "job_runs", ["started_at"])

    op.create_table(
        "seed_batches",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("version", sa.String(20), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="queued"),
        sa.Column("trigger", sa.String(20), nullable=False, server_default="manual"),
        sa.Column("triggered_by", sa.String(100), nullable=True),
        sa.Column("dry_run", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "job_run_id", UUID(as_uuid=True), sa.ForeignKey("job_runs.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("items_total", sa.Integer, nullable=False, server_default="0"),
        sa.Column("items_success", sa.Integer, nullable=False, server_default="0"),
        sa.Column("items_failed", sa.Integer, nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_ms", sa.BigInteger, nullable=True),
        sa.Column("error_message", sa.String(500), nullable=True),
        sa.Column("error_stack", sa.Text, nullable=True),
        sa.Column("meta", JSONB, nullable=True),
    )
    op.create_index("ix_seed_batches_name", "seed_batches", ["name"])
    op.create_index("ix_seed_batches_status", "seed_batches", ["status"])
    op.create_index("ix_seed_batches_job_run_id", "seed_batches", ["job_run_id"])
    op.create_index("ix_seed_batches_started_at", "seed_batches", ["started_at"])

    op.create_table(
        "batch_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "batch_id", UUID(as_uuid=True), sa.ForeignKey("seed_batches.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("external_id", sa.String(64), nullable=True),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("error_message", sa.String(500), nullable=True),
        sa.Column("meta", JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_batch_items_batch_id", "batch_items", ["batch_id"])
    op.create_index("ix_batch_items_action", "batch_items", ["action"])


def downgrade() -> None:
    op.drop_table("batch_items")
    op.drop_table("seed_batches")
    op.drop_table("job_runs")
    op.drop_table("jobs")
    op.drop_table("odds")
    op.drop_table("bookmakers")
    op.drop_table("fixtures")
    op.drop_table("seasons")
    op.drop_table("teams")
    op.drop_table("leagues")
    op.drop_table("countries")
