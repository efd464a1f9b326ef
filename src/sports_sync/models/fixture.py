"""Fixture model — a scheduled or played match."""

import uuid

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from sports_sync.models.base import Base, ExternalIdMixin, TimestampMixin, UUIDMixin


class Fixture(Base, UUIDMixin, ExternalIdMixin, TimestampMixin):
    """A match between two teams."""

    __tablename__ = "fixtures"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_iso: Mapped[str] = mapped_column(String(40), nullable=False)
    start_ts: Mapped[int] = mapped_column(BigInteger, nullable=False)
    state: Mapped[str] = mapped_column(String(30), nullable=False)
    result: Mapped[str | None] = mapped_column(String(20), nullable=True)
    live_minute: Mapped[int | None] = mapped_column(Integer, nullable=True)
    home_score_90: Mapped[int | None] = mapped_column(Integer, nullable=True)
    away_score_90: Mapped[int | None] = mapped_column(Integer, nullable=True)
    stage: Mapped[str | None] = mapped_column(String(100), nullable=True)
    round: Mapped[str | None] = mapped_column(String(100), nullable=True)
    leg: Mapped[str | None] = mapped_column(String(10), nullable=True)
    has_odds: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    league_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("leagues.id", ondelete="SET NULL"), nullable=True
    )
    season_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("seasons.id", ondelete="SET NULL"), nullable=True
    )
    home_team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    away_team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        Index("ix_fixtures_start_ts", "start_ts"),
        Index("ix_fixtures_season_id", "season_id"),
        Index("ix_fixtures_state", "state"),
    )
