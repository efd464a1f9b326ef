"""Odds model — one priced outcome of a market for a fixture at a bookmaker."""

import uuid

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from sports_sync.models.base import Base, ExternalIdMixin, TimestampMixin, UUIDMixin


class Odds(Base, UUIDMixin, ExternalIdMixin, TimestampMixin):
    """A single odds line."""

    __tablename__ = "odds"

    fixture_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("fixtures.id", ondelete="CASCADE"), nullable=False
    )
    bookmaker_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("bookmakers.id", ondelete="SET NULL"), nullable=True
    )
    market_external_id: Mapped[str] = mapped_column(String(64), nullable=False)
    market_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[str] = mapped_column(String(30), nullable=False)
    probability: Mapped[str | None] = mapped_column(String(30), nullable=True)
    handicap: Mapped[str | None] = mapped_column(String(30), nullable=True)
    total: Mapped[str | None] = mapped_column(String(30), nullable=True)
    winning: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    starting_at_ts: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_odds_fixture_id", "fixture_id"),
        Index("ix_odds_bookmaker_id", "bookmaker_id"),
    )
