"""Season model — one edition of a league."""

import uuid
from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sports_sync.models.base import Base, ExternalIdMixin, TimestampMixin, UUIDMixin


class Season(Base, UUIDMixin, ExternalIdMixin, TimestampMixin):
    """A season (e.g. "2025/2026") of a league."""

    __tablename__ = "seasons"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    is_finished: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    league_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False, index=True
    )

    league = relationship("League", lazy="raise")
