"""Bookmaker model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from sports_sync.models.base import Base, ExternalIdMixin, TimestampMixin, UUIDMixin


class Bookmaker(Base, UUIDMixin, ExternalIdMixin, TimestampMixin):
    """A bookmaker publishing odds."""

    __tablename__ = "bookmakers"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
