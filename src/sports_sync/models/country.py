"""Country model — provider country reference data."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from sports_sync.models.base import Base, ExternalIdMixin, TimestampMixin, UUIDMixin


class Country(Base, UUIDMixin, ExternalIdMixin, TimestampMixin):
    """A country as published by the data provider."""

    __tablename__ = "countries"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    iso2: Mapped[str | None] = mapped_column(String(2), nullable=True)
    iso3: Mapped[str | None] = mapped_column(String(3), nullable=True)
    image_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
