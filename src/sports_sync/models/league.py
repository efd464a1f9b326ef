"""League model — competitions, linked to a country."""

import uuid

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sports_sync.models.base import Base, ExternalIdMixin, TimestampMixin, UUIDMixin


class League(Base, UUIDMixin, ExternalIdMixin, TimestampMixin):
    """A league or cup competition."""

    __tablename__ = "leagues"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sub_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    short_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    image_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    country_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("countries.id", ondelete="SET NULL"), nullable=True, index=True
    )

    country = relationship("Country", lazy="raise")
