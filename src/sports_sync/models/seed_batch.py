"""SeedBatch and BatchItem models — audit trail of multi-item seeding operations."""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from sports_sync.models.base import Base, JSONType, UUIDMixin, utcnow


class SeedBatch(Base, UUIDMixin):
    """One execution of a seeding operation (e.g. "seed season N").

    Counters are updated as items complete; the row is finalized once.
    """

    __tablename__ = "seed_batches"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    version: Mapped[str | None] = mapped_column(String(20), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued", server_default="queued")
    trigger: Mapped[str] = mapped_column(String(20), nullable=False, default="manual", server_default="manual")
    triggered_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    dry_run: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    job_run_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("job_runs.id", ondelete="SET NULL"), nullable=True
    )

    items_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    items_success: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    items_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    error_message: Mapped[str | None] = mapped_column(String(500), nullable=True)
    error_stack: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    __table_args__ = (
        Index("ix_seed_batches_name", "name"),
        Index("ix_seed_batches_status", "status"),
        Index("ix_seed_batches_job_run_id", "job_run_id"),
        Index("ix_seed_batches_started_at", "started_at"),
    )


class BatchItem(Base, UUIDMixin):
    """Outcome of processing one entity within a SeedBatch. Write-only."""

    __tablename__ = "batch_items"

    batch_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("seed_batches.id", ondelete="CASCADE"), nullable=False
    )
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    external_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    error_message: Mapped[str | None] = mapped_column(String(500), nullable=True)
    meta: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_batch_items_batch_id", "batch_id"),
        Index("ix_batch_items_action", "action"),
    )
