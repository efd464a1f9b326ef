"""Job and JobRun models — recurring/on-demand job definitions and their executions."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, true
from sqlalchemy.orm import Mapped, mapped_column

from sports_sync.models.base import Base, JSONType, TimestampMixin, UUIDMixin, utcnow


class Job(Base, UUIDMixin, TimestampMixin):
    """A named, configurable unit of work.

    Created at deployment time by ``ensure_jobs``, edited by admins,
    never deleted in normal operation.
    """

    __tablename__ = "jobs"

    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    schedule_cron: Mapped[str | None] = mapped_column(String(100), nullable=True)
    config: Mapped[dict | None] = mapped_column(JSONType, nullable=True)


class JobRun(Base, UUIDMixin):
    """One execution of a Job. Immutable once finalized."""

    __tablename__ = "job_runs"

    job_key: Mapped[str] = mapped_column(String(100), ForeignKey("jobs.key", ondelete="CASCADE"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued", server_default="queued")
    trigger: Mapped[str] = mapped_column(String(20), nullable=False, default="manual", server_default="manual")
    triggered_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    rows_affected: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error_message: Mapped[str | None] = mapped_column(String(500), nullable=True)
    error_stack: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    __table_args__ = (
        Index("ix_job_runs_job_key", "job_key"),
        Index("ix_job_runs_status", "status"),
        Index("ix_job_runs_started_at", "started_at"),
    )

