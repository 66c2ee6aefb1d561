"""RecruitDash — Normalized Metric Models (Canonical Schema).

Every portal collector normalizes into these tables. One metrics row is one
(clinic, date, source, job_type) combination; job_type NULL is the clinic-wide
total for that portal and day.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field, UniqueConstraint


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class Clinic(SQLModel, table=True):
    """A dental clinic whose recruitment portals are tracked."""

    __tablename__ = "clinics"

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str = Field(index=True)
    slug: str = Field(index=True, unique=True)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class CanonicalMetric(SQLModel, table=True):
    """Canonical per-day metric row.

    Unique constraint on (clinic_id, date, source, job_type) makes re-runs
    idempotent. SQL treats NULL job_type values as distinct, so aggregate rows
    are not fully protected by it; reads always dedupe as well.

    scout_reply_count / interview_count are operator-entered: NULL means
    "not entered yet", 0 means "entered as zero".
    """

    __tablename__ = "metrics"
    __table_args__ = (
        UniqueConstraint(
            "clinic_id",
            "date",
            "source",
            "job_type",
            name="uq_metrics_clinic_date_source_job_type",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    clinic_id: str = Field(index=True, foreign_key="clinics.id")
    date: str = Field(index=True, description="YYYY-MM-DD")
    source: str = Field(index=True, description="guppy | jobmedley | quacareer")
    job_type: Optional[str] = Field(
        default=None, index=True, description="Job type tag; NULL = all job types"
    )
    display_count: int = Field(default=0)
    view_count: int = Field(default=0)
    redirect_count: int = Field(default=0)
    application_count: int = Field(default=0)
    search_rank: Optional[int] = Field(default=None)
    scout_reply_count: Optional[int] = Field(default=None)
    interview_count: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class ScoutMessage(SQLModel, table=True):
    """Daily scout-message counts per portal (no job-type breakdown)."""

    __tablename__ = "scout_messages"
    __table_args__ = (
        UniqueConstraint(
            "clinic_id", "date", "source", name="uq_scout_messages_clinic_date_source"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    clinic_id: str = Field(index=True, foreign_key="clinics.id")
    date: str = Field(index=True, description="YYYY-MM-DD")
    source: str = Field(index=True)
    sent_count: int = Field(default=0)
    reply_count: int = Field(default=0)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
