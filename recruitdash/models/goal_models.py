"""RecruitDash — Recruitment Goal & Hire Models."""

from datetime import date as date_type, datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field, UniqueConstraint


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class RecruitmentGoal(SQLModel, table=True):
    """Hiring target for one job type over a contract window.

    current_count is maintained outside this service.
    """

    __tablename__ = "recruitment_goals"
    __table_args__ = (
        UniqueConstraint("clinic_id", "job_type", name="uq_goals_clinic_job_type"),
    )

    id: str = Field(default_factory=_new_id, primary_key=True)
    clinic_id: str = Field(index=True, foreign_key="clinics.id")
    job_type: str = Field(index=True)
    target_count: int = Field(default=0)
    current_count: int = Field(default=0)
    contract_start_date: date_type
    contract_duration_months: int = Field(default=12)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Hire(SQLModel, table=True):
    """Append-only log of confirmed hires. Rows are inserted or deleted, never updated."""

    __tablename__ = "hires"

    id: str = Field(default_factory=_new_id, primary_key=True)
    clinic_id: str = Field(index=True, foreign_key="clinics.id")
    hire_date: str = Field(index=True, description="YYYY-MM-DD")
    job_type: str = Field(index=True)
    source: str = Field(index=True, description="portal or 'other'")
    channel: Optional[str] = Field(default=None)
    name: Optional[str] = Field(default=None)
    memo: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
