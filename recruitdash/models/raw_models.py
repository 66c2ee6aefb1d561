"""RecruitDash — Raw Record Models.

The shape every portal collector hands to the normalizer. Counters are
absolute values for the day as reported by the portal, never deltas.
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from recruitdash.core.metric_registry import JobType, Source


class RawAccessLog(BaseModel):
    """One day of portal traffic for a clinic (or one job posting)."""

    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    display_count: int = Field(default=0, ge=0)
    view_count: int = Field(default=0, ge=0)
    redirect_count: int = Field(default=0, ge=0)
    application_count: int = Field(default=0, ge=0)
    search_rank: Optional[int] = Field(default=None, ge=1)


class RawScoutDay(BaseModel):
    """One day of scout-message activity."""

    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    sent_count: int = Field(default=0, ge=0)
    reply_count: int = Field(default=0, ge=0)


class RawSearchRank(BaseModel):
    """A search position scraped on its own, without traffic counters."""

    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    search_rank: int = Field(ge=1)


class JobTypeAccessLogs(BaseModel):
    """Access logs for one job category.

    Collectors either tag the job type themselves or pass the posting title
    and let the collector-side classifier resolve it.
    """

    job_type: Optional[JobType] = None
    job_title: Optional[str] = None
    access_logs: List[RawAccessLog] = []


class ScrapeResult(BaseModel):
    """Everything one collector run produced for one clinic and portal."""

    clinic_id: str
    source: Source
    access_logs: Optional[List[RawAccessLog]] = None
    job_type_access_logs: Optional[List[JobTypeAccessLogs]] = None
    scout_days: Optional[List[RawScoutDay]] = None
    search_ranks: Optional[List[RawSearchRank]] = None
