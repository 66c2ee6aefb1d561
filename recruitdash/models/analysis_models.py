"""RecruitDash — Analysis Output Models."""

from datetime import date
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


# ─────────────────────────────────────────────
# NORMALIZER RESULTS
# ─────────────────────────────────────────────


class UpsertTally(BaseModel):
    """Saved vs. attempted count for one batch of upserts."""

    attempted: int = 0
    saved: int = 0
    errors: List[str] = Field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.attempted - self.saved


class ViewRateAlert(BaseModel):
    """A canonical row whose view rate looks implausibly high."""

    clinic_id: str
    date: str
    source: str
    job_type: Optional[str] = None
    display_count: int
    view_count: int
    view_rate: float


class IngestReport(BaseModel):
    """Outcome of normalizing one collector run."""

    clinic_id: str
    source: str
    metrics: UpsertTally = Field(default_factory=UpsertTally)
    scout_messages: UpsertTally = Field(default_factory=UpsertTally)
    search_ranks: UpsertTally = Field(default_factory=UpsertTally)
    view_rate_alerts: List[ViewRateAlert] = Field(default_factory=list)


# ─────────────────────────────────────────────
# AGGREGATION
# ─────────────────────────────────────────────


class MetricsSummary(BaseModel):
    """Summed traffic counters plus derived rates (fractions, not percent)."""

    total_display_count: int = 0
    total_view_count: int = 0
    total_redirect_count: int = 0
    total_application_count: int = 0
    view_rate: float = 0.0
    application_rate: float = 0.0
    redirect_rate: float = 0.0
    is_abnormal: bool = False


class SourceSubtotal(MetricsSummary):
    """Summary restricted to one portal."""

    source: str
    row_count: int = 0


class ManualMetricsTotals(BaseModel):
    """Operator-entered totals. None means nothing was entered for the period."""

    total_scout_reply_count: Optional[int] = None
    total_interview_count: Optional[int] = None
    missing_manual_metrics: bool = True


class ScoutSummary(BaseModel):
    total_sent_count: int = 0
    total_reply_count: int = 0
    reply_rate: float = 0.0


class AlertLevel(str, Enum):
    DANGER = "danger"
    WARNING = "warning"
    SUCCESS = "success"
    NEUTRAL = "neutral"


class KPIAlert(BaseModel):
    """A KPI value and the band it falls in."""

    kpi_id: str
    kpi_name: str
    value: float
    unit: str
    level: AlertLevel
    message: str = ""
    source: str = "integrated"


class DailyMetricRow(BaseModel):
    """One deduped canonical row, decorated for display."""

    date: str
    source: str
    job_type: Optional[str] = None
    display_count: int = 0
    view_count: int = 0
    redirect_count: int = 0
    application_count: int = 0
    search_rank: Optional[int] = None
    scout_reply_count: Optional[int] = None
    interview_count: Optional[int] = None
    view_rate: float = 0.0
    is_abnormal: bool = False


class ClinicSummary(BaseModel):
    """Monthly KPI payload for one clinic."""

    clinic_id: str
    year: int
    month: int
    date_range_start: str
    date_range_end: str
    job_type: Optional[str] = None
    source: Optional[str] = None
    metrics: MetricsSummary = MetricsSummary()
    by_source: List[SourceSubtotal] = []
    manual: ManualMetricsTotals = ManualMetricsTotals()
    scout: ScoutSummary = ScoutSummary()
    search_ranks: Dict[str, Optional[int]] = {}
    alerts: List[KPIAlert] = []
    latest_data_date: Optional[str] = None


# ─────────────────────────────────────────────
# GOALS
# ─────────────────────────────────────────────


class GoalProgress(BaseModel):
    """Pace snapshot for one recruitment goal."""

    goal_id: str
    clinic_id: str
    job_type: str
    target_count: int
    current_count: int
    contract_start_date: date
    contract_end_date: date
    contract_duration_months: int
    total_days: float
    elapsed_days: float
    remaining_days: int
    progress_rate: float
    expected_completion_rate: float
    remaining_count: int
    is_on_track: bool


class GoalRollup(BaseModel):
    """All of a clinic's goals added together."""

    total_target_count: int = 0
    total_current_count: int = 0
    progress_rate: int = 0  # percent, rounded
    is_on_track: bool = True


class ClinicOverview(BaseModel):
    """One line of the admin clinic list."""

    id: str
    name: str
    slug: str
    metrics: MetricsSummary = MetricsSummary()
    by_source: List[SourceSubtotal] = []
    manual: ManualMetricsTotals = ManualMetricsTotals()
    scout: ScoutSummary = ScoutSummary()
    search_ranks: Dict[str, Optional[int]] = {}
    goal_rollup: Optional[GoalRollup] = None
    total_hire_count: int = 0
    latest_data_date: Optional[str] = None
