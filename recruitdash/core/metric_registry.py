"""RecruitDash — Unified Metric Registry.

Defines the portals, job types and counters the engines understand, plus which
counters each portal actually reports. Portals define "view" differently
(page views vs. view events), so rates are only combined across portals that
report both sides of the ratio.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional


class Source(str, Enum):
    """Recruitment-media portals that feed the metrics table."""

    GUPPY = "guppy"
    JOBMEDLEY = "jobmedley"
    QUACAREER = "quacareer"


class JobType(str, Enum):
    """Dental clinic job categories."""

    DR = "dr"  # 歯科医師
    DH = "dh"  # 歯科衛生士
    DA = "da"  # 歯科助手
    RECEPTIONIST = "receptionist"  # 受付
    TECHNICIAN = "technician"  # 歯科技工士
    DIETITIAN = "dietitian"  # 管理栄養士
    NURSERY = "nursery"  # 保育士
    KINDERGARTEN = "kindergarten"  # 幼稚園教諭
    MEDICAL_CLERK = "medical_clerk"  # 医療事務


class Channel(str, Enum):
    """How a hire reached the clinic."""

    SCOUT = "scout"
    APPLICATION = "application"
    DIRECT = "direct"
    REFERRAL = "referral"
    OTHER = "other"


SOURCE_VALUES = [s.value for s in Source]
JOB_TYPE_VALUES = [j.value for j in JobType]
CHANNEL_VALUES = [c.value for c in Channel]

# Hires may come from outside the scraped portals
HIRE_SOURCE_VALUES = SOURCE_VALUES + ["other"]

JOB_TYPE_LABELS: Dict[str, str] = {
    "dr": "歯科医師",
    "dh": "歯科衛生士",
    "da": "歯科助手",
    "receptionist": "受付",
    "technician": "歯科技工士",
    "dietitian": "管理栄養士",
    "nursery": "保育士",
    "kindergarten": "幼稚園教諭",
    "medical_clerk": "医療事務",
}

# Dedupe/ordering key used for the aggregate (job_type = NULL) rows
AGGREGATE_JOB_TYPE_KEY = "all"


def is_valid_source(value: Optional[str]) -> bool:
    return value in SOURCE_VALUES


def is_valid_job_type(value: Optional[str]) -> bool:
    return value in JOB_TYPE_VALUES


# ─────────────────────────────────────────────
# COUNTERS — What each portal reports
# ─────────────────────────────────────────────

DISPLAY = "display_count"
VIEW = "view_count"
REDIRECT = "redirect_count"
APPLICATION = "application_count"

COUNTER_FIELDS = (DISPLAY, VIEW, REDIRECT, APPLICATION)

SOURCE_COUNTERS: Dict[str, FrozenSet[str]] = {
    "guppy": frozenset({DISPLAY, VIEW, REDIRECT, APPLICATION}),
    # Job Medley "views" are job-page page views
    "jobmedley": frozenset({VIEW, APPLICATION}),
    "quacareer": frozenset({VIEW, APPLICATION}),
}


def reports(source: str, *counters: str) -> bool:
    """True when the portal reports every counter given."""
    available = SOURCE_COUNTERS.get(source, frozenset())
    return all(c in available for c in counters)


# ─────────────────────────────────────────────
# KPI DEFINITIONS — Alert thresholds
# ─────────────────────────────────────────────


class KPIThreshold:
    """Bands used to colour a KPI value."""

    def __init__(
        self,
        warning_min: float,
        warning_max: float,
        success_min: float,
        danger_max: Optional[float] = None,
        danger_min: Optional[float] = None,
    ):
        self.danger_max = danger_max  # at or below → danger
        self.danger_min = danger_min  # at or above → danger (fraud detection)
        self.warning_min = warning_min
        self.warning_max = warning_max
        self.success_min = success_min


class KPIDefinition:
    """Describes a single alertable KPI."""

    def __init__(
        self,
        kpi_id: str,
        name: str,
        unit: str,
        threshold: KPIThreshold,
        higher_is_better: bool = True,
        danger_message: str = "",
        success_message: str = "",
    ):
        self.kpi_id = kpi_id
        self.name = name
        self.unit = unit
        self.threshold = threshold
        self.higher_is_better = higher_is_better
        self.danger_message = danger_message
        self.success_message = success_message

    def __repr__(self) -> str:
        return f"<KPI {self.kpi_id} ({self.unit})>"


KPI_DEFINITIONS: Dict[str, KPIDefinition] = {
    "view_rate": KPIDefinition(
        "view_rate",
        "閲覧率",
        "%",
        KPIThreshold(
            danger_max=5, danger_min=30, warning_min=8, warning_max=15, success_min=15
        ),
        danger_message="Improve the posting title and main photo, or report abnormal traffic",
        success_message="View rate is healthy; focus on the application rate",
    ),
    "application_rate": KPIDefinition(
        "application_rate",
        "応募率",
        "%",
        KPIThreshold(danger_max=1, warning_min=1.5, warning_max=3, success_min=3),
        danger_message="Improve the posting details (photos and copy)",
        success_message="Use this posting as the benchmark",
    ),
    "redirect_rate": KPIDefinition(
        "redirect_rate",
        "自社サイト誘導率",
        "%",
        KPIThreshold(danger_max=3, warning_min=5, warning_max=10, success_min=10),
        danger_message="Rewrite the call-to-action that links to the clinic site",
        success_message="Redirect copy is working",
    ),
    "scout_reply_rate": KPIDefinition(
        "scout_reply_rate",
        "スカウト返信率",
        "%",
        KPIThreshold(danger_max=3, warning_min=5, warning_max=10, success_min=10),
        danger_message="Rework the first line of the scout message",
        success_message="Scout messages are landing",
    ),
    "search_rank": KPIDefinition(
        "search_rank",
        "検索順位",
        "位",
        KPIThreshold(danger_min=20, warning_min=5, warning_max=15, success_min=0),
        higher_is_better=False,
        danger_message="Fill in every feature tag and refresh the posting",
        success_message="Posting ranks near the top",
    ),
    "monthly_total_applications": KPIDefinition(
        "monthly_total_applications",
        "月間総応募数",
        "名",
        KPIThreshold(danger_max=5, warning_min=8, warning_max=12, success_min=12),
        danger_message="Applications are low across all portals",
        success_message="Application volume is on target",
    ),
}


def get_kpi(kpi_id: str) -> KPIDefinition | None:
    """Look up a KPI definition by id."""
    return KPI_DEFINITIONS.get(kpi_id)
