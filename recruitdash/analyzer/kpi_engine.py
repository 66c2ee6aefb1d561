"""RecruitDash — KPI Engine.

Sums canonical metric rows and derives view rate, application rate, redirect
rate and scout reply rate. Rates are fractions and are 0 whenever the
denominator is 0, never NaN or infinity.
"""

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from recruitdash.config import settings
from recruitdash.core.metric_registry import (
    APPLICATION,
    DISPLAY,
    REDIRECT,
    SOURCE_VALUES,
    VIEW,
    reports,
)
from recruitdash.models.analysis_models import (
    DailyMetricRow,
    MetricsSummary,
    ScoutSummary,
    SourceSubtotal,
)
from recruitdash.core.logging import get_logger

logger = get_logger("analyzer.kpi")


def safe_rate(numerator: float, denominator: float) -> float:
    return (numerator / denominator) if denominator > 0 else 0.0


def calculate_view_rate(view_count: int, display_count: int) -> float:
    """Views / displays."""
    return safe_rate(view_count, display_count)


def calculate_application_rate(application_count: int, view_count: int) -> float:
    """Applications / views."""
    return safe_rate(application_count, view_count)


def calculate_redirect_rate(redirect_count: int, view_count: int) -> float:
    """Redirects to the clinic's own site / views."""
    return safe_rate(redirect_count, view_count)


def calculate_reply_rate(reply_count: int, sent_count: int) -> float:
    """Scout replies / scouts sent."""
    return safe_rate(reply_count, sent_count)


def is_view_rate_abnormal(
    display_count: int,
    view_count: int,
    threshold: Optional[float] = None,
) -> bool:
    """A view rate above the threshold (30% by default) suggests bot traffic or bad data."""
    if threshold is None:
        threshold = settings.view_rate_abnormal_threshold
    return calculate_view_rate(view_count, display_count) > threshold


def _sum_counters(rows: Iterable[Any]) -> Dict[str, int]:
    sums: Dict[str, int] = defaultdict(int)
    for r in rows:
        sums[DISPLAY] += r.display_count or 0
        sums[VIEW] += r.view_count or 0
        sums[REDIRECT] += r.redirect_count or 0
        sums[APPLICATION] += r.application_count or 0
        sums["rows"] += 1
    return sums


def summarize_rows(rows: Iterable[Any]) -> MetricsSummary:
    """Totals and rates over rows that were already filtered by month and job type."""
    sums = _sum_counters(rows)
    display = sums[DISPLAY]
    view = sums[VIEW]
    return MetricsSummary(
        total_display_count=display,
        total_view_count=view,
        total_redirect_count=sums[REDIRECT],
        total_application_count=sums[APPLICATION],
        view_rate=calculate_view_rate(view, display),
        application_rate=calculate_application_rate(sums[APPLICATION], view),
        redirect_rate=calculate_redirect_rate(sums[REDIRECT], view),
        is_abnormal=is_view_rate_abnormal(display, view),
    )


def summarize_by_source(rows: Iterable[Any]) -> List[SourceSubtotal]:
    """One subtotal per portal present in the rows, in registry order."""
    grouped: Dict[str, list] = defaultdict(list)
    for r in rows:
        grouped[r.source].append(r)

    ordered = [s for s in SOURCE_VALUES if s in grouped]
    ordered += sorted(s for s in grouped if s not in SOURCE_VALUES)

    subtotals: List[SourceSubtotal] = []
    for source in ordered:
        summary = summarize_rows(grouped[source])
        subtotals.append(
            SourceSubtotal(
                source=source, row_count=len(grouped[source]), **summary.model_dump()
            )
        )
    return subtotals


def combine_subtotals(subtotals: List[SourceSubtotal]) -> MetricsSummary:
    """Cross-portal total.

    Counters are added per portal. Each rate only uses portals that report
    both its numerator and denominator, so Job Medley page views never enter
    the view rate against GUPPY display counts.
    """

    def total(field: str, *needs: str) -> int:
        return sum(
            getattr(s, f"total_{field}")
            for s in subtotals
            if not needs or reports(s.source, *needs)
        )

    view_for_view_rate = total(VIEW, DISPLAY, VIEW)
    display_for_view_rate = total(DISPLAY, DISPLAY, VIEW)
    view_for_application_rate = total(VIEW, VIEW, APPLICATION)
    view_for_redirect_rate = total(VIEW, VIEW, REDIRECT)

    return MetricsSummary(
        total_display_count=total(DISPLAY),
        total_view_count=total(VIEW),
        total_redirect_count=total(REDIRECT),
        total_application_count=total(APPLICATION),
        view_rate=calculate_view_rate(view_for_view_rate, display_for_view_rate),
        application_rate=calculate_application_rate(
            total(APPLICATION, VIEW, APPLICATION), view_for_application_rate
        ),
        redirect_rate=calculate_redirect_rate(
            total(REDIRECT, VIEW, REDIRECT), view_for_redirect_rate
        ),
        is_abnormal=is_view_rate_abnormal(display_for_view_rate, view_for_view_rate),
    )


def decorate_row(row: Any) -> DailyMetricRow:
    """Canonical row plus its own view rate and abnormal flag."""
    display = row.display_count or 0
    view = row.view_count or 0
    return DailyMetricRow(
        date=row.date,
        source=row.source,
        job_type=row.job_type,
        display_count=display,
        view_count=view,
        redirect_count=row.redirect_count or 0,
        application_count=row.application_count or 0,
        search_rank=row.search_rank,
        scout_reply_count=row.scout_reply_count,
        interview_count=row.interview_count,
        view_rate=calculate_view_rate(view, display),
        is_abnormal=is_view_rate_abnormal(display, view),
    )


def summarize_scout_messages(rows: Iterable[Any]) -> ScoutSummary:
    sent = 0
    replies = 0
    for r in rows:
        sent += r.sent_count or 0
        replies += r.reply_count or 0
    return ScoutSummary(
        total_sent_count=sent,
        total_reply_count=replies,
        reply_rate=calculate_reply_rate(replies, sent),
    )
