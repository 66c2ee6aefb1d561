"""RecruitDash — Clinic Summary Pipeline.

Reads canonical rows for a clinic and month and runs them through the engines:
  query → dedupe → per-portal subtotals → combined totals → manual totals
  → scout totals → latest search ranks → KPI alerts

The reporting month is always passed in; nothing here reads the clock.
"""

from collections import defaultdict
from typing import Dict, List, Optional

from sqlmodel import Session, col, select

from recruitdash.analyzer.alert_engine import compute_alerts
from recruitdash.analyzer.goal_engine import list_goals, list_hires, summarize_goals
from recruitdash.analyzer.kpi_engine import (
    calculate_view_rate,
    combine_subtotals,
    decorate_row,
    is_view_rate_abnormal,
    summarize_by_source,
    summarize_scout_messages,
)
from recruitdash.analyzer.manual_input import summarize_manual_metrics
from recruitdash.analyzer.search_rank import get_latest_search_rank
from recruitdash.connectors.normalizer import dedupe_by_source
from recruitdash.core.dates import month_bounds
from recruitdash.core.errors import NotFoundError, ValidationError
from recruitdash.core.metric_registry import (
    JOB_TYPE_VALUES,
    SOURCE_VALUES,
    is_valid_job_type,
    is_valid_source,
)
from recruitdash.models.analysis_models import (
    ClinicOverview,
    ClinicSummary,
    DailyMetricRow,
    ViewRateAlert,
)
from recruitdash.models.normalized_models import CanonicalMetric, Clinic, ScoutMessage
from recruitdash.core.logging import get_logger

logger = get_logger("analyzer.pipeline")


def validate_filters(job_type: Optional[str], source: Optional[str]) -> None:
    """Reject unknown job_type / source query values (an empty string is unknown too)."""
    if job_type is not None and not is_valid_job_type(job_type):
        raise ValidationError(
            f"Invalid job_type parameter. Valid values: {', '.join(JOB_TYPE_VALUES)}"
        )
    if source is not None and not is_valid_source(source):
        raise ValidationError(
            f"Invalid source parameter. Valid values: {', '.join(SOURCE_VALUES)}"
        )


def get_clinic(session: Session, clinic_id: str) -> Clinic:
    clinic = session.get(Clinic, clinic_id)
    if clinic is None:
        raise NotFoundError("Clinic not found")
    return clinic


def fetch_metric_rows(
    session: Session,
    clinic_id: str,
    date_start: str,
    date_stop: str,
    job_type: Optional[str] = None,
    source: Optional[str] = None,
) -> List[CanonicalMetric]:
    """Deduped metrics rows in [date_start, date_stop].

    With a job_type only that job type's rows are returned; without one only
    the clinic-wide (job_type NULL) rows. The two are never mixed.
    """
    query = select(CanonicalMetric).where(
        CanonicalMetric.clinic_id == clinic_id,
        CanonicalMetric.date >= date_start,
        CanonicalMetric.date <= date_stop,
    )
    if job_type is None:
        query = query.where(col(CanonicalMetric.job_type).is_(None))
    else:
        query = query.where(CanonicalMetric.job_type == job_type)
    if source is not None:
        query = query.where(CanonicalMetric.source == source)
    return dedupe_by_source(session.exec(query).all())


def fetch_scout_messages(
    session: Session,
    clinic_id: str,
    date_start: str,
    date_stop: str,
    source: Optional[str] = None,
) -> List[ScoutMessage]:
    query = select(ScoutMessage).where(
        ScoutMessage.clinic_id == clinic_id,
        ScoutMessage.date >= date_start,
        ScoutMessage.date <= date_stop,
    )
    if source is not None:
        query = query.where(ScoutMessage.source == source)
    return list(session.exec(query.order_by(ScoutMessage.date)).all())


def resolve_search_ranks(
    rows: List[CanonicalMetric], source: Optional[str] = None
) -> Dict[str, Optional[int]]:
    """Latest search rank for each portal in scope."""
    by_source: Dict[str, list] = defaultdict(list)
    for r in rows:
        by_source[r.source].append(r)
    sources = [source] if source else SOURCE_VALUES
    return {s: get_latest_search_rank(by_source.get(s, [])) for s in sources}


def build_clinic_summary(
    session: Session,
    clinic_id: str,
    year: int,
    month: int,
    job_type: Optional[str] = None,
    source: Optional[str] = None,
) -> ClinicSummary:
    """Monthly KPI payload for one clinic. A clinic with no data gets zeros, not an error."""
    validate_filters(job_type, source)
    get_clinic(session, clinic_id)
    date_start, date_stop = month_bounds(year, month)

    rows = fetch_metric_rows(session, clinic_id, date_start, date_stop, job_type, source)
    # Manual entries only ever live on the clinic-wide rows
    manual_rows = (
        rows
        if job_type is None
        else fetch_metric_rows(session, clinic_id, date_start, date_stop, None, source)
    )
    scout_rows = fetch_scout_messages(session, clinic_id, date_start, date_stop, source)

    by_source = summarize_by_source(rows)
    metrics = combine_subtotals(by_source)
    scout = summarize_scout_messages(scout_rows)
    search_ranks = resolve_search_ranks(rows, source)

    dates = [r.date for r in rows] + [r.date for r in manual_rows] + [
        r.date for r in scout_rows
    ]

    summary = ClinicSummary(
        clinic_id=clinic_id,
        year=year,
        month=month,
        date_range_start=date_start,
        date_range_end=date_stop,
        job_type=job_type,
        source=source,
        metrics=metrics,
        by_source=by_source,
        manual=summarize_manual_metrics(manual_rows),
        scout=scout,
        search_ranks=search_ranks,
        alerts=compute_alerts(metrics, scout, search_ranks, source),
        latest_data_date=max(dates) if dates else None,
    )
    logger.info(
        f"Built summary for {year}-{month:02d} over {len(rows)} rows",
        extra={"clinic_id": clinic_id, "source": source, "job_type": job_type},
    )
    return summary


def list_daily_rows(
    session: Session,
    clinic_id: str,
    year: int,
    month: int,
    job_type: Optional[str] = None,
    source: Optional[str] = None,
) -> List[DailyMetricRow]:
    validate_filters(job_type, source)
    get_clinic(session, clinic_id)
    date_start, date_stop = month_bounds(year, month)
    rows = fetch_metric_rows(session, clinic_id, date_start, date_stop, job_type, source)
    return [decorate_row(r) for r in rows]


def build_admin_overview(
    session: Session, year: int, month: int, search: str = ""
) -> List[ClinicOverview]:
    """Every clinic's month at a glance, including hires dated in the month.

    Clinics are processed one after another.
    """
    query = select(Clinic)
    if search:
        query = query.where(col(Clinic.name).contains(search))
    clinics = session.exec(query.order_by(Clinic.name)).all()

    date_start, date_stop = month_bounds(year, month)
    overview: List[ClinicOverview] = []
    for clinic in clinics:
        summary = build_clinic_summary(session, clinic.id, year, month)
        hires = list_hires(session, clinic.id, from_date=date_start, to_date=date_stop)
        overview.append(
            ClinicOverview(
                id=clinic.id,
                name=clinic.name,
                slug=clinic.slug,
                metrics=summary.metrics,
                by_source=summary.by_source,
                manual=summary.manual,
                scout=summary.scout,
                search_ranks=summary.search_ranks,
                goal_rollup=summarize_goals(list_goals(session, clinic.id)),
                total_hire_count=len(hires),
                latest_data_date=summary.latest_data_date,
            )
        )
    return overview


def scan_view_rate_anomalies(session: Session, date: str) -> List[ViewRateAlert]:
    """Clinic-wide rows for one day whose view rate is above the abnormal threshold."""
    rows = session.exec(
        select(CanonicalMetric).where(
            CanonicalMetric.date == date,
            col(CanonicalMetric.job_type).is_(None),
        )
    ).all()

    by_clinic: Dict[str, list] = defaultdict(list)
    for r in rows:
        by_clinic[r.clinic_id].append(r)

    alerts: List[ViewRateAlert] = []
    for clinic_id, clinic_rows in by_clinic.items():
        for r in dedupe_by_source(clinic_rows):
            if is_view_rate_abnormal(r.display_count, r.view_count):
                alerts.append(
                    ViewRateAlert(
                        clinic_id=clinic_id,
                        date=r.date,
                        source=r.source,
                        display_count=r.display_count,
                        view_count=r.view_count,
                        view_rate=calculate_view_rate(r.view_count, r.display_count),
                    )
                )
    return alerts
