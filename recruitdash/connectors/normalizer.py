"""RecruitDash — Raw → Canonical Metrics Normalizer.

Write path: collapses a collector batch by date and upserts each day into the
metrics table keyed on (clinic_id, date, source, job_type). Portal counters are
absolute for the day, so an existing row's counters are replaced, never added to.
A failed upsert is logged and skipped; the rest of the batch still runs.

Read path: the store cannot be trusted to hold one row per key (NULL job_type
escapes the unique constraint), so reads are deduped here, newest write wins.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from recruitdash.analyzer.kpi_engine import calculate_view_rate, is_view_rate_abnormal
from recruitdash.connectors.job_type_classifier import (
    JobTypeClassifier,
    default_classifier,
)
from recruitdash.core.metric_registry import AGGREGATE_JOB_TYPE_KEY
from recruitdash.models.analysis_models import IngestReport, UpsertTally, ViewRateAlert
from recruitdash.models.normalized_models import CanonicalMetric, ScoutMessage
from recruitdash.models.raw_models import (
    RawAccessLog,
    RawScoutDay,
    RawSearchRank,
    ScrapeResult,
)
from recruitdash.core.logging import get_logger

logger = get_logger("normalizer")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce(records: Optional[Iterable[Any]], model, tally: UpsertTally) -> list:
    """Validate raw dicts into models; invalid records count as failed attempts."""
    valid = []
    for record in records or []:
        if isinstance(record, model):
            valid.append(record)
            continue
        try:
            valid.append(model.model_validate(record))
        except PydanticValidationError as e:
            tally.attempted += 1
            tally.errors.append(f"Invalid record {record!r}: {e.errors()[0]['msg']}")
    return valid


def collapse_by_date(records: Sequence[Any]) -> list:
    """Keep one record per date; a later record for the same date replaces an earlier one."""
    by_date: Dict[str, Any] = {}
    for record in records:
        by_date[record.date] = record
    return list(by_date.values())


# ─────────────────────────────────────────────
# WRITE PATH
# ─────────────────────────────────────────────


def find_metric(
    session: Session,
    clinic_id: str,
    date: str,
    source: str,
    job_type: Optional[str],
) -> Optional[CanonicalMetric]:
    """Look up the stored row for a natural key (NULL-safe on job_type)."""
    query = select(CanonicalMetric).where(
        CanonicalMetric.clinic_id == clinic_id,
        CanonicalMetric.date == date,
        CanonicalMetric.source == source,
    )
    if job_type is None:
        query = query.where(col(CanonicalMetric.job_type).is_(None))
    else:
        query = query.where(CanonicalMetric.job_type == job_type)
    return session.exec(
        query.order_by(col(CanonicalMetric.updated_at).desc())
    ).first()


def _upsert_metric(
    session: Session,
    clinic_id: str,
    source: str,
    job_type: Optional[str],
    log: RawAccessLog,
) -> CanonicalMetric:
    existing = find_metric(session, clinic_id, log.date, source, job_type)
    if existing is None:
        existing = CanonicalMetric(
            clinic_id=clinic_id, date=log.date, source=source, job_type=job_type
        )
    existing.display_count = log.display_count
    existing.view_count = log.view_count
    existing.redirect_count = log.redirect_count
    existing.application_count = log.application_count
    if log.search_rank is not None:
        existing.search_rank = log.search_rank
    existing.updated_at = _utcnow()
    session.add(existing)
    return existing


def upsert_access_logs(
    session: Session,
    clinic_id: str,
    source: str,
    access_logs: Optional[Iterable[Any]],
    job_type: Optional[str] = None,
) -> UpsertTally:
    """Full-replace upsert of daily traffic counters for one clinic/source/job type.

    Manual fields (scout_reply_count, interview_count) on existing rows are left
    as they are. Returns how many rows were saved out of those attempted.
    """
    tally = UpsertTally()
    logs = collapse_by_date(_coerce(access_logs, RawAccessLog, tally))
    tally.attempted += len(logs)

    for log in logs:
        try:
            _upsert_metric(session, clinic_id, source, job_type, log)
            session.commit()
            tally.saved += 1
        except SQLAlchemyError as e:
            session.rollback()
            tally.errors.append(f"Date {log.date}: {e}")
            logger.error(
                f"Metric upsert failed for {clinic_id} {source}/{job_type or AGGREGATE_JOB_TYPE_KEY} on {log.date}: {e}",
                extra={
                    "clinic_id": clinic_id,
                    "date": log.date,
                    "source": source,
                    "job_type": job_type,
                },
            )

    if tally.attempted:
        logger.info(
            f"Upserted {tally.saved}/{tally.attempted} metric rows "
            f"({source}, {job_type or AGGREGATE_JOB_TYPE_KEY})",
            extra={"clinic_id": clinic_id, "source": source},
        )
    return tally


def upsert_scout_messages(
    session: Session,
    clinic_id: str,
    source: str,
    scout_days: Optional[Iterable[Any]],
) -> UpsertTally:
    """Full-replace upsert of daily scout counts keyed on (clinic_id, date, source)."""
    tally = UpsertTally()
    days = collapse_by_date(_coerce(scout_days, RawScoutDay, tally))
    tally.attempted += len(days)

    for day in days:
        try:
            existing = session.exec(
                select(ScoutMessage).where(
                    ScoutMessage.clinic_id == clinic_id,
                    ScoutMessage.date == day.date,
                    ScoutMessage.source == source,
                )
            ).first()
            if existing is None:
                existing = ScoutMessage(clinic_id=clinic_id, date=day.date, source=source)
            existing.sent_count = day.sent_count
            existing.reply_count = day.reply_count
            existing.updated_at = _utcnow()
            session.add(existing)
            session.commit()
            tally.saved += 1
        except SQLAlchemyError as e:
            session.rollback()
            tally.errors.append(f"Date {day.date}: {e}")
            logger.error(
                f"Scout message upsert failed for {clinic_id} {source} on {day.date}: {e}",
                extra={"clinic_id": clinic_id, "date": day.date, "source": source},
            )

    return tally


def upsert_search_ranks(
    session: Session,
    clinic_id: str,
    source: str,
    ranks: Optional[Iterable[Any]],
    job_type: Optional[str] = None,
) -> UpsertTally:
    """Write only search_rank onto each day's row.

    Traffic counters and manual fields on an existing row are kept; a new row
    starts with zero counters.
    """
    tally = UpsertTally()
    entries = collapse_by_date(_coerce(ranks, RawSearchRank, tally))
    tally.attempted += len(entries)

    for entry in entries:
        try:
            row = find_metric(session, clinic_id, entry.date, source, job_type)
            if row is None:
                row = CanonicalMetric(
                    clinic_id=clinic_id, date=entry.date, source=source, job_type=job_type
                )
            row.search_rank = entry.search_rank
            row.updated_at = _utcnow()
            session.add(row)
            session.commit()
            tally.saved += 1
        except SQLAlchemyError as e:
            session.rollback()
            tally.errors.append(f"Date {entry.date}: {e}")
            logger.error(
                f"Search rank upsert failed for {clinic_id} {source} on {entry.date}: {e}",
                extra={"clinic_id": clinic_id, "date": entry.date, "source": source},
            )

    return tally


def _merge_tally(into: UpsertTally, other: UpsertTally) -> None:
    into.attempted += other.attempted
    into.saved += other.saved
    into.errors.extend(other.errors)


def ingest_scrape_result(
    session: Session,
    result: ScrapeResult,
    classifier: JobTypeClassifier = default_classifier,
) -> IngestReport:
    """Normalize one collector run: clinic totals, per-job-type logs, scout days and ranks.

    Job-type groups without a tag are resolved from their posting title; groups
    that still have no job type are skipped. Groups resolving to the same job
    type are merged, later days replacing earlier ones.
    """
    source = result.source.value
    report = IngestReport(clinic_id=result.clinic_id, source=source)

    aggregate_logs = collapse_by_date(result.access_logs or [])
    _merge_tally(
        report.metrics,
        upsert_access_logs(session, result.clinic_id, source, aggregate_logs),
    )

    for log in aggregate_logs:
        if is_view_rate_abnormal(log.display_count, log.view_count):
            report.view_rate_alerts.append(
                ViewRateAlert(
                    clinic_id=result.clinic_id,
                    date=log.date,
                    source=source,
                    display_count=log.display_count,
                    view_count=log.view_count,
                    view_rate=calculate_view_rate(log.view_count, log.display_count),
                )
            )

    by_job_type: Dict[str, List[RawAccessLog]] = defaultdict(list)
    for group in result.job_type_access_logs or []:
        job_type = group.job_type or classifier.classify(group.job_title)
        if job_type is None:
            logger.warning(
                f"Skipping {len(group.access_logs)} logs with unknown job type: {group.job_title!r}",
                extra={"clinic_id": result.clinic_id, "source": source},
            )
            continue
        by_job_type[job_type.value].extend(group.access_logs)

    for job_type_value, logs in by_job_type.items():
        _merge_tally(
            report.metrics,
            upsert_access_logs(
                session, result.clinic_id, source, logs, job_type=job_type_value
            ),
        )

    _merge_tally(
        report.scout_messages,
        upsert_scout_messages(session, result.clinic_id, source, result.scout_days),
    )

    # Ranks only touch search_rank
    _merge_tally(
        report.search_ranks,
        upsert_search_ranks(session, result.clinic_id, source, result.search_ranks),
    )

    logger.info(
        f"Ingested {report.metrics.saved}/{report.metrics.attempted} metric rows, "
        f"{report.scout_messages.saved}/{report.scout_messages.attempted} scout rows, "
        f"{len(report.view_rate_alerts)} view-rate alerts",
        extra={"clinic_id": result.clinic_id, "source": source},
    )
    return report


# ─────────────────────────────────────────────
# READ PATH
# ─────────────────────────────────────────────


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Return an aware datetime, or None when the value is not a usable timestamp."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    # SQLite hands back naive datetimes; they were written as UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def row_timestamp(row: Any) -> Optional[datetime]:
    """Write time of a row: updated_at when it parses, otherwise created_at."""
    return _parse_timestamp(getattr(row, "updated_at", None)) or _parse_timestamp(
        getattr(row, "created_at", None)
    )


def dedupe_key(row: Any) -> str:
    job_type = row.job_type if row.job_type is not None else AGGREGATE_JOB_TYPE_KEY
    return f"{row.date}:{job_type}"


def _sort_key(row: Any) -> tuple:
    return (row.date, row.job_type or "")


def dedupe_metric_rows(rows: Optional[Iterable[Any]]) -> list:
    """One row per (date, job_type), newest write wins, sorted by date then job type.

    Rows whose timestamps don't parse never displace a row already kept, so
    when neither side has a usable timestamp the first-seen row stays.
    Expects rows from a single clinic and source.
    """
    kept: Dict[str, Any] = {}
    for row in rows or []:
        key = dedupe_key(row)
        current = kept.get(key)
        if current is None:
            kept[key] = row
            continue
        candidate_ts = row_timestamp(row)
        if candidate_ts is None:
            continue
        current_ts = row_timestamp(current)
        if current_ts is None or candidate_ts > current_ts:
            kept[key] = row
    return sorted(kept.values(), key=_sort_key)


def dedupe_by_source(rows: Optional[Iterable[Any]]) -> list:
    """Dedupe each portal's rows separately, then merge in date/job type/source order."""
    grouped: Dict[str, list] = defaultdict(list)
    for row in rows or []:
        grouped[row.source].append(row)

    merged = []
    for source_rows in grouped.values():
        merged.extend(dedupe_metric_rows(source_rows))
    return sorted(merged, key=lambda r: (*_sort_key(r), r.source))
