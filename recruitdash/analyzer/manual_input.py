"""RecruitDash — Manual Input Reconciler.

Operators enter daily scout-reply and interview counts per portal. The whole
request is validated before anything is written. Entries land on the
clinic-wide (job_type NULL) row for the day and only touch the two manual
fields, so scraped traffic counters on that row survive.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from recruitdash.connectors.normalizer import find_metric
from recruitdash.core.dates import is_iso_date, local_today
from recruitdash.core.errors import NotFoundError, StorageError, ValidationError
from recruitdash.core.metric_registry import SOURCE_VALUES
from recruitdash.models.analysis_models import ManualMetricsTotals
from recruitdash.models.normalized_models import CanonicalMetric, Clinic
from recruitdash.core.logging import get_logger

logger = get_logger("analyzer.manual_input")

MANUAL_FIELDS = ("scout_reply_count", "interview_count")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def validate_entry(entry: Any, today: date) -> Dict[str, Any]:
    """Check one entry, stopping at the first rule it breaks.

    Order: date format, future date, missing count, negative count,
    non-integer count.
    """
    if not isinstance(entry, dict):
        raise ValidationError("Each entry must be an object")

    entry_date = entry.get("date")
    if not is_iso_date(entry_date):
        raise ValidationError(f"Invalid date format: {entry_date}. Must be YYYY-MM-DD")

    if date.fromisoformat(entry_date) > today:
        raise ValidationError(f"Future dates are not allowed: {entry_date}")

    for field in MANUAL_FIELDS:
        if entry.get(field) is None:
            raise ValidationError(f"{field} is required")

    if any(_is_number(entry[f]) and entry[f] < 0 for f in MANUAL_FIELDS):
        raise ValidationError("Negative values are not allowed")

    if not all(_is_integer(entry[f]) for f in MANUAL_FIELDS):
        raise ValidationError("Non-integer values are not allowed")

    return {
        "date": entry_date,
        "scout_reply_count": int(entry["scout_reply_count"]),
        "interview_count": int(entry["interview_count"]),
    }


def validate_manual_input(
    payload: Any, today: Optional[date] = None
) -> tuple[str, str, List[Dict[str, Any]]]:
    """Validate a manual-input request body; returns (clinic_id, source, entries)."""
    today = today or local_today()

    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    clinic_id = payload.get("clinic_id")
    if not clinic_id:
        raise ValidationError("clinic_id is required")
    if not isinstance(clinic_id, str):
        raise ValidationError("clinic_id must be a string")

    source = payload.get("source")
    if not source:
        raise ValidationError("source is required")
    if source not in SOURCE_VALUES:
        raise ValidationError(
            f"Invalid source: {source}. Must be one of {', '.join(SOURCE_VALUES)}"
        )

    entries = payload.get("entries")
    if not isinstance(entries, list):
        raise ValidationError("entries must be an array")

    return clinic_id, source, [validate_entry(e, today) for e in entries]


def apply_manual_input(
    session: Session, payload: Any, today: Optional[date] = None
) -> int:
    """Validate, then write every entry in one transaction.

    Returns the number of rows written (one per distinct date).
    """
    clinic_id, source, entries = validate_manual_input(payload, today)

    if session.get(Clinic, clinic_id) is None:
        raise NotFoundError("Clinic not found")

    by_date: Dict[str, Dict[str, Any]] = {}
    for entry in entries:
        by_date[entry["date"]] = entry

    now = datetime.now(timezone.utc)
    try:
        for entry in by_date.values():
            row = find_metric(session, clinic_id, entry["date"], source, None)
            if row is None:
                # Traffic counters default to 0 on a fresh row
                row = CanonicalMetric(
                    clinic_id=clinic_id,
                    date=entry["date"],
                    source=source,
                    job_type=None,
                )
            row.scout_reply_count = entry["scout_reply_count"]
            row.interview_count = entry["interview_count"]
            row.updated_at = now
            session.add(row)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(
            f"Failed to save {len(by_date)} manual entries: {e}",
            extra={"clinic_id": clinic_id, "source": source},
        )
        raise StorageError("Failed to save metrics data") from e

    logger.info(
        f"Saved {len(by_date)} manual entries",
        extra={"clinic_id": clinic_id, "source": source},
    )
    return len(by_date)


def summarize_manual_metrics(rows: Iterable[Any]) -> ManualMetricsTotals:
    """Monthly manual totals.

    When no row has a value for either field the period counts as missing and
    both totals are None. Otherwise nulls count as 0.
    """
    rows = list(rows)
    missing = not any(
        r.scout_reply_count is not None or r.interview_count is not None for r in rows
    )
    if missing:
        return ManualMetricsTotals(missing_manual_metrics=True)

    return ManualMetricsTotals(
        total_scout_reply_count=sum(r.scout_reply_count or 0 for r in rows),
        total_interview_count=sum(r.interview_count or 0 for r in rows),
        missing_manual_metrics=False,
    )
