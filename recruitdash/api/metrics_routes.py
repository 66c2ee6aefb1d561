"""RecruitDash — Metrics API Routes.

Collector ingest, operator manual input, and the per-clinic monthly views.
"""

import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlmodel import Session

from recruitdash.analyzer.manual_input import apply_manual_input
from recruitdash.analyzer.pipeline import (
    build_clinic_summary,
    get_clinic,
    list_daily_rows,
)
from recruitdash.connectors.normalizer import ingest_scrape_result
from recruitdash.core.dates import resolve_month
from recruitdash.core.errors import RecruitDashError, as_http_exception
from recruitdash.database import get_session
from recruitdash.models.analysis_models import ClinicSummary, IngestReport
from recruitdash.models.raw_models import ScrapeResult
from recruitdash.core.logging import get_logger

logger = get_logger("api.metrics")

router = APIRouter(tags=["Metrics"])


# ── Write side ──


@router.post("/metrics/manual-input")
async def manual_input(request: Request, session: Session = Depends(get_session)):
    """Save operator-entered scout reply and interview counts.

    The body is validated by hand; each rejection is a 400 with its own message.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")

    try:
        count = apply_manual_input(session, payload)
    except RecruitDashError as e:
        logger.warning(
            f"Manual input rejected: {e.message}",
            extra={"endpoint": "/metrics/manual-input", "status_code": e.status_code},
        )
        raise as_http_exception(e)

    return {"success": True, "count": count}


@router.post("/metrics/ingest", response_model=IngestReport)
async def ingest(result: ScrapeResult, session: Session = Depends(get_session)):
    """Normalize one collector run into canonical rows."""
    try:
        get_clinic(session, result.clinic_id)
    except RecruitDashError as e:
        raise as_http_exception(e)

    report = ingest_scrape_result(session, result)
    logger.info(
        f"Ingest saved {report.metrics.saved}/{report.metrics.attempted} metrics rows",
        extra={"clinic_id": result.clinic_id, "source": result.source.value},
    )
    return report


# ── Read side ──


@router.get("/clinics/{clinic_id}/summary", response_model=ClinicSummary)
async def clinic_summary(
    clinic_id: str,
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to the current month"),
    job_type: Optional[str] = Query(None),
    source: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    """Monthly totals, rates, manual totals, search ranks and KPI alerts."""
    try:
        year, mon = resolve_month(month)
        return build_clinic_summary(session, clinic_id, year, mon, job_type, source)
    except RecruitDashError as e:
        raise as_http_exception(e)


@router.get("/clinics/{clinic_id}/metrics")
async def clinic_daily_metrics(
    clinic_id: str,
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to the current month"),
    job_type: Optional[str] = Query(None),
    source: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    """Deduped daily rows for the month, sorted by date then job type."""
    try:
        year, mon = resolve_month(month)
        rows = list_daily_rows(session, clinic_id, year, mon, job_type, source)
    except RecruitDashError as e:
        raise as_http_exception(e)

    return {
        "status": "success",
        "clinic_id": clinic_id,
        "month": f"{year:04d}-{mon:02d}",
        "count": len(rows),
        "rows": rows,
    }
