"""RecruitDash — Clinic API Routes."""

import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from recruitdash.analyzer.pipeline import build_admin_overview
from recruitdash.core.dates import resolve_month
from recruitdash.core.errors import RecruitDashError, as_http_exception
from recruitdash.database import get_session
from recruitdash.models.normalized_models import Clinic
from recruitdash.core.logging import get_logger

logger = get_logger("api.clinics")

router = APIRouter(tags=["Clinics"])

SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*$")


class CreateClinicRequest(BaseModel):
    """Request body for POST /clinics."""

    name: str
    slug: str

    model_config = {
        "json_schema_extra": {
            "examples": [{"name": "さくら歯科クリニック", "slug": "sakura-dental"}]
        }
    }


@router.post("/clinics", status_code=201)
async def create_clinic(
    request: CreateClinicRequest, session: Session = Depends(get_session)
):
    name = request.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name is required")
    if not SLUG_PATTERN.match(request.slug):
        raise HTTPException(
            status_code=400,
            detail="slug must be lowercase letters, digits and hyphens",
        )

    clinic = Clinic(name=name, slug=request.slug)
    try:
        session.add(clinic)
        session.commit()
        session.refresh(clinic)
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=400, detail=f"Slug already exists: {request.slug}")

    logger.info(f"Created clinic {clinic.slug}", extra={"clinic_id": clinic.id})
    return clinic


@router.get("/clinics")
async def list_clinics(session: Session = Depends(get_session)):
    clinics = session.exec(select(Clinic).order_by(Clinic.name)).all()
    return {"status": "success", "count": len(clinics), "clinics": clinics}


@router.get("/admin/clinics")
async def admin_clinic_overview(
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to the current month"),
    search: str = Query("", description="Substring match on clinic name"),
    session: Session = Depends(get_session),
):
    """Month overview for every clinic: traffic, manual totals, ranks, goals."""
    try:
        year, mon = resolve_month(month)
        clinics = build_admin_overview(session, year, mon, search.strip())
    except RecruitDashError as e:
        raise as_http_exception(e)

    return {
        "status": "success",
        "month": f"{year:04d}-{mon:02d}",
        "count": len(clinics),
        "clinics": clinics,
    }
