"""RecruitDash — Goal & Hire API Routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlmodel import Session

from recruitdash.analyzer.goal_engine import (
    calculate_progress,
    create_hire,
    delete_goal,
    delete_hire,
    get_goals_with_progress,
    list_hires,
    upsert_goal,
)
from recruitdash.analyzer.pipeline import get_clinic
from recruitdash.core.errors import RecruitDashError, as_http_exception
from recruitdash.database import get_session
from recruitdash.core.logging import get_logger

logger = get_logger("api.goals")

router = APIRouter(tags=["Goals"])


# ── Request Models ──


class UpsertGoalRequest(BaseModel):
    """Request body for POST /clinics/{clinic_id}/goals."""

    job_type: str
    target_count: int
    contract_start_date: str
    """Contract start in YYYY-MM-DD format."""
    contract_duration_months: Optional[int] = None
    """Defaults to 12 months."""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"job_type": "dh", "target_count": 3, "contract_start_date": "2025-04-01"}
            ]
        }
    }


class CreateHireRequest(BaseModel):
    """Request body for POST /clinics/{clinic_id}/hires."""

    hire_date: str
    job_type: str
    source: str
    channel: Optional[str] = None
    name: Optional[str] = None
    memo: Optional[str] = None


# ── Goals ──


@router.get("/clinics/{clinic_id}/goals")
async def get_goals(clinic_id: str, session: Session = Depends(get_session)):
    """Goals for a clinic with pace against the contract window."""
    try:
        get_clinic(session, clinic_id)
    except RecruitDashError as e:
        raise as_http_exception(e)

    goals = get_goals_with_progress(session, clinic_id)
    return {"status": "success", "count": len(goals), "goals": goals}


@router.post("/clinics/{clinic_id}/goals")
async def save_goal(
    clinic_id: str,
    request: UpsertGoalRequest,
    session: Session = Depends(get_session),
):
    try:
        get_clinic(session, clinic_id)
        goal = upsert_goal(
            session,
            clinic_id,
            request.job_type,
            request.target_count,
            request.contract_start_date,
            request.contract_duration_months,
        )
    except RecruitDashError as e:
        raise as_http_exception(e)

    logger.info(
        f"Saved goal target={goal.target_count}",
        extra={"clinic_id": clinic_id, "job_type": goal.job_type},
    )
    return {"status": "success", "goal": calculate_progress(goal)}


@router.delete("/goals/{goal_id}")
async def remove_goal(goal_id: str, session: Session = Depends(get_session)):
    try:
        delete_goal(session, goal_id)
    except RecruitDashError as e:
        raise as_http_exception(e)
    return {"success": True}


# ── Hires ──


@router.get("/clinics/{clinic_id}/hires")
async def get_hires(
    clinic_id: str,
    job_type: Optional[str] = Query(None),
    source: Optional[str] = Query(None),
    from_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    to_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    session: Session = Depends(get_session),
):
    """Hiring history, newest first."""
    try:
        get_clinic(session, clinic_id)
    except RecruitDashError as e:
        raise as_http_exception(e)

    hires = list_hires(session, clinic_id, job_type, source, from_date, to_date)
    return {"status": "success", "count": len(hires), "hires": hires}


@router.post("/clinics/{clinic_id}/hires", status_code=201)
async def add_hire(
    clinic_id: str,
    request: CreateHireRequest,
    session: Session = Depends(get_session),
):
    try:
        get_clinic(session, clinic_id)
        hire = create_hire(
            session,
            clinic_id,
            request.hire_date,
            request.job_type,
            request.source,
            request.channel,
            request.name,
            request.memo,
        )
    except RecruitDashError as e:
        raise as_http_exception(e)
    return {"status": "success", "hire": hire}


@router.delete("/hires/{hire_id}")
async def remove_hire(hire_id: str, session: Session = Depends(get_session)):
    try:
        delete_hire(session, hire_id)
    except RecruitDashError as e:
        raise as_http_exception(e)
    return {"success": True}
