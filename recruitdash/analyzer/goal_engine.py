"""RecruitDash — Goal Engine.

Pace tracking for recruitment goals plus the goal/hire store operations.
`calculate_progress` is pure: the caller passes "now".
"""

import math
from datetime import date, datetime, time, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from recruitdash.config import settings
from recruitdash.core.dates import add_months, is_iso_date, local_now
from recruitdash.core.errors import NotFoundError, StorageError, ValidationError
from recruitdash.core.metric_registry import (
    CHANNEL_VALUES,
    HIRE_SOURCE_VALUES,
    JOB_TYPE_VALUES,
)
from recruitdash.models.analysis_models import GoalProgress, GoalRollup
from recruitdash.models.goal_models import Hire, RecruitmentGoal
from recruitdash.core.logging import get_logger

logger = get_logger("analyzer.goal")

SECONDS_PER_DAY = 86400


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def _as_local_naive(now: Optional[datetime]) -> datetime:
    """Express `now` as a naive datetime on the clinics' local calendar."""
    if now is None:
        now = local_now()
    if now.tzinfo is not None:
        now = now.astimezone(ZoneInfo(settings.timezone)).replace(tzinfo=None)
    return now


def calculate_progress(
    goal: RecruitmentGoal, now: Optional[datetime] = None
) -> GoalProgress:
    """Progress vs. pace for one goal.

    The contract ends `contract_duration_months` calendar months after it
    starts. The goal is on track when the share of the target already hired
    is at least the share of the contract window already elapsed.
    """
    now = _as_local_naive(now)
    start_date = _as_date(goal.contract_start_date)
    end_date = add_months(start_date, goal.contract_duration_months)
    start = datetime.combine(start_date, time.min)
    end = datetime.combine(end_date, time.min)

    total_days = (end - start).total_seconds() / SECONDS_PER_DAY
    elapsed_days = min(
        max((now - start).total_seconds() / SECONDS_PER_DAY, 0.0), max(total_days, 0.0)
    )
    remaining_days = max(0, math.ceil((end - now).total_seconds() / SECONDS_PER_DAY))

    progress_rate = (
        goal.current_count / goal.target_count if goal.target_count > 0 else 0.0
    )
    expected_completion_rate = elapsed_days / total_days if total_days > 0 else 0.0

    return GoalProgress(
        goal_id=goal.id,
        clinic_id=goal.clinic_id,
        job_type=goal.job_type,
        target_count=goal.target_count,
        current_count=goal.current_count,
        contract_start_date=start_date,
        contract_end_date=end_date,
        contract_duration_months=goal.contract_duration_months,
        total_days=total_days,
        elapsed_days=elapsed_days,
        remaining_days=remaining_days,
        progress_rate=progress_rate,
        expected_completion_rate=expected_completion_rate,
        remaining_count=max(0, goal.target_count - goal.current_count),
        is_on_track=progress_rate >= expected_completion_rate,
    )


def summarize_goals(goals: List[RecruitmentGoal]) -> Optional[GoalRollup]:
    """All goals of a clinic added together; None when the clinic has no goals."""
    if not goals:
        return None
    total_target = sum(g.target_count for g in goals)
    total_current = sum(g.current_count for g in goals)
    return GoalRollup(
        total_target_count=total_target,
        total_current_count=total_current,
        progress_rate=round(total_current / total_target * 100) if total_target > 0 else 0,
        is_on_track=(total_current / total_target >= 0.5) if total_target > 0 else True,
    )


# ─────────────────────────────────────────────
# GOALS — store operations
# ─────────────────────────────────────────────


def list_goals(session: Session, clinic_id: str) -> List[RecruitmentGoal]:
    return list(
        session.exec(
            select(RecruitmentGoal)
            .where(RecruitmentGoal.clinic_id == clinic_id)
            .order_by(RecruitmentGoal.job_type)
        ).all()
    )


def get_goals_with_progress(
    session: Session, clinic_id: str, now: Optional[datetime] = None
) -> List[GoalProgress]:
    return [calculate_progress(g, now) for g in list_goals(session, clinic_id)]


def upsert_goal(
    session: Session,
    clinic_id: str,
    job_type: str,
    target_count: int,
    contract_start_date: str,
    contract_duration_months: Optional[int] = None,
) -> RecruitmentGoal:
    """Create or update the goal for (clinic, job type); current_count is kept."""
    if job_type not in JOB_TYPE_VALUES:
        raise ValidationError(f"Invalid job type: {job_type}")
    if not isinstance(target_count, int) or isinstance(target_count, bool) or target_count < 0:
        raise ValidationError("targetCount must be a non-negative integer")
    if not is_iso_date(contract_start_date):
        raise ValidationError(
            f"Invalid contract start date: {contract_start_date}. Must be YYYY-MM-DD"
        )
    duration = contract_duration_months
    if duration is None:
        duration = settings.default_contract_duration_months
    if not isinstance(duration, int) or duration <= 0:
        raise ValidationError("contractDurationMonths must be a positive integer")

    goal = session.exec(
        select(RecruitmentGoal).where(
            RecruitmentGoal.clinic_id == clinic_id,
            RecruitmentGoal.job_type == job_type,
        )
    ).first()
    if goal is None:
        goal = RecruitmentGoal(
            clinic_id=clinic_id,
            job_type=job_type,
            contract_start_date=date.fromisoformat(contract_start_date),
        )
    goal.target_count = target_count
    goal.contract_start_date = date.fromisoformat(contract_start_date)
    goal.contract_duration_months = duration
    goal.updated_at = datetime.now(timezone.utc)

    try:
        session.add(goal)
        session.commit()
        session.refresh(goal)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Goal upsert failed: {e}", extra={"clinic_id": clinic_id})
        raise StorageError("Failed to save goal") from e
    return goal


def delete_goal(session: Session, goal_id: str) -> None:
    goal = session.get(RecruitmentGoal, goal_id)
    if goal is None:
        raise NotFoundError("Goal not found")
    session.delete(goal)
    session.commit()


# ─────────────────────────────────────────────
# HIRES — append-only log
# ─────────────────────────────────────────────


def create_hire(
    session: Session,
    clinic_id: str,
    hire_date: str,
    job_type: str,
    source: str,
    channel: Optional[str] = None,
    name: Optional[str] = None,
    memo: Optional[str] = None,
) -> Hire:
    if not is_iso_date(hire_date):
        raise ValidationError(f"Invalid hire date: {hire_date}. Must be YYYY-MM-DD")
    if job_type not in JOB_TYPE_VALUES:
        raise ValidationError(f"Invalid job type: {job_type}")
    if source not in HIRE_SOURCE_VALUES:
        raise ValidationError(
            f"Invalid source: {source}. Must be one of {', '.join(HIRE_SOURCE_VALUES)}"
        )
    if channel and channel not in CHANNEL_VALUES:
        raise ValidationError(
            f"Invalid channel: {channel}. Must be one of {', '.join(CHANNEL_VALUES)}"
        )

    hire = Hire(
        clinic_id=clinic_id,
        hire_date=hire_date,
        job_type=job_type,
        source=source,
        channel=channel or None,
        name=name or None,
        memo=memo or None,
    )
    try:
        session.add(hire)
        session.commit()
        session.refresh(hire)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Hire insert failed: {e}", extra={"clinic_id": clinic_id})
        raise StorageError("Failed to save hire") from e
    return hire


def list_hires(
    session: Session,
    clinic_id: str,
    job_type: Optional[str] = None,
    source: Optional[str] = None,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
) -> List[Hire]:
    """Hiring history, newest first."""
    query = select(Hire).where(Hire.clinic_id == clinic_id)
    if job_type:
        query = query.where(Hire.job_type == job_type)
    if source:
        query = query.where(Hire.source == source)
    if from_date:
        query = query.where(Hire.hire_date >= from_date)
    if to_date:
        query = query.where(Hire.hire_date <= to_date)
    return list(session.exec(query.order_by(col(Hire.hire_date).desc())).all())


def delete_hire(session: Session, hire_id: str) -> None:
    hire = session.get(Hire, hire_id)
    if hire is None:
        raise NotFoundError("Hire not found")
    session.delete(hire)
    session.commit()
