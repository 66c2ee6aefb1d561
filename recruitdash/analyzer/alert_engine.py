"""RecruitDash — KPI Alert Engine.

Places monthly KPI values into danger / warning / success bands using the
thresholds in the metric registry. Rates are evaluated as percentages.
"""

from typing import Dict, List, Optional

from recruitdash.core.metric_registry import KPIDefinition, get_kpi
from recruitdash.models.analysis_models import (
    AlertLevel,
    KPIAlert,
    MetricsSummary,
    ScoutSummary,
)
from recruitdash.core.logging import get_logger

logger = get_logger("analyzer.alert")


def get_alert_level(value: float, definition: KPIDefinition) -> AlertLevel:
    """Band for a value. Danger bounds are checked first, then success, then warning."""
    t = definition.threshold

    # Too high is also danger (e.g. view rate above 30% looks like fraud)
    if t.danger_min is not None and value >= t.danger_min:
        return AlertLevel.DANGER
    if t.danger_max is not None and value <= t.danger_max:
        return AlertLevel.DANGER

    if definition.higher_is_better:
        if value >= t.success_min:
            return AlertLevel.SUCCESS
    elif value <= t.success_min or value < t.warning_min:
        return AlertLevel.SUCCESS

    if t.warning_min <= value <= t.warning_max:
        return AlertLevel.WARNING
    return AlertLevel.NEUTRAL


def _message(level: AlertLevel, definition: KPIDefinition) -> str:
    if level == AlertLevel.DANGER:
        return definition.danger_message
    if level == AlertLevel.SUCCESS:
        return definition.success_message
    return ""


def build_alert(kpi_id: str, value: float, source: str = "integrated") -> KPIAlert:
    definition = get_kpi(kpi_id)
    if definition is None:
        raise KeyError(f"Unknown KPI: {kpi_id}")
    level = get_alert_level(value, definition)
    return KPIAlert(
        kpi_id=kpi_id,
        kpi_name=definition.name,
        value=round(value, 4),
        unit=definition.unit,
        level=level,
        message=_message(level, definition),
        source=source,
    )


def compute_alerts(
    metrics: MetricsSummary,
    scout: ScoutSummary,
    search_ranks: Dict[str, Optional[int]],
    source: Optional[str] = None,
) -> List[KPIAlert]:
    """Alerts for a clinic's month. KPIs without data behind them are skipped."""
    scope = source or "integrated"
    alerts: List[KPIAlert] = []

    if metrics.total_display_count > 0:
        alerts.append(build_alert("view_rate", metrics.view_rate * 100, scope))
        alerts.append(build_alert("redirect_rate", metrics.redirect_rate * 100, scope))
    if metrics.total_view_count > 0:
        alerts.append(
            build_alert("application_rate", metrics.application_rate * 100, scope)
        )
    if scout.total_sent_count > 0:
        alerts.append(build_alert("scout_reply_rate", scout.reply_rate * 100, scope))
    for rank_source, rank in search_ranks.items():
        if rank is not None:
            alerts.append(build_alert("search_rank", rank, rank_source))
    alerts.append(
        build_alert(
            "monthly_total_applications", metrics.total_application_count, scope
        )
    )

    danger = sum(1 for a in alerts if a.level == AlertLevel.DANGER)
    if danger:
        logger.info(f"{danger} KPI(s) in the danger band")
    return alerts
