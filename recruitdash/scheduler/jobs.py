"""RecruitDash — Scheduler Jobs.

APScheduler daily sweep that flags implausible view rates in yesterday's data.
"""

from datetime import timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from recruitdash.config import settings
from recruitdash.core.dates import local_today
from recruitdash.database import get_session
from recruitdash.analyzer.pipeline import scan_view_rate_anomalies
from recruitdash.core.logging import get_logger

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler(timezone=settings.timezone)


async def daily_view_rate_check_job():
    """Log one warning per clinic-wide row from yesterday with an abnormal view rate."""
    target = (local_today() - timedelta(days=1)).isoformat()
    logger.info(f"View-rate check for {target} starting...")
    try:
        session = next(get_session())
        try:
            alerts = scan_view_rate_anomalies(session, target)
        finally:
            session.close()
        for alert in alerts:
            logger.warning(
                f"Abnormal view rate {alert.view_rate:.1%} "
                f"({alert.view_count}/{alert.display_count})",
                extra={
                    "clinic_id": alert.clinic_id,
                    "date": alert.date,
                    "source": alert.source,
                },
            )
        logger.info(f"View-rate check complete. {len(alerts)} abnormal row(s)")
    except Exception as e:
        logger.error(f"View-rate check failed: {e}")


def start_scheduler():
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return

    scheduler.add_job(
        daily_view_rate_check_job,
        "cron",
        hour=settings.alert_check_hour,
        minute=0,
        id="daily_view_rate_check",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started. View-rate check at {settings.alert_check_hour}:00 {settings.timezone}"
    )


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
