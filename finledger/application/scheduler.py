"""
Background scheduler - runs periodic jobs inside the FastAPI process.

Jobs:
  - Goal expiry sweep (daily, EXPIRY_SWEEP_HOUR UTC)
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from finledger.config import get_settings

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True, timezone="UTC")


def run_expiry_sweep() -> int:
    """One sweep in its own session. Errors are logged, never raised into the scheduler."""
    from finledger.infrastructure.db.session import session_scope
    from finledger.application.goals import SweepExpiredGoalsUseCase

    try:
        with session_scope() as db:
            return SweepExpiredGoalsUseCase(db).execute()
    except Exception:
        logger.exception("Goal expiry sweep job failed")
        return 0


def start_scheduler():
    """Start the background scheduler with all periodic jobs."""
    hour = get_settings().EXPIRY_SWEEP_HOUR

    scheduler.add_job(
        run_expiry_sweep,
        CronTrigger(hour=hour, minute=0, timezone="UTC"),
        id="goal_expiry_sweep",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Scheduler started: goal_expiry_sweep (%02d:00 UTC)", hour)


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
