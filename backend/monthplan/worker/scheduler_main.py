"""Dedicated APScheduler worker process."""
from __future__ import annotations

import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from monthplan.core.config import settings
from monthplan.core.logging import configure_logging
from monthplan.db.session import SessionLocal
from monthplan.services.job_runner import JOB_DRAFT_CLEANUP, run_draft_cleanup

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(log_level=settings.log_level)
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running draft cleanup once on startup")
            run_draft_cleanup_job()
    else:
        logger.warning("Scheduler disabled via config; worker will idle")

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        stop_event.wait()
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def register_jobs(scheduler: BackgroundScheduler) -> None:
    interval = max(1, settings.draft_cleanup_interval_minutes)
    scheduler.add_job(
        run_draft_cleanup_job,
        trigger="interval",
        minutes=interval,
        id=f"{JOB_DRAFT_CLEANUP}_job",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    logger.info("Registered draft cleanup job (every %s min, %s)", interval, settings.scheduler_timezone)


def run_draft_cleanup_job() -> None:
    session = SessionLocal()
    try:
        result = run_draft_cleanup(session)
        logger.info("Draft cleanup job complete: deleted=%s", result.rows_deleted)
    except Exception:  # pragma: no cover - scheduler must keep running
        logger.exception("Draft cleanup job failed")
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
