# app/scheduler.py
import logging
import time
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR

from .core.config import get_settings

logger = logging.getLogger("Scheduler")


def job_listener(event):
    """
    Scheduler event listener, logs the outcome of every job run.
    """
    if event.exception:
        logger.error(f"Job {event.job_id} failed: {event.exception}")
    else:
        logger.info(f"Job {event.job_id} executed successfully")


def parse_run_hour(value: str, default: tuple[int, int] = (1, 0)) -> tuple[int, int]:
    """Parses "HH:MM"; invalid values fall back to `default`."""
    try:
        hour, minute = value.split(":")
        hour, minute = int(hour), int(minute)
    except (ValueError, AttributeError):
        logger.warning(f"Invalid run hour format: {value}. Using {default[0]:02d}:{default[1]:02d}")
        return default
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        logger.warning(f"Run hour out of range: {value}. Using {default[0]:02d}:{default[1]:02d}")
        return default
    return hour, minute


def build_scheduler() -> BackgroundScheduler:
    """
    Scheduler with the daily auto-billing gate. The gate itself decides
    whether today is billing day, so the job runs every day.
    """
    from .services.billing_job import run_auto_billing_check

    scheduler = BackgroundScheduler(
        job_defaults={
            "coalesce": True,  # collapse missed runs into one
            "max_instances": 1,
            "misfire_grace_time": 300,
        }
    )
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    hour, minute = parse_run_hour(get_settings().auto_billing_check_hour)
    logger.info(f"Scheduling auto billing check daily at {hour:02d}:{minute:02d}")
    scheduler.add_job(
        run_auto_billing_check,
        trigger=CronTrigger(hour=hour, minute=minute),
        id="auto_billing_job",
        name="Daily Auto Billing Check",
        replace_existing=True,
    )
    return scheduler


def run_scheduler():
    """
    Entry point for a standalone scheduler process.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - [Scheduler] - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    from .db.engine_sync import create_sync_db_and_tables

    create_sync_db_and_tables()

    scheduler = build_scheduler()
    scheduler.start()
    logger.info("Scheduler started")

    try:
        while True:
            time.sleep(60)
    except (KeyboardInterrupt, SystemExit):
        logger.info("Stopping scheduler...")
        scheduler.shutdown()
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    run_scheduler()
