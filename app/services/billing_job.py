# app/services/billing_job.py
import logging
from datetime import datetime
from typing import Optional

from sqlmodel import Session

from ..core.constants import SYSTEM_ACTOR
from ..core.timeutils import as_utc, utcnow
from .bills_service import BillsService, current_month
from .exceptions import BillsAlreadyExistError
from .settings_service import SettingsService

logger = logging.getLogger("BillingJob")


def should_run_auto_billing(settings: dict, now: datetime) -> bool:
    """
    Day-of-month gate: enabled, today is the configured day, and no run yet
    this calendar month. Missed days are not made up.
    """
    if not settings["enabled"]:
        return False
    now = as_utc(now)
    if now.day != settings["day_of_month"]:
        return False
    last_run: Optional[datetime] = as_utc(settings["last_run_date"])
    if last_run and (last_run.year, last_run.month) == (now.year, now.month):
        return False
    return True


def run_auto_billing_check(session: Optional[Session] = None, now: Optional[datetime] = None) -> bool:
    """
    Run monthly bill generation if the auto-billing gate is open.
    Called at application start and daily by APScheduler.

    Returns True when bills were generated for the current period.
    """
    if session is None:
        from ..db.engine_sync import sync_engine

        with Session(sync_engine) as own_session:
            return run_auto_billing_check(own_session, now)

    now = as_utc(now) if now else utcnow()
    settings_service = SettingsService(session)

    try:
        settings = settings_service.get_auto_billing_settings()
        if not should_run_auto_billing(settings, now):
            return False

        month = current_month(now.date())
        logger.info(f"--- AUTO BILLING: generating bills for {month} ---")
        result = BillsService(session).generate_monthly_bills(
            month=month, generated_by=SYSTEM_ACTOR
        )
        settings_service.mark_auto_billing_run(now)

        logger.info(
            f"Auto billing completed: {result['summary']['bills_generated']} bills generated, "
            f"{len(result['failed'])} failed"
        )
        return True
    except BillsAlreadyExistError as e:
        # Someone billed the period by hand; record the month as done
        logger.warning(f"Auto billing skipped: {e}")
        settings_service.mark_auto_billing_run(now)
        return False
    except Exception as e:
        session.rollback()
        logger.error(f"Failed to run auto billing check: {e}", exc_info=True)
        return False
