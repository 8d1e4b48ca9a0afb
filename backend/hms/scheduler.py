"""
APScheduler wiring for the nightly reconciliation run
"""
import logging
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from hms.config import settings
from hms.database import SessionLocal
from hms.services.reconciliation_service import ReconciliationService, ReconciliationRun

logger = logging.getLogger(__name__)

RECONCILIATION_JOB_ID = "nightly_reconciliation"


def run_reconciliation(session_factory: Callable[[], Session] = SessionLocal) -> ReconciliationRun:
    """Run the three nightly steps in a session of their own"""
    db = session_factory()
    try:
        return ReconciliationService(db).run_scheduled_tasks()
    finally:
        db.close()


class ReconciliationScheduler:
    """Background scheduler owning the single nightly job"""

    def __init__(self, scheduler: Optional[BackgroundScheduler] = None,
                 cron_expression: str = settings.RECONCILIATION_CRON,
                 session_factory: Callable[[], Session] = SessionLocal):
        self._scheduler = scheduler or BackgroundScheduler()
        self.cron_expression = cron_expression
        self.session_factory = session_factory

    @property
    def scheduler(self) -> BackgroundScheduler:
        return self._scheduler

    def _job(self):
        run_reconciliation(self.session_factory)

    def start(self) -> None:
        self._scheduler.add_job(
            self._job,
            trigger=CronTrigger.from_crontab(self.cron_expression),
            id=RECONCILIATION_JOB_ID,
            replace_existing=True,
        )
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Reconciliation scheduled: %s", self.cron_expression)

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Reconciliation scheduler shut down")

    def trigger_now(self) -> ReconciliationRun:
        """Run the nightly job immediately, outside the schedule"""
        return run_reconciliation(self.session_factory)
