"""
Background sweep of orphaned attachments.

Uploads are stored before the leave that will reference them exists; any
file still unattached after the grace period is abandoned and removed.
"""
import logging
from datetime import timedelta
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from leavedesk.services.attachments import AttachmentManager
from leavedesk.services.storage import LocalFileStorage

logger = logging.getLogger(__name__)

JOB_ID = "orphan_file_sweep"


class OrphanFileSweeper:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        storage: LocalFileStorage,
        interval_minutes: int = 60,
        grace: Optional[timedelta] = None,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.session_factory = session_factory
        self.storage = storage
        self.interval_minutes = interval_minutes
        self.grace = grace
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")

    def run_once(self) -> int:
        """Run one sweep on a fresh session. Errors are logged; the next interval retries."""
        db = self.session_factory()
        try:
            removed = AttachmentManager(db, self.storage).delete_orphaned(older_than=self.grace)
            logger.info(f"Orphan sweep complete: {removed} file(s) removed", extra={"removed": removed})
            return removed
        except Exception as e:
            logger.error(f"Orphan sweep failed: {e}", exc_info=True)
            return 0
        finally:
            db.close()

    def start(self) -> None:
        self.scheduler.add_job(
            self.run_once,
            IntervalTrigger(minutes=self.interval_minutes),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(f"Orphan sweep scheduled every {self.interval_minutes} minute(s)")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Orphan sweep scheduler stopped")
