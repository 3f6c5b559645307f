"""
Background scheduling for the auto-logout sweeper
"""
import logging
from datetime import timedelta
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.auto_logout_service import AutoLogoutSweeper, SweepSummary
from app.utils.datetime_utils import UTC, Clock, SystemClock

logger = logging.getLogger(__name__)

AUTO_LOGOUT_JOB_ID = "auto_logout_sweep"


class AutoLogoutScheduler:
    """
    Runs ``AutoLogoutSweeper`` on a fixed interval in a background thread.

    At most one sweep runs at a time (``max_instances=1``) and missed runs collapse into
    one (``coalesce=True``). Each run opens and closes its own database session.
    """

    def __init__(
        self,
        interval_minutes: Optional[int] = None,
        start_delay_seconds: Optional[int] = None,
        clock: Optional[Clock] = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.interval_minutes = interval_minutes or settings.AUTO_LOGOUT_INTERVAL_MINUTES
        self.start_delay_seconds = (
            start_delay_seconds if start_delay_seconds is not None else settings.AUTO_LOGOUT_START_DELAY_SECONDS
        )
        self.clock = clock or SystemClock()
        self.session_factory = session_factory
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def run_once(self) -> Optional[SweepSummary]:
        """One sweep. Never raises into the scheduler thread."""
        db = self.session_factory()
        try:
            return AutoLogoutSweeper(clock=self.clock).run(db)
        except Exception:
            db.rollback()
            logger.exception("Auto-logout sweep crashed")
            return None
        finally:
            db.close()

    def start(self) -> None:
        if self.running:
            logger.warning("Auto-logout scheduler already running")
            return

        scheduler = BackgroundScheduler(
            timezone=UTC,
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 60 * self.interval_minutes},
        )
        scheduler.add_job(
            self.run_once,
            "interval",
            minutes=self.interval_minutes,
            id=AUTO_LOGOUT_JOB_ID,
            next_run_time=self.clock.now() + timedelta(seconds=self.start_delay_seconds),
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Auto-logout scheduler started: every %s minute(s), first run in %ss",
            self.interval_minutes, self.start_delay_seconds,
        )

    def shutdown(self) -> None:
        if not self.running:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Auto-logout scheduler stopped")
