"""
Auto-logout sweeper.

Runs on a fixed interval (see app.core.scheduler) and force-closes sessions left open
past their expected logout plus a buffer. Every mutation happens under a lease: the
sweeper first claims the log and the session with a token and an expiry, then closes
both in one transaction guarded by that token. A manual clock-out racing the sweeper
leaves exactly one winner; the sweeper's side of a lost race is a no-op.
"""
import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterator, List, Optional

from sqlalchemy import or_, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import (
    AUDIT_AUTO_LOGOUT,
    AUDIT_LEGACY_CLOSE,
    LEGACY_CLOSE_REASON,
    LEGACY_NO_SHIFT_REASON,
    MAX_SESSION_HOURS,
    STALE_LOG_WARNING_DAYS,
)
from app.models.attendance import AttendanceLog, LogoutType
from app.models.attendance_session import AttendanceSession
from app.models.employee import Employee
from app.services import notification_service
from app.services.attendance_session_service import (
    apply_half_day_classification,
    close_open_breaks,
    paid_break_allowance,
    recompute_log_totals,
)
from app.services.audit_service import log_audit
from app.services.daily_status_service import get_daily_status
from app.services.setting_service import get_auto_logout_buffer_minutes, is_auto_logout_enabled
from app.utils.datetime_utils import Clock, SystemClock, ensure_utc, get_work_date, iso_business, minutes_between

logger = logging.getLogger(__name__)

SKIP_DATABASE_UNAVAILABLE = "database_unavailable"
SKIP_DISABLED = "disabled"


@dataclass
class SweepSummary:
    started_at: datetime
    finished_at: Optional[datetime] = None
    skipped_reason: Optional[str] = None
    processed: int = 0
    closed: int = 0
    skipped: int = 0
    legacy_closed: int = 0
    repaired: int = 0
    errors: int = 0
    leases_released: int = 0
    closed_log_ids: List[int] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


@dataclass(frozen=True)
class CloseOutcome:
    closed: bool
    logout_time: Optional[datetime] = None


class AutoLogoutSweeper:
    """
    One sweep per ``run`` call. Configuration (enabled flag, buffer) is re-read from the
    settings table on every run.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        lease_ttl_seconds: Optional[int] = None,
        legacy_max_age_hours: Optional[int] = None,
    ):
        self.clock = clock or SystemClock()
        self.lease_ttl = timedelta(seconds=lease_ttl_seconds or settings.LEASE_TTL_SECONDS)
        self.legacy_max_age = timedelta(hours=legacy_max_age_hours or settings.LEGACY_SESSION_MAX_AGE_HOURS)

    # --- entry point ---

    def run(self, db: Session) -> SweepSummary:
        started = time.monotonic()
        now = ensure_utc(self.clock.now())
        summary = SweepSummary(started_at=now)
        logger.info("Auto-logout sweep started at %s", now.isoformat())

        try:
            db.execute(text("SELECT 1"))
        except OperationalError:
            db.rollback()
            logger.warning("Database not reachable, skipping auto-logout sweep", exc_info=True)
            return self._finish(summary, started, SKIP_DATABASE_UNAVAILABLE)

        if not is_auto_logout_enabled(db):
            logger.info("Auto-logout is disabled, skipping sweep")
            return self._finish(summary, started, SKIP_DISABLED)

        buffer_minutes = get_auto_logout_buffer_minutes(db)
        summary.leases_released = self.release_expired_leases(db, now)
        self.cleanup_legacy_sessions(db, now, summary)

        open_logs = (
            db.query(AttendanceLog)
            .filter(
                AttendanceLog.clock_out_time.is_(None),
                AttendanceLog.clock_in_time.isnot(None),
                AttendanceLog.is_legacy_session.is_(False),
            )
            .order_by(AttendanceLog.attendance_date, AttendanceLog.id)
            .all()
        )
        log_ids = [log.id for log in open_logs]
        if not log_ids:
            logger.info("No open attendance logs to check")

        for log_id in log_ids:
            summary.processed += 1
            try:
                self._process_log(db, log_id, now, buffer_minutes, summary)
            except Exception:
                # One bad record never aborts the sweep
                db.rollback()
                summary.errors += 1
                summary.skipped += 1
                logger.exception("Auto-logout failed for attendance_log_id=%s", log_id)

        return self._finish(summary, started)

    def _finish(self, summary: SweepSummary, started: float, skipped_reason: Optional[str] = None) -> SweepSummary:
        summary.skipped_reason = skipped_reason
        summary.finished_at = summary.started_at + timedelta(seconds=time.monotonic() - started)
        logger.info(
            "Auto-logout sweep finished in %.3fs: processed=%s closed=%s skipped=%s legacy=%s repaired=%s errors=%s%s",
            summary.duration_seconds, summary.processed, summary.closed, summary.skipped,
            summary.legacy_closed, summary.repaired, summary.errors,
            f" ({skipped_reason})" if skipped_reason else "",
        )
        return summary

    # --- leases ---

    def release_expired_leases(self, db: Session, now: datetime) -> int:
        """Clear leases left behind by a crashed run."""
        released = 0
        for model in (AttendanceLog, AttendanceSession):
            released += (
                db.query(model)
                .filter(model.lock_token.isnot(None), model.lock_expires_at < now)
                .update({model.lock_token: None, model.lock_expires_at: None}, synchronize_session=False)
            )
        db.commit()
        if released:
            logger.warning("Released %s expired auto-logout lease(s)", released)
        return released

    @staticmethod
    def _claim(db: Session, model, row_id: int, open_clause, token: str, now: datetime, expires_at: datetime) -> bool:
        claimed = (
            db.query(model)
            .filter(
                model.id == row_id,
                open_clause,
                or_(model.lock_token.is_(None), model.lock_expires_at < now),
            )
            .update({model.lock_token: token, model.lock_expires_at: expires_at}, synchronize_session=False)
        )
        return claimed == 1

    @contextmanager
    def lease(self, db: Session, log_id: int, session_id: Optional[int], now: datetime) -> Iterator[Optional[str]]:
        """
        Claim the log (and session) for this run. Yields the lease token, or None when
        another actor already closed or claimed the record. Released on every path.
        """
        token = str(uuid.uuid4())
        expires_at = now + self.lease_ttl
        if not self._claim(db, AttendanceLog, log_id, AttendanceLog.clock_out_time.is_(None), token, now, expires_at):
            db.rollback()
            yield None
            return
        if session_id is not None and not self._claim(
            db, AttendanceSession, session_id, AttendanceSession.end_time.is_(None), token, now, expires_at
        ):
            db.rollback()
            yield None
            return
        db.commit()

        try:
            yield token
        finally:
            db.rollback()
            for model in (AttendanceLog, AttendanceSession):
                db.query(model).filter(model.lock_token == token).update(
                    {model.lock_token: None, model.lock_expires_at: None}, synchronize_session=False
                )
            db.commit()

    # --- closing ---

    def close_session(
        self,
        db: Session,
        log: AttendanceLog,
        session: Optional[AttendanceSession],
        logout_time: datetime,
        logout_type: LogoutType,
        reason: str,
        now: datetime,
        legacy: bool = False,
    ) -> bool:
        """
        Close the session and its log together under a lease. Returns False, with
        nothing written, if another actor got there first.
        """
        log_id = log.id
        session_id = session.id if session is not None else None
        with self.lease(db, log_id, session_id, now) as token:
            if token is None:
                logger.info("attendance_log_id=%s already closed or claimed, skipping", log_id)
                return False

            if session_id is not None:
                session_closed = (
                    db.query(AttendanceSession)
                    .filter(
                        AttendanceSession.id == session_id,
                        AttendanceSession.end_time.is_(None),
                        AttendanceSession.lock_token == token,
                    )
                    .update(
                        {
                            AttendanceSession.end_time: logout_time,
                            AttendanceSession.logout_type: logout_type.value,
                            AttendanceSession.auto_logout_reason: reason,
                            AttendanceSession.is_legacy_session: legacy,
                        },
                        synchronize_session=False,
                    )
                )
                if session_closed != 1:
                    db.rollback()
                    logger.info("Session %s was closed by another process, aborting", session_id)
                    return False

            log_closed = (
                db.query(AttendanceLog)
                .filter(
                    AttendanceLog.id == log_id,
                    AttendanceLog.clock_out_time.is_(None),
                    AttendanceLog.lock_token == token,
                )
                .update(
                    {
                        AttendanceLog.clock_out_time: logout_time,
                        AttendanceLog.logout_type: logout_type.value,
                        AttendanceLog.auto_logout_reason: reason,
                        AttendanceLog.is_legacy_session: legacy,
                    },
                    synchronize_session=False,
                )
            )
            if log_closed != 1:
                # Leaves neither row half-closed
                db.rollback()
                logger.warning("attendance_log_id=%s was closed by another process, rolled back session close", log_id)
                return False

            if session is not None:
                db.refresh(session)
            db.refresh(log)
            # No break outlives the session it belongs to
            closed_breaks = close_open_breaks(
                db, log, None if legacy else logout_time, paid_break_allowance(log.employee)
            )
            if closed_breaks:
                logger.info("Closed open break(s) %s on attendance_log_id=%s", closed_breaks, log_id)
            if legacy:
                log.total_working_hours = 0.0
                log.paid_break_minutes_taken = 0
                log.unpaid_break_minutes_taken = 0
            else:
                apply_half_day_classification(log, recompute_log_totals(db, log))
            db.commit()
            return True

    def _close_legacy(
        self,
        db: Session,
        log: AttendanceLog,
        session: Optional[AttendanceSession],
        reason: str,
        now: datetime,
        summary: SweepSummary,
    ) -> bool:
        # Zero-length close at the session's own start: no worked time is invented
        end_time = ensure_utc(
            (session.start_time if session is not None else None) or log.clock_in_time or log.created_at or now
        )
        employee_id = log.employee_id
        if not self.close_session(db, log, session, end_time, LogoutType.SYSTEM, reason, now, legacy=True):
            return False
        summary.legacy_closed += 1
        summary.closed_log_ids.append(log.id)
        logger.info("Closed legacy session for employee_id=%s attendance_log_id=%s", employee_id, log.id)
        log_audit(
            db=db,
            actor_id=None,
            action=AUDIT_LEGACY_CLOSE,
            entity_type="attendance_logs",
            entity_id=log.id,
            meta={"employee_id": employee_id, "reason": reason, "closed_at": end_time},
            created_at=now,
        )
        return True

    def cleanup_legacy_sessions(self, db: Session, now: datetime, summary: SweepSummary) -> int:
        """
        Force-close open logs that cannot be processed normally: missing or inactive
        employee, or a log older than the legacy age bound.
        """
        cutoff = now - self.legacy_max_age
        candidates = (
            db.query(AttendanceLog)
            .filter(
                AttendanceLog.clock_out_time.is_(None),
                AttendanceLog.clock_in_time.isnot(None),
                AttendanceLog.is_legacy_session.is_(False),
            )
            .all()
        )
        closed = 0
        for log in candidates:
            try:
                employee = db.query(Employee).filter(Employee.id == log.employee_id).first()
                created_at = ensure_utc(log.created_at)
                is_legacy = employee is None or not employee.active or (created_at is not None and created_at < cutoff)
                if not is_legacy:
                    continue
                session = self._latest_open_session(db, log)
                if self._close_legacy(db, log, session, LEGACY_CLOSE_REASON, now, summary):
                    closed += 1
            except Exception:
                db.rollback()
                summary.errors += 1
                logger.exception("Legacy cleanup failed for attendance_log_id=%s", log.id)
        if closed:
            logger.info("Closed %s legacy session(s)", closed)
        return closed

    # --- per-log processing ---

    @staticmethod
    def _open_sessions(db: Session, log: AttendanceLog) -> List[AttendanceSession]:
        return (
            db.query(AttendanceSession)
            .filter(
                AttendanceSession.attendance_log_id == log.id,
                AttendanceSession.end_time.is_(None),
                AttendanceSession.is_legacy_session.is_(False),
            )
            .order_by(AttendanceSession.start_time.desc())
            .all()
        )

    def _latest_open_session(self, db: Session, log: AttendanceLog) -> Optional[AttendanceSession]:
        sessions = self._open_sessions(db, log)
        if len(sessions) > 1:
            logger.warning(
                "attendance_log_id=%s has %s open sessions, using the most recent", log.id, len(sessions)
            )
        return sessions[0] if sessions else None

    def _repair_log_without_open_session(self, db: Session, log: AttendanceLog, summary: SweepSummary) -> None:
        last = (
            db.query(AttendanceSession)
            .filter(AttendanceSession.attendance_log_id == log.id, AttendanceSession.end_time.isnot(None))
            .order_by(AttendanceSession.end_time.desc())
            .first()
        )
        if last is None:
            return
        logger.warning(
            "attendance_log_id=%s is open without an open session, setting clock-out to last session end", log.id
        )
        db.query(AttendanceLog).filter(
            AttendanceLog.id == log.id, AttendanceLog.clock_out_time.is_(None)
        ).update({AttendanceLog.clock_out_time: last.end_time}, synchronize_session=False)
        db.commit()
        summary.repaired += 1

    def _process_log(self, db: Session, log_id: int, now: datetime, buffer_minutes: int, summary: SweepSummary) -> None:
        log = db.query(AttendanceLog).filter(AttendanceLog.id == log_id).first()
        if log is None or log.clock_out_time is not None or log.is_legacy_session:
            # Closed by legacy cleanup or a clock-out since the scan
            summary.skipped += 1
            return

        session = self._latest_open_session(db, log)
        if session is None:
            self._repair_log_without_open_session(db, log, summary)
            summary.skipped += 1
            return

        employee = db.query(Employee).filter(Employee.id == log.employee_id).first()
        if employee is None or not employee.active:
            # Deactivated after legacy cleanup ran; picked up on the next sweep
            summary.skipped += 1
            return
        session_start = ensure_utc(session.start_time)

        if employee.shift is None:
            if now - session_start > timedelta(hours=MAX_SESSION_HOURS):
                if self._close_legacy(db, log, session, LEGACY_NO_SHIFT_REASON, now, summary):
                    summary.closed += 1
                    return
            else:
                logger.info("employee_id=%s has no shift assigned, skipping", employee.id)
            summary.skipped += 1
            return

        today = get_work_date(now)
        days_old = (today - log.attendance_date).days
        if days_old > STALE_LOG_WARNING_DAYS:
            logger.warning(
                "Very old open attendance log (%s days) for employee_id=%s attendance_log_id=%s",
                days_old, employee.id, log.id,
            )

        expected = get_daily_status(db, employee, log.attendance_date, now).calculated_logout_time
        if expected is None:
            logger.info(
                "No expected logout for employee_id=%s date=%s, skipping", employee.id, log.attendance_date
            )
            summary.skipped += 1
            return

        threshold = expected + timedelta(minutes=buffer_minutes)
        if now < threshold:
            summary.skipped += 1
            return

        # Never close a session younger than the buffer, whatever the threshold says
        if minutes_between(session_start, now) < buffer_minutes:
            logger.warning(
                "Skipping auto-logout for employee_id=%s: session %s is only %.0f minutes old",
                employee.id, session.id, minutes_between(session_start, now),
            )
            summary.skipped += 1
            return

        if log.attendance_date < today:
            logout_time = min(threshold, session_start + timedelta(hours=MAX_SESSION_HOURS))
        else:
            logout_time = now

        reason = f"Auto-logged out after exceeding allowed session time ({buffer_minutes} minutes buffer)"
        if not self.close_session(db, log, session, logout_time, LogoutType.AUTO, reason, now):
            summary.skipped += 1
            return

        summary.closed += 1
        summary.closed_log_ids.append(log.id)
        overrun_minutes = round(minutes_between(expected, logout_time))
        past_threshold_minutes = round(minutes_between(threshold, logout_time))
        self._record_auto_logout(
            db, employee, log, logout_time, expected, overrun_minutes, past_threshold_minutes, buffer_minutes, now
        )

    def _record_auto_logout(
        self,
        db: Session,
        employee: Employee,
        log: AttendanceLog,
        logout_time: datetime,
        expected: datetime,
        overrun_minutes: int,
        past_threshold_minutes: int,
        buffer_minutes: int,
        now: datetime,
    ) -> None:
        logger.info(
            "Auto-logged out employee_id=%s at %s (date %s, expected %s, overrun %s min, %.2fh worked)",
            employee.id, logout_time.isoformat(), log.attendance_date, expected.isoformat(),
            overrun_minutes, log.total_working_hours,
        )
        meta = {
            "attendance_date": log.attendance_date,
            "logout_time": logout_time,
            "expected_logout_time": expected,
            "overrun_minutes": overrun_minutes,
            "minutes_past_threshold": past_threshold_minutes,
            "buffer_minutes": buffer_minutes,
            "total_working_hours": log.total_working_hours,
        }
        log_audit(
            db=db,
            actor_id=None,
            action=AUDIT_AUTO_LOGOUT,
            entity_type="attendance_logs",
            entity_id=log.id,
            meta={"employee_id": employee.id, **meta},
            created_at=now,
        )
        notification_service.notify(
            notification_service.EVENT_AUTO_LOGOUT,
            employee.id,
            f"You were auto logged out at {iso_business(logout_time)} due to exceeding allowed session time.",
            metadata=meta,
        )
        notification_service.notify(
            notification_service.EVENT_AUTO_LOGOUT,
            employee.id,
            f"{employee.name} was auto logged out (exceeded expected logout by {overrun_minutes} minutes)",
            audience=notification_service.AUDIENCE_ADMIN,
            metadata=meta,
        )
