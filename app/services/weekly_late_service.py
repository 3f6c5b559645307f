"""
Weekly late tracking: per-employee counter of late clock-ins in a Monday-Sunday week.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.conflict import insert_or_ignore
from app.models.weekly_late import WeeklyLateTracking
from app.utils.datetime_utils import get_work_date, week_bounds

logger = logging.getLogger(__name__)


@dataclass
class WeeklyLateStats:
    week_start_date: date
    week_end_date: date
    late_count: int
    late_dates: List[str]
    threshold: int
    remaining: int

    @property
    def warning(self) -> bool:
        return self.late_count >= self.threshold


def _week_query(db: Session, employee_id: int, week_start: date):
    return db.query(WeeklyLateTracking).filter(
        WeeklyLateTracking.employee_id == employee_id,
        WeeklyLateTracking.week_start_date == week_start,
    )


def _get_or_create_week(db: Session, employee_id: int, day: date) -> WeeklyLateTracking:
    week_start, week_end = week_bounds(day)
    row = _week_query(db, employee_id, week_start).first()
    if row:
        return row

    # A concurrent first-late of the week may win the insert; either way the row exists after this
    insert_or_ignore(
        db,
        WeeklyLateTracking,
        {
            "employee_id": employee_id,
            "week_start_date": week_start,
            "week_end_date": week_end,
            "late_count": 0,
            "late_dates": [],
        },
        index_elements=[WeeklyLateTracking.employee_id, WeeklyLateTracking.week_start_date],
    )
    return _week_query(db, employee_id, week_start).one()


def track_late(db: Session, employee_id: int, day: date) -> WeeklyLateTracking:
    """
    Record a late clock-in on ``day``. Calling it again for the same date is a no-op,
    so the counter increments at most once per date.
    """
    row = _get_or_create_week(db, employee_id, day)
    day_str = day.isoformat()
    tracked = list(row.late_dates or [])
    if day_str not in tracked:
        tracked.append(day_str)
        row.late_dates = tracked
        row.late_count = (row.late_count or 0) + 1
        logger.info("Late clock-in tracked: employee_id=%s date=%s week_count=%s", employee_id, day_str, row.late_count)
    db.commit()
    db.refresh(row)
    return row


def get_weekly_late_stats(
    db: Session,
    employee_id: int,
    day: Optional[date] = None,
    threshold: Optional[int] = None,
) -> WeeklyLateStats:
    """Late count, dates and remaining allowance for the week containing ``day`` (default today)."""
    day = day or get_work_date()
    threshold = threshold if threshold is not None else settings.WEEKLY_LATE_WARNING_THRESHOLD
    week_start, week_end = week_bounds(day)
    row = _week_query(db, employee_id, week_start).first()
    count = row.late_count if row else 0
    return WeeklyLateStats(
        week_start_date=week_start,
        week_end_date=week_end,
        late_count=count,
        late_dates=list(row.late_dates or []) if row else [],
        threshold=threshold,
        remaining=max(0, threshold - count),
    )
