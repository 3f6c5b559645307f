"""
Tests for weekly late tracking
"""
from datetime import date, timedelta

from app.models.weekly_late import WeeklyLateTracking
from app.services.weekly_late_service import get_weekly_late_stats, track_late
from app.tests.conftest import WORK_DAY

MONDAY = date(2026, 3, 2)


def test_same_date_is_counted_once(db, employee):
    track_late(db, employee.id, WORK_DAY)
    row = track_late(db, employee.id, WORK_DAY)

    assert row.late_count == 1
    assert row.late_dates == [WORK_DAY.isoformat()]
    assert db.query(WeeklyLateTracking).count() == 1


def test_week_runs_monday_to_sunday(db, employee):
    row = track_late(db, employee.id, WORK_DAY)
    assert row.week_start_date == MONDAY
    assert row.week_end_date == MONDAY + timedelta(days=6)

    # Sunday belongs to the same week, the following Monday starts a new one
    track_late(db, employee.id, MONDAY + timedelta(days=6))
    track_late(db, employee.id, MONDAY + timedelta(days=7))

    rows = db.query(WeeklyLateTracking).order_by(WeeklyLateTracking.week_start_date).all()
    assert [r.late_count for r in rows] == [2, 1]


def test_stats_without_any_late_day(db, employee):
    stats = get_weekly_late_stats(db, employee.id, WORK_DAY)
    assert stats.late_count == 0
    assert stats.late_dates == []
    assert stats.remaining == 3
    assert stats.warning is False


def test_stats_reach_warning_threshold(db, employee):
    for offset in range(3):
        track_late(db, employee.id, MONDAY + timedelta(days=offset))

    stats = get_weekly_late_stats(db, employee.id, WORK_DAY)
    assert stats.late_count == 3
    assert stats.remaining == 0
    assert stats.warning is True

    lenient = get_weekly_late_stats(db, employee.id, WORK_DAY, threshold=5)
    assert lenient.remaining == 2
    assert lenient.warning is False
