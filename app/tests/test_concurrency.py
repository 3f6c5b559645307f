"""
Concurrent clock-ins against a file-backed database
"""
import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.errors import AlreadyClockedIn
from app.db.base import Base
from app.models.attendance_session import AttendanceSession
from app.models.shift import Shift, ShiftType
from app.services import attendance_session_service as svc
from app.tests.conftest import WORK_DAY, at, make_employee

WORKERS = 8


@pytest.fixture
def file_sessionmaker(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def test_simultaneous_clock_ins_open_exactly_one_session(file_sessionmaker):
    setup = file_sessionmaker()
    shift = Shift(name="General", shift_type=ShiftType.FIXED.value, start_time="09:00", end_time="18:00", duration_hours=9)
    setup.add(shift)
    setup.commit()
    employee_id = make_employee(setup, "EMP-RACE", shift).id
    setup.close()

    barrier = threading.Barrier(WORKERS)
    outcomes = []
    outcomes_lock = threading.Lock()

    def worker():
        db = file_sessionmaker()
        try:
            barrier.wait()
            svc.clock_in(db, employee_id, now=at(WORK_DAY, "09:00"))
            outcome = "created"
        except AlreadyClockedIn:
            outcome = "already_clocked_in"
        except Exception as exc:
            outcome = repr(exc)
        finally:
            db.close()
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(WORKERS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert sorted(outcomes) == ["already_clocked_in"] * (WORKERS - 1) + ["created"]

    check = file_sessionmaker()
    try:
        open_sessions = check.query(AttendanceSession).filter(AttendanceSession.end_time.is_(None)).count()
        assert open_sessions == 1
    finally:
        check.close()
