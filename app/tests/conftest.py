"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time; tests never touch a real database or start the scheduler
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-timekeeping-tests")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("APP_ENV", "local")

from datetime import date, datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.main import app  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.core.deps import get_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.services import notification_service  # noqa: E402
from app.utils.datetime_utils import shift_time_on  # noqa: E402

# Import all models to ensure they're registered with Base.metadata
from app.models import (  # noqa: E402,F401
    Shift,
    ShiftType,
    Employee,
    Role,
    Holiday,
    LeaveRequest,
    AttendanceLog,
    AttendanceSession,
    BreakLog,
    WeeklyLateTracking,
    Setting,
    AuditLog,
)


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# A Wednesday; the whole week around it is free of holidays unless a test adds one
WORK_DAY = date(2026, 3, 4)


def at(day: date, hhmm: str) -> datetime:
    """Business-timezone wall time on ``day`` as a UTC instant."""
    return shift_time_on(day, hhmm)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def recorded_notifications():
    """Capture notifications instead of logging them"""
    sink = notification_service.RecordingNotificationSink()
    previous = notification_service.set_notification_sink(sink)
    yield sink.events
    notification_service.set_notification_sink(previous)


@pytest.fixture
def fixed_shift(db):
    """09:00-18:00 fixed shift with a 30-minute paid break"""
    shift = Shift(
        name="General",
        shift_type=ShiftType.FIXED.value,
        start_time="09:00",
        end_time="18:00",
        duration_hours=9,
        paid_break_minutes=30,
    )
    db.add(shift)
    db.commit()
    db.refresh(shift)
    return shift


def make_employee(db, emp_code: str, shift=None, role: Role = Role.EMPLOYEE, **kwargs) -> Employee:
    employee = Employee(
        emp_code=emp_code,
        name=kwargs.pop("name", f"Employee {emp_code}"),
        role=role.value,
        shift_id=shift.id if shift is not None else None,
        active=kwargs.pop("active", True),
        **kwargs,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@pytest.fixture
def employee(db, fixed_shift):
    return make_employee(db, "EMP001", fixed_shift, name="Test Employee")


@pytest.fixture
def admin(db):
    return make_employee(db, "ADM001", role=Role.ADMIN, name="Admin User")


def auth_headers_for(employee: Employee) -> dict:
    token = create_access_token({"sub": employee.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(employee):
    return auth_headers_for(employee)
