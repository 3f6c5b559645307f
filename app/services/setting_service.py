"""
Runtime settings: key/value toggles stored in the settings table.

Reads never fail; a missing, unreadable or out-of-range value falls back to the
configured default.
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import (
    AUTO_LOGOUT_BUFFER_MAX,
    AUTO_LOGOUT_BUFFER_MIN,
    SETTING_AUTO_LOGOUT_BUFFER,
    SETTING_ENABLE_AUTO_LOGOUT,
    SETTING_LATE_GRACE,
)
from app.models.setting import Setting

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


def _read_raw(db: Session, key: str) -> Optional[str]:
    try:
        row = db.query(Setting).filter(Setting.key == key).first()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not read setting %s, using default", key, exc_info=True)
        return None
    return row.value if row else None


def get_bool_setting(db: Session, key: str, default: bool) -> bool:
    raw = _read_raw(db, key)
    if raw is None:
        return default
    value = str(raw).strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logger.warning("Invalid boolean for setting %s: %r, using default %s", key, raw, default)
    return default


def get_int_setting(
    db: Session,
    key: str,
    default: int,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> int:
    raw = _read_raw(db, key)
    if raw is None:
        return default
    try:
        value = int(float(raw))
    except (TypeError, ValueError):
        logger.warning("Invalid integer for setting %s: %r, using default %s", key, raw, default)
        return default
    if (min_value is not None and value < min_value) or (max_value is not None and value > max_value):
        logger.warning("Setting %s=%s out of range [%s, %s], using default %s", key, value, min_value, max_value, default)
        return default
    return value


def set_setting(db: Session, key: str, value, description: Optional[str] = None) -> Setting:
    """Create or update a setting. Values are stored as strings."""
    row = db.query(Setting).filter(Setting.key == key).first()
    if row is None:
        row = Setting(key=key)
        db.add(row)
    row.value = str(value).lower() if isinstance(value, bool) else str(value)
    if description is not None:
        row.description = description
    db.commit()
    db.refresh(row)
    return row


def is_auto_logout_enabled(db: Session) -> bool:
    return get_bool_setting(db, SETTING_ENABLE_AUTO_LOGOUT, settings.AUTO_LOGOUT_ENABLED)


def get_auto_logout_buffer_minutes(db: Session) -> int:
    return get_int_setting(
        db,
        SETTING_AUTO_LOGOUT_BUFFER,
        settings.AUTO_LOGOUT_BUFFER_MINUTES,
        min_value=AUTO_LOGOUT_BUFFER_MIN,
        max_value=AUTO_LOGOUT_BUFFER_MAX,
    )


def get_late_grace_minutes(db: Session) -> int:
    return get_int_setting(db, SETTING_LATE_GRACE, settings.LATE_GRACE_MINUTES, min_value=0)
