"""
Conversion of audit and notification payloads into JSON column values
"""
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel


def sanitize_for_json(value: Any) -> Any:
    """
    Recursively turn ``value`` into something ``json.dumps`` accepts.

    Aware datetimes keep their offset (instants are UTC in this service), dates become
    ``YYYY-MM-DD``, enums their value. Anything unknown falls back to ``str``.
    """
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, BaseModel):
        return sanitize_for_json(value.model_dump())
    if isinstance(value, dict):
        return {str(k): sanitize_for_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [sanitize_for_json(v) for v in value]
    return str(value)
