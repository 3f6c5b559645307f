"""
Logging setup. Timestamps are written in UTC so sweeper runs, clock events and
database instants line up without timezone arithmetic.
"""
import logging
import sys
import time

from app.core.config import settings

LOG_FORMAT = "%(asctime)sZ %(levelname)-7s [%(name)s] %(message)s"

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "apscheduler": logging.WARNING,  # one INFO line per job execution
}


def setup_logging() -> None:
    """Configure the root logger from settings.LOG_LEVEL. Safe to call more than once."""
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    formatter.converter = time.gmtime

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))

    for name, level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s env=%s business_tz=%s", settings.LOG_LEVEL, settings.APP_ENV, settings.BUSINESS_TZ
    )
