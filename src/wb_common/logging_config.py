"""Process-wide logging setup.

Log format:
    2026-10-17 21:30:00,123 INFO [wb.engine] Market 123 resolved: 2 winners, 75 paid
"""

import logging

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=_FORMAT)
    # APScheduler logs every job submission at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
