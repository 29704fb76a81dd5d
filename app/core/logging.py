"""
Logging setup and small helpers for API and timing logs.
"""

import logging
import time
from typing import Any

from app.config import settings


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

api_logger = logging.getLogger("app.api")
perf_logger = logging.getLogger("app.performance")


def setup_logging() -> None:
    """Configure the root logger once at startup."""
    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # SQLAlchemy echoes every statement at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def log_api(method: str, endpoint: str, success: bool, **metadata: Any) -> None:
    """Log the outcome of an API or database call."""
    status = "SUCCESS" if success else "FAILED"
    message = f"{method} {endpoint} - {status}"
    if success:
        api_logger.info(message, extra={"metadata": metadata})
    else:
        api_logger.error(message, extra={"metadata": metadata})


def log_performance(context: str, started_at: float, success: bool = True) -> float:
    """Log elapsed time since started_at (a time.perf_counter() value). Returns milliseconds."""
    duration_ms = round((time.perf_counter() - started_at) * 1000, 2)
    perf_logger.debug(
        f"{context} took {duration_ms}ms",
        extra={"duration_ms": duration_ms, "success": success},
    )
    return duration_ms
