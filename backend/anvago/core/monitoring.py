"""
Monitoring & Observability
Structured log output and operation timing for the matcher.
"""

import time
from typing import Callable, Any
from functools import wraps
import logging
import json
from datetime import datetime

logger = logging.getLogger(__name__)


# ============================================================================
# STRUCTURED LOGGING
# ============================================================================

class JSONFormatter(logging.Formatter):
    """One JSON object per line; selected with log_format=json."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in ("operation", "duration_ms"):
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


# ============================================================================
# PERFORMANCE TRACKING
# ============================================================================

def track_performance(operation_name: str):
    """Log how long each call of the wrapped function takes."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed = round((time.perf_counter() - start) * 1000, 2)
                logger.info(
                    f"{operation_name} took {elapsed:.0f}ms",
                    extra={"operation": operation_name, "duration_ms": elapsed},
                )
        return wrapper

    return decorator
