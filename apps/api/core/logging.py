"""
Structured logging configuration.

JSON lines in production (one object per record, `extra_fields` merged in),
plain text for local development and tests.
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import Any, Dict
from core.config import settings


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Progression events attach client/assignment ids here
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_data.update(extra_fields)

        return json.dumps(log_data, default=str)


def _use_json() -> bool:
    return settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production"


def setup_logging():
    """
    Configure application-wide logging.

    Safe to call more than once: existing root handlers are replaced.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    if _use_json():
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Set levels for noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)

    return root_logger
