"""
Centralized logging configuration for edgecli.

Diagnostics go to stderr so they never mix with command output on stdout.
Structured JSON logging is available for scripted use via LOG_FORMAT=json.
"""
import logging
import os
import json
import sys
from datetime import datetime, timezone


# Extra attributes copied into JSON records when present
CONTEXT_FIELDS = ("config_path", "url", "version", "action")


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger for the given module name.

    Usage:
        from edgecli.logging_config import get_logger
        logger = get_logger(__name__)
        logger.info("Message", extra={"url": "https://..."})
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)

        # Plain text for interactive use, JSON when requested
        log_format = os.getenv("LOG_FORMAT", "text")
        if log_format == "json":
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            ))

        logger.addHandler(handler)
        logger.propagate = False

        log_level = os.getenv("LOG_LEVEL", "WARNING").upper()
        logger.setLevel(getattr(logging, log_level, logging.WARNING))

    return logger
