"""
Structured JSON Logging

Plain or JSON log lines depending on LOG_JSON.
"""
import json
import logging
import sys
from datetime import datetime, timezone

from trialmatch.config import LOG_JSON, LOG_LEVEL

_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info", "taskName",
}

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class StructuredJSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Log format:
    {
        "ts": "2024-01-01T00:00:00+00:00",
        "level": "INFO",
        "logger": "trialmatch.services...",
        "message": "...",
        "consultation_id": "...",
        "error": null
    }

    Any ``extra=`` fields passed to the logger are copied into the payload.
    """

    def __init__(self, json_output: bool = LOG_JSON):
        super().__init__(fmt=PLAIN_FORMAT)
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        if not self.json_output:
            return super().format(record)

        log_data = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["error"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(level: str = LOG_LEVEL, json_output: bool = LOG_JSON) -> logging.Logger:
    """Setup root logging with a single stdout handler."""
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJSONFormatter(json_output=json_output))
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    return root_logger
