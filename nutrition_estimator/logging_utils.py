"""
Logging setup for the estimator.

Library modules only call logging.getLogger(__name__). Entry points (CLI,
batch runs) call configure_logging() once with an explicit level and format.
"""
import json
import logging
import sys
from typing import Any, Dict, Optional, TextIO

ROOT_LOGGER = "nutrition_estimator"


class JSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


class TextFormatter(logging.Formatter):
    """Plain single-line formatter."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-8s %(name)s %(message)s", "%Y-%m-%d %H:%M:%S")


def configure_logging(level: str = "INFO", fmt: str = "text", stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Attach a single handler to the package logger.

    Calling again replaces the previous handler, so the level is whatever
    the caller passed last.

    Args:
        level: DEBUG, INFO, WARNING or ERROR
        fmt: "text" or "json"
        stream: Output stream (default: stdout)

    Returns:
        The package logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    package_logger = logging.getLogger(ROOT_LOGGER)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter() if fmt.lower() == "json" else TextFormatter())

    package_logger.addHandler(handler)
    package_logger.setLevel(log_level)
    return package_logger
