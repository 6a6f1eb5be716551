"""
Module: logger.py
Description: Structured logging configuration for the SQS poller.

Configures structlog for JSON output suitable for CloudWatch Logs.
Every module logs through get_logger(__name__) with keyword context
(queue_url, receipt_handle, receive_count, ...).

Key Components:
- JSON output with timestamp and level processors
- Level filtering driven by PollerSettings.log_level
- configure_logging() to re-apply the level at runtime
- get_logger() helper function

Dependencies: structlog, logging, datetime
"""

import logging
import structlog
from datetime import datetime, timezone


def _add_timestamp(logger, method_name, event_dict):
    """
    Add ISO 8601 timestamp to log entries.

    Args:
        logger: Logger instance
        method_name: Log method name (info, error, etc.)
        event_dict: Current log event dictionary

    Returns:
        Updated event dictionary with timestamp
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


def _add_log_level(logger, method_name, event_dict):
    """Add upper-cased log level to the event dictionary."""
    event_dict["level"] = method_name.upper()
    return event_dict


def configure_logging(level: str = "INFO") -> None:
    """
    Configure structlog for JSON output at the given level.

    Loggers already handed out by get_logger() pick up the new
    configuration on their next call.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Raises:
        ValueError: If level is not a known logging level name
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    structlog.configure(
        processors=[
            _add_timestamp,
            _add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.WriteLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        # Must stay False so configure_logging() can change the level later
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Batch complete", received=10, successful=9)
        {"received": 10, "successful": 9, "event": "Batch complete", "timestamp": "...", "level": "INFO"}
    """
    return structlog.get_logger(name)
