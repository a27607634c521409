"""Centralized logging configuration for the sync engine."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

import structlog

from deltasync.models.config import LoggingConfig

# HTTP client libraries log every request at INFO; one line per batch attempt
# is already emitted by the coordinator
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    log_file: str | None = None,
) -> None:
    """
    Configure structured logging for sync runs.

    Records carry the level, logger name, an ISO UTC timestamp and the call
    site. Context bound with ``structlog.contextvars`` (the coordinator binds
    ``batch_index`` while a batch is in flight) is merged into every record,
    so retry warnings can be traced back to their batch.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON logs. If False, use console format.
        log_file: Optional path to log file. If None, logs only to stdout.

    Example:
        >>> configure_logging(log_level="DEBUG", json_logs=False)
        >>> log = structlog.stdlib.get_logger()
        >>> log.info("sync_started", pending_count=3)
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # Replace handlers left by a previous run in the same process
    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        stream=sys.stdout,
        force=True,
    )

    if log_file:
        # Max size: 10MB, keep 5 backup files
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        file_handler.setLevel(numeric_level)
        logging.root.addHandler(file_handler)

    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    processors: list[Any] = [
        # Bound batch/run context
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        # Call site (file, line, function)
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ],
        ),
    ]

    if json_logs:
        # One JSON object per line for scheduled runs
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_config(config: LoggingConfig) -> None:
    """Configure logging from the ``logging`` section of the app config."""
    configure_logging(
        log_level=config.log_level,
        json_logs=config.json_logs,
        log_file=config.log_file,
    )
