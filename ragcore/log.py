"""Structured logging setup."""
import logging

import structlog

from ragcore import config


def configure_logging(level: str = None) -> None:
    """Configure structlog with JSON output on top of stdlib logging.

    Args:
        level: Log level name (default from config)
    """
    level = (level or config.LOG_LEVEL).upper()
    logging.basicConfig(format="%(message)s", level=level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
