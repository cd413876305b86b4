"""Structured logging utilities with context management."""

import contextvars
import sys
from typing import Any

from loguru import logger


# Context variables for maintaining request/evaluation context
automation_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar("automation_context", default={})

CONTEXT_KEYS = ("owner_id", "rule_id", "sensor_id")


class LoggingContext:
    """
    Context manager for structured logging with automatic context injection.

    Example:
        with LoggingContext(owner_id="u-1", sensor_id="temp-1"):
            logger.info("Evaluating reading")  # Will include owner_id and sensor_id
    """

    def __init__(self, **context_data):
        """
        Initialize logging context.

        Args:
            **context_data: Key-value pairs to add to logging context
        """
        self.context_data = context_data
        self.token = None

    def __enter__(self):
        """Enter context and set context variables."""
        current = automation_context.get().copy()
        current.update(self.context_data)
        self.token = automation_context.set(current)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context and restore previous context."""
        if self.token:
            automation_context.reset(self.token)


def _context_filter(record) -> bool:
    """Add context variables to log record (values bound by ``logger.contextualize`` win)."""
    extra = record["extra"]
    for key, value in automation_context.get().items():
        extra.setdefault(key, value)
    for key in CONTEXT_KEYS:
        extra.setdefault(key, "-")
    return True


def configure_structured_logging(level: str = "INFO", log_file: str | None = "logs/automation.log"):
    """
    Configure loguru to include context variables in all log messages.

    This should be called once at application startup.
    """
    # Remove default handler
    logger.remove()

    logger.add(
        sink=sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[owner_id]}</cyan>:<cyan>{extra[rule_id]}</cyan>:<cyan>{extra[sensor_id]}</cyan> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        ),
        filter=_context_filter,
        level=level,
        colorize=True,
    )

    if log_file:
        logger.add(
            sink=log_file,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra} | {name}:{function}:{line} | {message}",
            filter=_context_filter,
            level=level,
            rotation="100 MB",
            retention="30 days",
            compression="zip",
            serialize=False,  # Use text format, not JSON (easier to read)
            enqueue=True,
        )
