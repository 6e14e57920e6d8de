"""
Structured logging for the erasearch engine.

Configured through structlog: human-readable console output in development,
JSON lines in production, with an optional rotating log file. Every optimizer
run binds its optimization id as the correlation id so all log lines emitted
by one search can be grepped together.
"""

import contextvars
import logging
import logging.handlers
import sys
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Optional

import structlog


class CorrelationContext:
    """Correlation ID tracking backed by contextvars.

    Safe across threads and asyncio tasks: worker threads started through
    ``asyncio.to_thread`` inherit the id of the run that spawned them.
    """

    def __init__(self):
        self._context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
            "erasearch_correlation_id", default=None
        )

    def get_correlation_id(self) -> Optional[str]:
        """Get current correlation ID."""
        return self._context.get()

    def generate_correlation_id(self) -> str:
        """Generate a new correlation ID."""
        return str(uuid.uuid4())

    @contextmanager
    def correlation_context(self, correlation_id: Optional[str] = None):
        """Context manager for correlation ID tracking."""
        if correlation_id is None:
            correlation_id = self.generate_correlation_id()

        token = self._context.set(correlation_id)
        try:
            yield correlation_id
        finally:
            self._context.reset(token)


# Global correlation context
correlation_context = CorrelationContext()


def _add_correlation_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add correlation ID to event dict."""
    correlation_id = correlation_context.get_correlation_id()
    if correlation_id is not None:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


def setup_logging(
    environment: str = "development",
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        environment: Environment (development, staging, production)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Log file path (None for stdout only)
        max_bytes: Maximum bytes per log file before rotation
        backup_count: Number of backup files to keep
    """
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_correlation_id,
    ]

    if environment == "production":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, log_level.upper())
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )

    logging.basicConfig(format="%(message)s", level=level, handlers=handlers, force=True)


def setup_logging_from_settings(settings: Any) -> None:
    """Configure logging from an :class:`~erasearch.core.config.OptimizationSettings`."""
    setup_logging(
        environment=settings.environment,
        log_level=settings.log_level,
        log_file=settings.log_file,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structured logger with correlation ID support
    """
    return structlog.get_logger(name)


# Initialize default logging configuration
setup_logging()
