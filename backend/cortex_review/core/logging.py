"""Structured logging configuration."""
import logging
from typing import Any, Optional

import structlog

from cortex_review.core.errors import BaseServiceError, ErrorCategory

# Log level per error category
_CATEGORY_LEVELS = {
    ErrorCategory.TRANSIENT: "warning",
    ErrorCategory.PERMANENT: "error",
    ErrorCategory.DEGRADED: "warning",
}


def configure_logging(settings: Any) -> None:
    """
    Configure structlog for the process.

    Debug mode renders to the console at DEBUG level; otherwise one JSON
    object per line at INFO level. Request-scoped values bound with
    ``structlog.contextvars`` (the request id) are merged into every event.
    """
    if settings.debug:
        renderer = structlog.dev.ConsoleRenderer()
        level = logging.DEBUG
    else:
        renderer = structlog.processors.JSONRenderer()
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    """Get a structured logger."""
    return structlog.get_logger(name)


def log_error(
    logger: structlog.BoundLogger,
    error: BaseServiceError,
    additional_context: Optional[dict[str, Any]] = None,
) -> None:
    """
    서비스 에러를 카테고리별 레벨로 기록.

    Emits ``error_<category>`` with the error's context, then the wrapped
    exception (if any) at debug level.
    """
    context = {**error.to_dict(), **(additional_context or {})}
    emit = getattr(logger, _CATEGORY_LEVELS[error.category])
    emit(f"error_{error.category.value}", **context)

    if error.original_error is not None:
        logger.debug(
            "error_original_exception",
            **context,
            original_type=type(error.original_error).__name__,
            original=str(error.original_error),
        )
