"""
Structured logging for posinglib application.

All modules log through structlog with snake_case event names and keyword
context. Development runs get the human-readable console renderer, every
other environment writes one JSON object per line to stderr. The signed-in
user and app id are bound once per Streamlit run with
``bind_session_context`` and merged into every event of that run.
"""

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

DEVELOPMENT_ENVIRONMENTS = ("development", "dev", "local")


def get_log_level() -> int:
    """Level named by ``LOG_LEVEL``; unknown names fall back to INFO."""
    return LOG_LEVELS.get(os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)


def is_development_environment() -> bool:
    return os.getenv("ENVIRONMENT", "development").lower() in DEVELOPMENT_ENVIRONMENTS


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure_structured_logging(level: int | None = None, json_output: bool | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level, defaults to ``LOG_LEVEL``
        json_output: Force JSON (True) or console (False) rendering; defaults
            to console in development environments only
    """
    log_level = level if level is not None else get_log_level()
    if json_output is None:
        json_output = not is_development_environment()

    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr)
    logging.getLogger().setLevel(log_level)

    renderer: Any
    if json_output:
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*_shared_processors(), renderer],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    get_logger("posinglib.logging").info(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        renderer="json" if json_output else "console",
    )


def get_logger(name: str | None = None) -> Any:
    """Structured logger, named after the calling module by convention."""
    return structlog.get_logger(name)


def bind_session_context(user_id: str | None, app_id: str | None = None) -> None:
    """Attach the signed-in user to every event logged in the current run."""
    structlog.contextvars.clear_contextvars()
    context = {"session_user_id": user_id}
    if app_id:
        context["app_id"] = app_id
    structlog.contextvars.bind_contextvars(**context)


def clear_session_context() -> None:
    structlog.contextvars.clear_contextvars()


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """
    Record how long an operation took.

    Args:
        operation: Name of the operation, e.g. ``normalize_image``
        duration: Duration in seconds
        **context: Sizes, counts and other measurements
    """
    get_logger("posinglib.performance").info(
        "performance_metric", operation=operation, duration_ms=round(duration * 1000, 1), **context
    )


def log_user_action(user_id: str, action: str, **context: Any) -> None:
    """Audit trail entry for a store write or sign-in."""
    get_logger("posinglib.audit").info("user_action", user_id=user_id, action=action, **context)


def log_error(error: BaseException, context: dict[str, Any] | None = None) -> None:
    """
    Log an exception with its type, message and any extra context.

    The traceback is attached only when the exception was actually raised.
    """
    fields: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **(context or {}),
    }
    if error.__traceback__ is not None:
        fields["exc_info"] = error
    get_logger("posinglib.errors").error("error_occurred", **fields)


def log_security_event(event_type: str, user_id: str | None = None, **context: Any) -> None:
    """Sign-in failures and other identity events, logged at warning level."""
    get_logger("posinglib.security").warning("security_event", event_type=event_type, user_id=user_id, **context)
