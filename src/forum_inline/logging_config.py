"""
Structured logging configuration using structlog.

Events are snake_case names with keyword context (post ids, draft item ids,
counts). setup_logging() is called once by the API app and the CLI.
"""

import logging

import structlog

from .config import settings

# Libraries whose own loggers follow the configured level
_LIBRARY_LOGGERS = ("uvicorn", "uvicorn.access", "sqlalchemy.engine", "httpx")


def setup_logging(level: str = None) -> None:
    """
    Configure structlog and the standard library loggers.

    Args:
        level: Log level name, defaults to settings.log_level

    Renders JSON lines when settings.log_json is set, coloured console
    output otherwise.
    """
    level_name = (level or settings.log_level).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(format="%(message)s", level=numeric_level)
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(numeric_level)
    if not settings.database_echo_sql:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            (
                structlog.processors.JSONRenderer()
                if settings.log_json
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_user(user_id: int) -> None:
    """Attach the acting user to every following log event of this context."""
    structlog.contextvars.bind_contextvars(user_id=user_id)
