"""
Where the controller reports failed remote calls.
"""

from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


class Notifier(Protocol):
    def exception(self, error: Exception) -> None: ...


class LoggingNotifier:
    """Reports failures as log events."""

    def exception(self, error: Exception) -> None:
        logger.warning(
            "inline_remote_call_failed",
            error=str(error),
            error_type=type(error).__name__,
            errorcode=getattr(error, "errorcode", None),
        )
