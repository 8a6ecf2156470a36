"""
Client side of inline editing: page model, remote call client and controller.
"""

from .ajax import AjaxClient, AjaxError
from .controller import InlineEditingController, parse_trigger_id
from .notification import LoggingNotifier, Notifier
from .page import DiscussionPage
from .session import InlineFormSession, Mode

__all__ = [
    "AjaxClient",
    "AjaxError",
    "InlineEditingController",
    "parse_trigger_id",
    "LoggingNotifier",
    "Notifier",
    "DiscussionPage",
    "InlineFormSession",
    "Mode",
]
