"""State of the inline form on a discussion page."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Mode(str, Enum):
    NONE = "none"
    REPLY = "reply"
    EDIT = "edit"


@dataclass
class InlineFormSession:
    """
    What the inline form is currently doing.

    Attributes:
        mode: none, reply (quoting is a reply with ``quote`` set) or edit
        quote: Whether the reply quotes its parent
        active_post_id: Post the form is attached to, 0 when idle
        draft_id: Draft item id of the form's editor, kept for the page's lifetime
        highlighted_link: Id of the trigger link marked as selected
        hidden_post_id: Post hidden while it is being edited
        draft_has_copies: The draft area holds files copied from a quoted or edited post
        pending: A remote call is in flight
    """

    mode: Mode = Mode.NONE
    quote: bool = False
    active_post_id: int = 0
    draft_id: int = 0
    highlighted_link: Optional[str] = None
    hidden_post_id: Optional[int] = None
    draft_has_copies: bool = False
    pending: bool = False

    @property
    def active(self) -> bool:
        return self.mode is not Mode.NONE

    def reset(self) -> None:
        """Back to idle; the draft id stays with the page."""
        self.mode = Mode.NONE
        self.quote = False
        self.active_post_id = 0
        self.highlighted_link = None
        self.hidden_post_id = None
