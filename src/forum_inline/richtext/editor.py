"""
Editor host and the blockquote toolbar plugin.

EditorHost is the editable area a plugin attaches to: it owns the node tree
and the current selection, keeps the toolbar buttons and dispatches key
presses to registered listeners.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import structlog

from .blockquote import QuoteEdit, split_quote_on_enter, wrap_selection_in_quote
from .selection import Caret, Selection
from .tree import Element, inner_html, parse_fragment

logger = structlog.get_logger(__name__)


@dataclass
class KeyEvent:
    key: str
    shift: bool = False
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True


@dataclass
class ToolbarButton:
    name: str
    icon: str
    title: str
    callback: Callable[["EditorHost"], bool]


KeyListener = Callable[["EditorHost", KeyEvent], None]


@dataclass
class EditorHost:
    """
    An editable rich-text area.

    Attributes:
        root: Editable root element
        selection: Current selection, None when the editor has none
        focused: Whether the editor holds the focus
    """

    root: Element = field(default_factory=lambda: parse_fragment(""))
    selection: Optional[Selection] = None
    focused: bool = False
    buttons: Dict[str, ToolbarButton] = field(default_factory=dict)
    key_listeners: Dict[str, List[KeyListener]] = field(default_factory=dict)

    @classmethod
    def from_html(cls, html: str) -> "EditorHost":
        return cls(root=parse_fragment(html))

    @property
    def html(self) -> str:
        return inner_html(self.root)

    def set_html(self, html: str) -> None:
        """Replace the content; the old selection no longer applies."""
        self.root = parse_fragment(html)
        self.selection = None

    def get_selection(self) -> Optional[Selection]:
        return self.selection

    def set_selection(self, selection: Optional[Selection]) -> None:
        self.selection = selection

    def focus_end(self) -> None:
        """Focus the editor with the caret after the last child."""
        self.focused = True
        self.selection = Selection.at(Caret((), len(self.root.children)))

    def apply(self, edit: QuoteEdit) -> None:
        self.root = edit.root
        self.selection = Selection.at(edit.caret)

    def add_button(self, name: str, icon: str, title: str, callback: Callable[["EditorHost"], bool]) -> None:
        self.buttons[name] = ToolbarButton(name=name, icon=icon, title=title, callback=callback)

    def on_key(self, key: str, listener: KeyListener) -> None:
        self.key_listeners.setdefault(key, []).append(listener)

    def click_button(self, name: str) -> bool:
        """
        Run a toolbar button.

        Returns:
            True when the button changed the content
        """
        button = self.buttons.get(name)
        if button is None:
            logger.warning("editor_button_unknown", button=name)
            return False
        return button.callback(self)

    def press_key(self, key: str, shift: bool = False) -> KeyEvent:
        event = KeyEvent(key=key, shift=shift)
        for listener in self.key_listeners.get(key, []):
            listener(self, event)
        return event


class BlockquotePlugin:
    """Toolbar button that quotes the selection, plus Enter handling inside quotes."""

    name = "blockquote"
    icon = "e/cite"
    title = "quote"

    def register(self, host: EditorHost) -> None:
        host.add_button(self.name, icon=self.icon, title=self.title, callback=self.add_blockquote)
        host.on_key("enter", self.handle_enter)

    def add_blockquote(self, host: EditorHost) -> bool:
        edit = wrap_selection_in_quote(host.root, host.get_selection())
        if edit is None:
            return False
        host.apply(edit)
        return True

    def handle_enter(self, host: EditorHost, event: KeyEvent) -> None:
        # Shift+Enter only inserts a line break
        if event.shift:
            return

        selection = host.get_selection()
        caret = selection.start if selection is not None else None
        edit = split_quote_on_enter(host.root, caret, shift=event.shift)
        if edit is None:
            return

        event.prevent_default()
        host.apply(edit)
        host.focused = True


def create_editor(html: str = "") -> EditorHost:
    """Editor host with the blockquote plugin registered."""
    host = EditorHost.from_html(html)
    BlockquotePlugin().register(host)
    return host
