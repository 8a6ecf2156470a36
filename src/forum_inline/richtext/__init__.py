# Rich-text tree and blockquote editing

from .tree import (
    Element,
    Node,
    Path,
    Text,
    contains_text,
    inner_html,
    parse_fragment,
    to_html,
)
from .selection import Caret, Selection
from .blockquote import (
    QuoteEdit,
    remove_empty_quotes,
    split_quote_on_enter,
    split_tree,
    wrap_selection_in_quote,
)
from .editor import BlockquotePlugin, EditorHost, KeyEvent, create_editor

__all__ = [
    "Element",
    "Node",
    "Path",
    "Text",
    "contains_text",
    "inner_html",
    "parse_fragment",
    "to_html",
    "Caret",
    "Selection",
    "QuoteEdit",
    "remove_empty_quotes",
    "split_quote_on_enter",
    "split_tree",
    "wrap_selection_in_quote",
    "BlockquotePlugin",
    "EditorHost",
    "KeyEvent",
    "create_editor",
]
