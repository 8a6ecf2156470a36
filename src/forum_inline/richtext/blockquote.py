"""
Blockquote operations for the rich-text editor.

Both operations are pure: they take the editable root and a caret or
selection snapshot and return a new root plus the caret to restore, or None
when nothing should happen.

- wrap_selection_in_quote: surround the selected blocks with a quotation
- split_quote_on_enter: break a quotation in two at the caret so typing can
  continue outside of it
- remove_empty_quotes: drop quotations without any visible text
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import structlog

from .selection import Caret, Selection
from .tree import (
    Element,
    Node,
    Path,
    Text,
    contains_text,
    first_element_child,
    insert_at,
    last_element_child,
    locate,
    nearest_ancestor,
    node_at,
    replace_at,
)

logger = structlog.get_logger(__name__)

QUOTE_TAG = "blockquote"

# Blocks that are pulled into the selection as a whole
PARAGRAPH_TAGS = frozenset({"p", "h1", "h2", "h3", "h4", "h5", "h6", "pre"})

NBSP = "\xa0"


@dataclass(frozen=True)
class QuoteEdit:
    """Result of a quote operation: the new tree and where the caret goes."""

    root: Element
    caret: Caret


# ============================================================================
# TREE SPLITTING
# ============================================================================

def split_tree(element: Element, caret: Caret) -> Tuple[Element, Element]:
    """
    Split an element in two at a caret.

    The ancestor chain of the caret is kept on both sides: the first result
    holds everything before the caret, the second everything after it.
    Empty text fragments produced by the split are dropped.

    Args:
        element: Element to split
        caret: Split point, with a path relative to ``element``

    Returns:
        (before, after) elements
    """
    before, after = _split(element, caret.path, caret.offset)
    return before[0], after[0]


def _split(node: Node, path: Path, offset: int) -> Tuple[Tuple[Node, ...], Tuple[Node, ...]]:
    if not path:
        if isinstance(node, Text):
            return _text_piece(node.value[:offset]), _text_piece(node.value[offset:])
        return (
            (node.with_children(node.children[:offset]),),
            (node.with_children(node.children[offset:]),),
        )

    index = path[0]
    children = node.children
    before_nodes, after_nodes = _split(children[index], path[1:], offset)
    return (
        (node.with_children(children[:index] + before_nodes),),
        (node.with_children(after_nodes + children[index + 1:]),),
    )


def _text_piece(value: str) -> Tuple[Node, ...]:
    return (Text(value),) if value else ()


def _extract(element: Element, start: Path, end: Path) -> Tuple[Element, Tuple[Node, ...], Path]:
    """
    Cut the content between two boundary points out of ``element``.

    A boundary point is a path whose last item is a child position inside
    the element addressed by the preceding items. Partially covered nodes
    are split, keeping the uncovered part in place.

    Returns:
        (remaining element, extracted nodes, boundary where the range collapses)
    """
    children = element.children
    s0, e0 = start[0], end[0]

    if len(start) > 1 and len(end) > 1 and s0 == e0:
        kept, extracted, collapse = _extract(children[s0], start[1:], end[1:])
        return (
            element.with_children(children[:s0] + (kept,) + children[s0 + 1:]),
            extracted,
            (s0,) + collapse,
        )

    kept_before = children[:s0]
    extracted: List[Node] = []
    collapse: Path = (s0,)
    middle = s0

    if len(start) > 1:
        left_keep, left_cut = _split(children[s0], start[1:-1], start[-1])
        kept_before = kept_before + left_keep
        extracted.extend(left_cut)
        collapse = (s0 + 1,)
        middle = s0 + 1

    extracted.extend(children[middle:e0])

    if len(end) > 1:
        right_cut, right_keep = _split(children[e0], end[1:-1], end[-1])
        extracted.extend(right_cut)
        kept_after = right_keep + children[e0 + 1:]
    else:
        kept_after = children[e0:]

    return element.with_children(kept_before + kept_after), tuple(extracted), collapse


# ============================================================================
# OPERATIONS
# ============================================================================

def remove_empty_quotes(root: Element) -> Element:
    """Remove every quotation that holds no non-whitespace text."""
    return _prune_quotes(root)


def _prune_quotes(element: Element) -> Element:
    children: List[Node] = []
    changed = False
    for child in element.children:
        if isinstance(child, Element):
            if child.tag == QUOTE_TAG and not contains_text(child):
                changed = True
                continue
            pruned = _prune_quotes(child)
            changed = changed or pruned is not child
            children.append(pruned)
        else:
            children.append(child)
    return element.with_children(children) if changed else element


def _block_boundary(root: Element, path: Path) -> Path:
    block = nearest_ancestor(root, path, PARAGRAPH_TAGS)
    return block if block is not None else path


def wrap_selection_in_quote(root: Element, selection: Optional[Selection]) -> Optional[QuoteEdit]:
    """
    Surround the current selection with a quotation block.

    Selection boundaries inside a paragraph-level block are widened to the
    whole block; a boundary sitting on the root itself is replaced by the
    first (start) or last (end) element child. The covered content is moved
    into a new ``<blockquote>`` inserted where the range collapses, the caret
    goes back to its original node and offset, and empty quotations left
    anywhere in the document are removed.

    Args:
        root: Editable root element
        selection: Current selection, or None when nothing is selected

    Returns:
        QuoteEdit, or None when the selection cannot be wrapped
    """
    if selection is None:
        return None

    original = node_at(root, selection.start.path)
    if original is None or node_at(root, selection.end.path) is None:
        logger.debug("quote_wrap_skipped", reason="selection_outside_editor")
        return None

    start_path = _block_boundary(root, selection.start.path)
    end_path = _block_boundary(root, selection.end.path)

    if not start_path:
        index = first_element_child(root)
        if index is None:
            return None
        start_path = (index,)
    if not end_path:
        index = last_element_child(root)
        if index is None:
            return None
        end_path = (index,)

    # Range starts before the start node and ends after the end node
    range_start = start_path
    range_end = end_path[:-1] + (end_path[-1] + 1,)
    if range_start >= range_end:
        logger.debug("quote_wrap_skipped", reason="empty_range")
        return None

    remaining, extracted, collapse = _extract(root, range_start, range_end)
    quote = Element(QUOTE_TAG, (), extracted)
    wrapped = remove_empty_quotes(insert_at(remaining, collapse[:-1], collapse[-1], (quote,)))

    if not selection.start.path:
        caret = selection.start
    else:
        caret = _restore_caret(wrapped, remaining, collapse, original, selection.start)

    logger.debug("quote_wrapped", nodes=len(extracted))
    return QuoteEdit(wrapped, caret)


def _restore_caret(wrapped: Element, remaining: Element, collapse: Path, original: Node, start: Caret) -> Caret:
    path = locate(wrapped, original)
    if path is not None:
        return Caret(path, start.offset)

    # The start element held the end boundary and was split; its kept half
    # sits right after the collapse point, first child at every level below.
    kept_path = collapse + (0,) * (len(start.path) - len(collapse))
    kept = node_at(remaining, kept_path)
    if isinstance(kept, Element) and isinstance(original, Element) and kept.tag == original.tag:
        path = locate(wrapped, kept)
        if path is not None:
            return Caret(path, min(start.offset, len(kept.children)))
    return Caret((), 0)


def split_quote_on_enter(root: Element, caret: Optional[Caret], shift: bool = False) -> Optional[QuoteEdit]:
    """
    Split the quotation around the caret into two on Enter.

    Shift+Enter is never intercepted, nor is a caret whose parent is the
    editable root or that sits outside any quotation. Otherwise the
    quotation becomes a before-caret and an after-caret copy with an empty
    paragraph between them; the caret moves into that paragraph and a copy
    without text is dropped.

    Args:
        root: Editable root element
        caret: Caret snapshot
        shift: Whether Shift was held

    Returns:
        QuoteEdit, or None when the key press should keep its default action
    """
    if shift or caret is None:
        return None

    container = node_at(root, caret.path)
    if container is None:
        return None

    parent_path = caret.path[:-1] if isinstance(container, Text) else caret.path
    if not parent_path:
        return None

    if isinstance(container, Element) and container.tag == QUOTE_TAG:
        quote_path: Optional[Path] = caret.path
    else:
        quote_path = nearest_ancestor(root, caret.path, (QUOTE_TAG,))
    if quote_path is None:
        return None

    quote = node_at(root, quote_path)
    relative = Caret(caret.path[len(quote_path):], caret.offset)
    before, after = split_tree(quote, relative)

    keep_before = contains_text(before)
    keep_after = contains_text(after)
    paragraph = Element("p", (), (Text(NBSP),))

    replacement: List[Node] = []
    if keep_before:
        replacement.append(before)
    replacement.append(paragraph)
    if keep_after:
        replacement.append(after)

    new_root = replace_at(root, quote_path, replacement)
    paragraph_path = quote_path[:-1] + (quote_path[-1] + (1 if keep_before else 0),)

    logger.debug("quote_split", kept_before=keep_before, kept_after=keep_after)
    return QuoteEdit(new_root, Caret(paragraph_path, 0))
