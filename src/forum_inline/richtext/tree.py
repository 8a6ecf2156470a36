"""
Immutable HTML node tree used by the rich-text editing operations.

Nodes are frozen dataclasses. Every edit returns a new tree that shares the
untouched subtrees with its input, so a node can be followed across edits by
identity (see :func:`locate`).

Markup is parsed with BeautifulSoup and serialised back by :func:`to_html`.
"""

import html as html_module
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

VOID_TAGS = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img",
        "input", "link", "meta", "source", "track", "wbr",
    }
)


@dataclass(frozen=True)
class Text:
    """A text node."""

    value: str


@dataclass(frozen=True)
class Element:
    """
    An element node.

    Attributes:
        tag: Lower-case tag name
        attrs: Attribute (name, value) pairs in source order
        children: Child nodes
    """

    tag: str
    attrs: Tuple[Tuple[str, str], ...] = ()
    children: Tuple["Node", ...] = ()

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        for key, value in self.attrs:
            if key == name:
                return value
        return default

    def has_class(self, name: str) -> bool:
        return name in (self.get("class") or "").split()

    def with_children(self, children: Iterable["Node"]) -> "Element":
        return replace(self, children=tuple(children))


Node = Union[Text, Element]
Path = Tuple[int, ...]


# ============================================================================
# PARSING / SERIALISATION
# ============================================================================

def parse_fragment(html: str, root_tag: str = "div") -> Element:
    """
    Parse an HTML fragment into a tree rooted at a synthetic element.

    Args:
        html: Markup to parse (may be empty)
        root_tag: Tag of the synthetic root element

    Returns:
        Root element whose children are the fragment's top-level nodes
    """
    soup = BeautifulSoup(html or "", "html.parser")
    return Element(root_tag, (), tuple(_convert_children(soup)))


def _convert_children(parent: Tag) -> Iterator[Node]:
    for child in parent.children:
        node = _convert(child)
        if node is not None:
            yield node


def _convert(node) -> Optional[Node]:
    # Comments, doctypes and CDATA sections are all PreformattedString
    if isinstance(node, PreformattedString):
        return None
    if isinstance(node, NavigableString):
        return Text(str(node))
    if isinstance(node, Tag):
        attrs = tuple(
            (key, " ".join(value) if isinstance(value, list) else (value or ""))
            for key, value in node.attrs.items()
        )
        return Element(node.name, attrs, tuple(_convert_children(node)))
    return None


def to_html(node: Node) -> str:
    """Serialise a node (and its subtree) to markup."""
    if isinstance(node, Text):
        return html_module.escape(node.value, quote=False)

    attrs = "".join(
        f' {key}="{html_module.escape(value, quote=True)}"' for key, value in node.attrs
    )
    if node.tag in VOID_TAGS:
        return f"<{node.tag}{attrs}>"
    return f"<{node.tag}{attrs}>{inner_html(node)}</{node.tag}>"


def inner_html(element: Element) -> str:
    """Serialise the children of an element."""
    return "".join(to_html(child) for child in element.children)


# ============================================================================
# NAVIGATION
# ============================================================================

def node_at(root: Element, path: Sequence[int]) -> Optional[Node]:
    """
    Resolve a path to a node.

    Returns:
        The node, or None when the path does not exist in the tree
    """
    node: Node = root
    for index in path:
        if not isinstance(node, Element) or not 0 <= index < len(node.children):
            return None
        node = node.children[index]
    return node


def iter_nodes(root: Element) -> Iterator[Tuple[Path, Node]]:
    """Yield (path, node) pairs in document order, root included."""
    stack: List[Tuple[Path, Node]] = [((), root)]
    while stack:
        path, node = stack.pop()
        yield path, node
        if isinstance(node, Element):
            for index in range(len(node.children) - 1, -1, -1):
                stack.append((path + (index,), node.children[index]))


def find_paths(root: Element, predicate: Callable[[Node], bool]) -> List[Path]:
    """Paths of every descendant of ``root`` matching ``predicate``."""
    return [path for path, node in iter_nodes(root) if path and predicate(node)]


def locate(root: Element, target: Node) -> Optional[Path]:
    """Path of ``target`` by identity, or None when it is not in the tree."""
    for path, node in iter_nodes(root):
        if node is target:
            return path
    return None


def ancestor_paths(path: Path) -> Iterator[Path]:
    """Proper ancestors of ``path``, nearest first, ending with the root."""
    for depth in range(len(path) - 1, -1, -1):
        yield path[:depth]


def nearest_ancestor(root: Element, path: Path, tags: Iterable[str]) -> Optional[Path]:
    """
    Find the nearest proper ancestor with one of ``tags``.

    The root itself is never returned: it stands for the editable area, not
    for content inside it.
    """
    wanted = frozenset(tags)
    for candidate in ancestor_paths(path):
        if not candidate:
            return None
        node = node_at(root, candidate)
        if isinstance(node, Element) and node.tag in wanted:
            return candidate
    return None


def first_element_child(element: Element) -> Optional[int]:
    for index, child in enumerate(element.children):
        if isinstance(child, Element):
            return index
    return None


def last_element_child(element: Element) -> Optional[int]:
    for index in range(len(element.children) - 1, -1, -1):
        if isinstance(element.children[index], Element):
            return index
    return None


# ============================================================================
# CONTENT
# ============================================================================

def contains_text(node: Node) -> bool:
    """Whether the subtree holds at least one text node with non-whitespace content."""
    if isinstance(node, Text):
        return bool(node.value.strip())
    return any(contains_text(child) for child in node.children)


def text_content(node: Node) -> str:
    if isinstance(node, Text):
        return node.value
    return "".join(text_content(child) for child in node.children)


# ============================================================================
# EDITING
# ============================================================================

def replace_at(root: Element, path: Path, nodes: Sequence[Node]) -> Element:
    """
    Replace the node at ``path`` with zero or more nodes.

    Args:
        root: Tree to edit
        path: Non-empty path of the node to replace
        nodes: Replacement nodes, spliced in place

    Returns:
        New root
    """
    if not path:
        raise ValueError("Cannot replace the root element")
    return _splice(root, path[:-1], path[-1], path[-1] + 1, tuple(nodes))


def remove_at(root: Element, path: Path) -> Element:
    return replace_at(root, path, ())


def insert_at(root: Element, parent: Path, index: int, nodes: Sequence[Node]) -> Element:
    """Insert ``nodes`` as children of the element at ``parent`` before position ``index``."""
    return _splice(root, parent, index, index, tuple(nodes))


def _splice(element: Element, parent: Path, start: int, stop: int, nodes: Tuple[Node, ...]) -> Element:
    if not parent:
        children = element.children
        return element.with_children(children[:start] + nodes + children[stop:])

    index = parent[0]
    child = element.children[index]
    if not isinstance(child, Element):
        raise ValueError(f"Path leads through a text node at index {index}")
    new_child = _splice(child, parent[1:], start, stop, nodes)
    children = element.children
    return element.with_children(children[:index] + (new_child,) + children[index + 1:])
