"""
Caret and selection value types.

A caret is a (container path, offset) pair snapshotted from the editor. The
offset counts characters when the container is a text node and child
positions when it is an element.
"""

from dataclasses import dataclass

from .tree import Path


@dataclass(frozen=True)
class Caret:
    path: Path
    offset: int = 0


@dataclass(frozen=True)
class Selection:
    """A selection range between two carets."""

    start: Caret
    end: Caret

    @property
    def collapsed(self) -> bool:
        return self.start == self.end

    @classmethod
    def at(cls, caret: Caret) -> "Selection":
        """Collapsed selection at ``caret``."""
        return cls(caret, caret)
