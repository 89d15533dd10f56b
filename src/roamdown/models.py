"""Data models for org-roam nodes."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Replacement for "/" in titles so a title never becomes a nested path.
_SLASH_SUBSTITUTE = " over "


def clean_title(title: str) -> str:
    """Strip quotes and replace slashes so the title is usable as a filename."""
    return title.replace('"', "").replace("/", _SLASH_SUBSTITUTE)


def clean_value(value: str) -> str:
    """Strip quotes from an id or path (org-roam stores them as Lisp strings)."""
    return value.replace('"', "")


@dataclass(frozen=True)
class Node:
    """One row of the org-roam ``nodes`` table."""

    id: str
    file: str
    level: int          # 0 = file-level node, >0 = heading inside the file
    title: str

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> Node:
        """Build a sanitized node from an ``(id, file, level, title)`` row."""
        node_id, file, level, title = row
        return cls(
            id=str(node_id),
            file=str(file),
            level=int(level or 0),
            title=str(title),
        ).cleaned()

    def cleaned(self) -> Node:
        """Return a copy with quotes stripped and slashes in the title replaced."""
        return Node(
            id=clean_value(self.id),
            file=clean_value(self.file),
            level=self.level,
            title=clean_title(self.title),
        )

    @property
    def path(self) -> Path:
        return Path(self.file)

    @property
    def is_file_node(self) -> bool:
        """True when the node is the whole file rather than a subtree."""
        return self.level == 0

    @property
    def export_filename(self) -> str:
        return f"{self.title}.md"

    @property
    def link_target(self) -> str:
        """Relative link to this node's export, spaces percent-encoded."""
        return "./" + self.export_filename.replace(" ", "%20")
