"""In-memory node index keyed by org-roam id.

Built once from the ``nodes`` table and read-only afterwards; both the patch
pass and the export pass share the same instance.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from roamdown.errors import LinkResolutionError
from roamdown.models import Node

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class NodeIndex:
    """Sanitized nodes keyed by id, in insertion order."""

    def __init__(self, nodes: dict[str, Node] | None = None) -> None:
        self._nodes: dict[str, Node] = dict(nodes or {})

    @classmethod
    def build(cls, rows: Iterable[Node | tuple[Any, ...]]) -> NodeIndex:
        """Sanitize every row and key it by id. Later duplicates win."""
        nodes: dict[str, Node] = {}
        for row in rows:
            node = row.cleaned() if isinstance(row, Node) else Node.from_row(row)
            nodes[node.id] = node
        return cls(nodes)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def resolve(self, node_id: str, source_file: Path | str) -> Node:
        """Return the node for node_id or raise LinkResolutionError."""
        node = self._nodes.get(node_id)
        if node is None:
            raise LinkResolutionError(node_id, source_file)
        return node

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def files(self) -> list[Path]:
        """Distinct backing files, in the order their first node appears."""
        seen: dict[str, Path] = {}
        for node in self._nodes.values():
            seen.setdefault(node.file, node.path)
        return list(seen.values())

    def title_collisions(self) -> dict[str, list[Node]]:
        """Export filenames claimed by more than one node."""
        by_name: dict[str, list[Node]] = {}
        for node in self._nodes.values():
            by_name.setdefault(node.export_filename, []).append(node)
        return {name: group for name, group in by_name.items() if len(group) > 1}
