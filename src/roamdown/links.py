"""Rewrite org-roam id links into relative Markdown-file links.

    [[id:3F2A-...][Display]]  ->  [[./Target%20Title.md][Display]]

The rewritten form does not match the id-link pattern, so running the
rewrite twice is a no-op.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from roamdown.index import NodeIndex

# [[id:<ID>][<DISPLAY>]]: ID is uppercase letters, digits and dashes
# (org-roam UUIDs are uppercase hex)
_ID_LINK_RE = re.compile(r"\[\[id:([0-9A-Z-]+?)\]\[([^\]]+?)\]\]")


def iter_link_ids(text: str) -> Iterator[str]:
    """Yield the target id of every id link in text, in document order."""
    for m in _ID_LINK_RE.finditer(text):
        yield m.group(1)


def count_links(text: str) -> int:
    return sum(1 for _ in iter_link_ids(text))


def dangling_ids(text: str, index: NodeIndex) -> list[str]:
    """Ids linked from text that the index does not know, deduplicated."""
    return list(dict.fromkeys(i for i in iter_link_ids(text) if i not in index))


def rewrite_links(text: str, index: NodeIndex, source_file: Path | str) -> str:
    """Replace every id link in text with a link to the target's export file.

    Raises LinkResolutionError for the first id missing from the index.
    """

    def _replace(m: re.Match[str]) -> str:
        target = index.resolve(m.group(1), source_file)
        return f"[[{target.link_target}][{m.group(2)}]]"

    return _ID_LINK_RE.sub(_replace, text)
