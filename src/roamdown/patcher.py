"""Apply link rewrites to org backing files in place.

Each file is read whole and written back whole with a single write. There is
no temp-file-and-rename step and no backup; the CLI confirmation prompt is the
only safeguard.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from roamdown.errors import FileIoError
from roamdown.links import count_links, dangling_ids, rewrite_links

if TYPE_CHECKING:
    from roamdown.index import NodeIndex
    from roamdown.models import Node

logger = logging.getLogger("roamdown.patcher")


def _read(path: Path) -> str:
    # newline="" keeps CRLF and lone CR line endings byte-for-byte
    try:
        with path.open(encoding="utf-8", newline="") as f:
            return f.read()
    except (OSError, UnicodeError) as exc:
        raise FileIoError(path, "read") from exc


def _write(path: Path, text: str) -> None:
    try:
        with path.open("w", encoding="utf-8", newline="") as f:
            f.write(text)
    except (OSError, UnicodeError) as exc:
        raise FileIoError(path, "write") from exc


async def patch_file(path: Path | str, index: NodeIndex) -> bool:
    """Rewrite id links in path. Returns True if the file content changed."""
    path = Path(path)
    original = await asyncio.to_thread(_read, path)
    patched = rewrite_links(original, index, path)
    if patched == original:
        return False
    await asyncio.to_thread(_write, path, patched)
    logger.info("patched links in %s", path)
    return True


async def patch_node(node: Node, index: NodeIndex) -> bool:
    return await patch_file(node.path, index)


@dataclass
class FilePlan:
    """What a patch of one file would do."""

    path: Path
    links: int = 0
    dangling: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.dangling


def plan_file(path: Path | str, index: NodeIndex) -> FilePlan:
    """Inspect path without writing: count links and collect dangling ids."""
    path = Path(path)
    text = _read(path)
    return FilePlan(path=path, links=count_links(text), dangling=dangling_ids(text, index))
