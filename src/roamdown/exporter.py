"""Export org-roam nodes to Markdown through an external converter.

The default converter is a batch Emacs that opens the node by id and runs
``org-export-to-file``. Emacs re-reads the backing file itself, so exports
must only start after every file has been patched.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from roamdown.errors import ConverterFailureError, ConverterInvocationError

if TYPE_CHECKING:
    from roamdown.config import ConverterConfig
    from roamdown.models import Node

logger = logging.getLogger("roamdown.exporter")


class Converter(Protocol):
    async def convert(self, node: Node, destination: Path) -> None:
        """Write node to destination or raise a converter error."""
        ...


def export_path(target_dir: Path | str, node: Node) -> Path:
    return Path(target_dir) / node.export_filename


def _elisp_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class EmacsConverter:
    """Runs ``emacs --batch`` with org-roam and an org export backend loaded."""

    def __init__(
        self,
        program: str = "emacs",
        init_file: str = "~/.emacs.d/init.el",
        backend: str = "gfm",
        requires: list[str] | None = None,
    ) -> None:
        self.program = program
        self.init_file = init_file
        self.backend = backend
        self.requires = ["ox-gfm"] if requires is None else list(requires)

    @classmethod
    def from_config(cls, cfg: ConverterConfig) -> EmacsConverter:
        return cls(
            program=cfg.program,
            init_file=cfg.init_file,
            backend=cfg.backend,
            requires=cfg.requires,
        )

    def eval_form(self, node: Node, destination: Path) -> str:
        """The elisp form that exports one node."""
        subtree_only = "nil" if node.is_file_node else "t"
        requires = "".join(f"\n (require '{feature})" for feature in self.requires)
        return (
            f"(progn\n (message {_elisp_string('Exporting ' + node.title)}){requires}\n"
            f" (org-roam-node-open (org-roam-node-from-id {_elisp_string(node.id)}))\n"
            f" (org-export-to-file '{self.backend} {_elisp_string(str(destination))} nil {subtree_only}))"
        )

    def command(self, node: Node, destination: Path) -> list[str]:
        return [
            self.program,
            "--batch",
            "-l",
            str(Path(self.init_file).expanduser()),
            "--eval",
            self.eval_form(node, destination),
        ]

    async def convert(self, node: Node, destination: Path) -> None:
        cmd = self.command(node, destination)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ConverterInvocationError(node, str(exc)) from exc

        _stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise ConverterFailureError(
                node,
                proc.returncode if proc.returncode is not None else -1,
                stderr.decode("utf-8", errors="replace"),
            )


async def export_node(node: Node, target_dir: Path | str, converter: Converter) -> bool:
    """Export node unless its destination exists. Returns True if exported."""
    destination = export_path(target_dir, node)
    if destination.exists():
        logger.info("skip %s: %s already exists", node.id, destination)
        return False
    await converter.convert(node, destination)
    logger.info("exported %s -> %s", node.id, destination)
    return True
