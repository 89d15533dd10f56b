"""Two-pass export: patch every backing file, then export every node.

All patches finish before the first export starts. Nodes can share a backing
file, and the converter re-reads that file, so interleaving the passes would
let an export see links that are still in id form.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from roamdown.errors import (
    ConverterFailureError,
    ConverterInvocationError,
    PipelineError,
    RoamdownError,
)
from roamdown.exporter import export_node
from roamdown.patcher import patch_file

if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractContextManager

    from roamdown.exporter import Converter
    from roamdown.index import NodeIndex
    from roamdown.models import Node

logger = logging.getLogger("roamdown.pipeline")


class Progress(Protocol):
    """The part of click's ProgressBar the pipeline uses."""

    def update(self, n_steps: int) -> None: ...


class _NullProgress:
    def update(self, n_steps: int) -> None:
        pass


def null_reporter(label: str, total: int) -> AbstractContextManager[Progress]:
    return contextlib.nullcontext(_NullProgress())


@dataclass
class PipelineResult:
    patched: int = 0                # files whose content changed
    exported: int = 0
    skipped: int = 0                # destination already existed
    failures: list[PipelineError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class Pipeline:
    """Sequences the patch pass and the export pass over one NodeIndex."""

    def __init__(
        self,
        index: NodeIndex,
        target_dir: Path | str,
        converter: Converter,
        *,
        per_file: bool = False,
        keep_going: bool = False,
        reporter: Callable[[str, int], AbstractContextManager[Progress]] | None = None,
    ) -> None:
        self.index = index
        self.target_dir = Path(target_dir)
        self.converter = converter
        self.per_file = per_file
        self.keep_going = keep_going
        self.reporter = reporter or null_reporter
        self.result = PipelineResult()

    # ------------------------------------------------------------------
    # Patch pass
    # ------------------------------------------------------------------

    def _patch_targets(self) -> list[tuple[Node, Path]]:
        """(owning node, file) pairs: one per node, or one per distinct file."""
        if not self.per_file:
            return [(node, node.path) for node in self.index]
        owners: dict[str, Node] = {}
        for node in self.index:
            owners.setdefault(node.file, node)
        return [(node, node.path) for node in owners.values()]

    async def patch_all(self) -> int:
        targets = self._patch_targets()
        logger.info("patching links: %d targets", len(targets))
        changed = 0
        with self.reporter("Patching node links", len(targets)) as bar:
            for node, path in targets:
                try:
                    if await patch_file(path, self.index):
                        changed += 1
                except RoamdownError as exc:
                    raise PipelineError(node, "patch links of") from exc
                bar.update(1)
        self.result.patched = changed
        return changed

    # ------------------------------------------------------------------
    # Export pass
    # ------------------------------------------------------------------

    def _warn_collisions(self) -> None:
        for name, nodes in self.index.title_collisions().items():
            ids = ", ".join(n.id for n in nodes)
            logger.warning("%d nodes export to %s (%s); only one will be written", len(nodes), name, ids)

    async def export_all(self) -> PipelineResult:
        self._warn_collisions()
        self.target_dir.mkdir(parents=True, exist_ok=True)
        with self.reporter("Exporting nodes", len(self.index)) as bar:
            for node in self.index:
                try:
                    if await export_node(node, self.target_dir, self.converter):
                        self.result.exported += 1
                    else:
                        self.result.skipped += 1
                except (ConverterFailureError, ConverterInvocationError) as exc:
                    err = PipelineError(node, "export")
                    err.__cause__ = exc
                    if not self.keep_going:
                        raise err from exc
                    logger.warning("export failed for %s: %s", node.title, exc)
                    self.result.failures.append(err)
                except RoamdownError as exc:
                    raise PipelineError(node, "export") from exc
                bar.update(1)
        return self.result

    async def run(self) -> PipelineResult:
        await self.patch_all()
        return await self.export_all()


def run_pipeline(
    index: NodeIndex,
    target_dir: Path | str,
    converter: Converter,
    **kwargs: Any,
) -> PipelineResult:
    """Run both passes on a fresh event loop."""
    return asyncio.run(Pipeline(index, target_dir, converter, **kwargs).run())
