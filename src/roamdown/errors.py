"""Exceptions raised by the export pipeline.

Every error aborts the run unless the caller opts into collecting export
failures (``Pipeline(keep_going=True)``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from roamdown.models import Node


class RoamdownError(Exception):
    """Base class for all roamdown errors."""


class StoreLoadError(RoamdownError):
    """The org-roam database could not be opened or queried."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"failed to load org-roam nodes from {path}: {reason}")


class LinkResolutionError(RoamdownError):
    """A link token names an id that is not in the node index."""

    def __init__(self, node_id: str, source_file: Path | str) -> None:
        self.node_id = node_id
        self.source_file = source_file
        super().__init__(f"dangling link to id:{node_id} in {source_file}")


class FileIoError(RoamdownError):
    """Reading or writing a backing file failed."""

    def __init__(self, path: Path | str, operation: str) -> None:
        self.path = path
        self.operation = operation
        super().__init__(f"failed to {operation} {path}")


class ConverterInvocationError(RoamdownError):
    """The converter process could not be spawned."""

    def __init__(self, node: Node, reason: str) -> None:
        self.node = node
        self.reason = reason
        super().__init__(f"failed to run converter for {node.title}: {reason}")


class ConverterFailureError(RoamdownError):
    """The converter ran but exited unsuccessfully."""

    def __init__(self, node: Node, returncode: int, stderr: str) -> None:
        self.node = node
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"Failed to export {node.title} (exit {returncode})")


class PipelineError(RoamdownError):
    """Wraps a failure with the node and phase it happened in."""

    def __init__(self, node: Node, operation: str) -> None:
        self.node = node
        self.operation = operation
        super().__init__(f"failed to {operation} node {node.title!r} ({node.id})")

    @property
    def diagnostics(self) -> str:
        """Captured converter stderr, if the cause carries any."""
        cause = self.__cause__
        if isinstance(cause, ConverterFailureError):
            return cause.stderr
        return ""
