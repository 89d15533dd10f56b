"""Shared pytest fixtures for roamdown tests."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from roamdown.errors import ConverterFailureError
from roamdown.index import NodeIndex
from roamdown.models import Node


class StubConverter:
    """Converter that writes the node title to the destination and records calls."""

    def __init__(self, fail_ids: set[str] | None = None) -> None:
        self.calls: list[tuple[Node, Path]] = []
        self.seen_sources: dict[str, str] = {}
        self.fail_ids = fail_ids or set()

    async def convert(self, node: Node, destination: Path) -> None:
        self.calls.append((node, destination))
        self.seen_sources[node.id] = Path(node.file).read_text()
        if node.id in self.fail_ids:
            raise ConverterFailureError(node, 255, f"Debugger entered: {node.title}")
        destination.write_text(node.title)


def make_roam_db(path: Path, rows: list[tuple[str, str, int, str]]) -> Path:
    """Create an org-roam style nodes table, storing text as Lisp strings."""
    conn = sqlite3.connect(str(path))
    try:
        conn.execute("CREATE TABLE nodes (id NOT NULL PRIMARY KEY, file NOT NULL, level NOT NULL, title)")
        conn.executemany(
            "INSERT INTO nodes (id, file, level, title) VALUES (?, ?, ?, ?)",
            [(f'"{i}"', f'"{f}"', level, f'"{t}"') for i, f, level, t in rows],
        )
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture
def corpus(tmp_path: Path) -> dict[str, Path]:
    """Two org files: a.org holds Alpha (file node) and Beta (heading), b.org holds Gamma."""
    notes = tmp_path / "notes"
    notes.mkdir()
    a = notes / "a.org"
    a.write_text(
        ":PROPERTIES:\n:ID: N1\n:END:\n#+title: Alpha\n\n"
        "See [[id:N2][go]] and [[id:C-3][the third]].\n"
        "* Beta\n:PROPERTIES:\n:ID: N2\n:END:\nBack to [[id:N1][Alpha]].\n"
    )
    b = notes / "b.org"
    b.write_text(":PROPERTIES:\n:ID: C-3\n:END:\n#+title: Gamma Ray\n\nNo links here.\n")
    return {"dir": notes, "a": a, "b": b, "target": tmp_path / "export"}


@pytest.fixture
def index(corpus: dict[str, Path]) -> NodeIndex:
    return NodeIndex.build([
        Node(id="N1", file=str(corpus["a"]), level=0, title="Alpha"),
        Node(id="N2", file=str(corpus["a"]), level=1, title="Beta"),
        Node(id="C-3", file=str(corpus["b"]), level=0, title="Gamma Ray"),
    ])


@pytest.fixture
def roam_db(tmp_path: Path, corpus: dict[str, Path]) -> Path:
    return make_roam_db(tmp_path / "org-roam.db", [
        ("N1", str(corpus["a"]), 0, "Alpha"),
        ("N2", str(corpus["a"]), 1, "Beta"),
        ("C-3", str(corpus["b"]), 0, "Gamma Ray"),
    ])


@pytest.fixture
def stub_converter() -> StubConverter:
    return StubConverter()
