"""Tests for the export driver and the Emacs converter."""

import asyncio
from pathlib import Path

import pytest

from roamdown.config import ConverterConfig
from roamdown.errors import ConverterFailureError, ConverterInvocationError
from roamdown.exporter import EmacsConverter, export_node, export_path
from roamdown.models import Node

FILE_NODE = Node(id="3F2A-9C", file="/notes/a.org", level=0, title="Alpha Centauri")
HEADING_NODE = Node(id="77B1", file="/notes/a.org", level=2, title="Beta")


class _FakeProcess:
    def __init__(self, returncode: int, stderr: bytes = b"") -> None:
        self.returncode = returncode
        self._stderr = stderr

    async def communicate(self):
        return b"", self._stderr


@pytest.fixture
def fake_exec(monkeypatch):
    """Replace process spawning; returns the list of captured argv tuples."""
    calls = []
    outcome = {"returncode": 0, "stderr": b""}

    async def _exec(*args, **kwargs):
        calls.append(args)
        return _FakeProcess(outcome["returncode"], outcome["stderr"])

    monkeypatch.setattr(asyncio, "create_subprocess_exec", _exec)
    return calls, outcome


class TestExportPath:
    def test_title_based(self, tmp_path):
        assert export_path(tmp_path, FILE_NODE) == tmp_path / "Alpha Centauri.md"


class TestExportNode:
    def test_exports_missing_destination(self, tmp_path, stub_converter, corpus):
        node = Node(id="N1", file=str(corpus["a"]), level=0, title="Alpha")
        assert asyncio.run(export_node(node, tmp_path, stub_converter)) is True
        assert (tmp_path / "Alpha.md").read_text() == "Alpha"
        assert stub_converter.calls == [(node, tmp_path / "Alpha.md")]

    def test_existing_destination_is_skipped(self, tmp_path, stub_converter, corpus):
        node = Node(id="N1", file=str(corpus["a"]), level=0, title="Alpha")
        existing = tmp_path / "Alpha.md"
        existing.write_text("hand edited")
        assert asyncio.run(export_node(node, tmp_path, stub_converter)) is False
        assert stub_converter.calls == []
        assert existing.read_text() == "hand edited"


class TestEmacsCommand:
    def test_defaults(self):
        conv = EmacsConverter()
        cmd = conv.command(FILE_NODE, Path("/out/Alpha Centauri.md"))
        assert cmd[:4] == ["emacs", "--batch", "-l", str(Path("~/.emacs.d/init.el").expanduser())]
        assert cmd[4] == "--eval"
        assert len(cmd) == 6

    def test_file_node_exports_whole_file(self):
        form = EmacsConverter().eval_form(FILE_NODE, Path("/out/Alpha Centauri.md"))
        assert '(message "Exporting Alpha Centauri")' in form
        assert "(require 'ox-gfm)" in form
        assert '(org-roam-node-open (org-roam-node-from-id "3F2A-9C"))' in form
        assert "(org-export-to-file 'gfm \"/out/Alpha Centauri.md\" nil nil))" in form

    def test_heading_node_exports_subtree_only(self):
        form = EmacsConverter().eval_form(HEADING_NODE, Path("/out/Beta.md"))
        assert form.endswith("(org-export-to-file 'gfm \"/out/Beta.md\" nil t))")

    def test_destination_is_escaped(self):
        form = EmacsConverter().eval_form(FILE_NODE, Path('/out/we"ird\\dir/x.md'))
        assert '"/out/we\\"ird\\\\dir/x.md"' in form

    def test_from_config(self):
        cfg = ConverterConfig(program="/opt/emacs", init_file="/etc/init.el", backend="md", requires=[])
        conv = EmacsConverter.from_config(cfg)
        cmd = conv.command(FILE_NODE, Path("/out/x.md"))
        assert cmd[0] == "/opt/emacs"
        assert cmd[3] == "/etc/init.el"
        assert "require" not in cmd[5]
        assert "(org-export-to-file 'md " in cmd[5]


class TestEmacsConvert:
    def test_success(self, fake_exec):
        calls, _ = fake_exec
        asyncio.run(EmacsConverter().convert(FILE_NODE, Path("/out/x.md")))
        assert len(calls) == 1
        assert calls[0][0] == "emacs"

    def test_failure_carries_stderr(self, fake_exec):
        _, outcome = fake_exec
        outcome["returncode"] = 255
        outcome["stderr"] = b"Symbol's function definition is void: org-roam-node-open\n"
        with pytest.raises(ConverterFailureError) as exc_info:
            asyncio.run(EmacsConverter().convert(FILE_NODE, Path("/out/x.md")))
        err = exc_info.value
        assert err.returncode == 255
        assert "org-roam-node-open" in err.stderr
        assert err.node is FILE_NODE
        assert "Alpha Centauri" in str(err)

    def test_missing_program_is_invocation_error(self, tmp_path):
        conv = EmacsConverter(program=str(tmp_path / "no-such-emacs"))
        with pytest.raises(ConverterInvocationError) as exc_info:
            asyncio.run(conv.convert(FILE_NODE, tmp_path / "x.md"))
        assert exc_info.value.node is FILE_NODE
