"""RoamdownConfig: optional project-local settings for an export run.

Looked up as ``roamdown.toml`` in the working directory or any parent; every
value can be overridden on the command line.

roamdown.toml example:

    [roamdown]
    db = "~/.emacs.d/org-roam.db"
    target_dir = "export"           # relative to the directory holding roamdown.toml

    [converter]
    program = "emacs"
    init_file = "~/.emacs.d/init.el"
    backend = "gfm"
    requires = ["ox-gfm"]

    [export]
    per_file = false      # patch each backing file once instead of once per node
    keep_going = false    # collect converter failures instead of stopping
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_CONFIG_FILENAME = "roamdown.toml"


@dataclass
class ConverterConfig:
    program: str = "emacs"
    init_file: str = "~/.emacs.d/init.el"
    backend: str = "gfm"
    requires: list[str] = field(default_factory=lambda: ["ox-gfm"])


@dataclass
class ExportConfig:
    per_file: bool = False
    keep_going: bool = False


@dataclass
class RoamdownConfig:
    """Resolved configuration; paths are absolute when set."""

    root: Path                      # directory that contains roamdown.toml (or cwd)
    db: Path | None = None
    target_dir: Path | None = None
    converter: ConverterConfig = field(default_factory=ConverterConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME


def _resolve_path(root: Path, value: str | None) -> Path | None:
    if not value:
        return None
    path = Path(value).expanduser()
    return path if path.is_absolute() else root / path


def load_config(path: Path | str | None = None) -> RoamdownConfig:
    """Load roamdown.toml from path, or search upward from cwd if path is None.

    path may point at the file itself or at the directory containing it.
    A missing file yields the defaults.
    """
    if path is None:
        root = _find_root(Path.cwd())
        config_path = root / _CONFIG_FILENAME
    else:
        p = Path(path)
        config_path = p / _CONFIG_FILENAME if p.is_dir() else p
        root = config_path.parent

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    main_section = raw.get("roamdown", {})
    conv_section = raw.get("converter", {})
    exp_section = raw.get("export", {})

    return RoamdownConfig(
        root=root,
        db=_resolve_path(root, main_section.get("db")),
        target_dir=_resolve_path(root, main_section.get("target_dir")),
        converter=ConverterConfig(
            program=str(conv_section.get("program", "emacs")),
            init_file=str(conv_section.get("init_file", "~/.emacs.d/init.el")),
            backend=str(conv_section.get("backend", "gfm")),
            requires=list(conv_section.get("requires", ["ox-gfm"])),
        ),
        export=ExportConfig(
            per_file=bool(exp_section.get("per_file", False)),
            keep_going=bool(exp_section.get("keep_going", False)),
        ),
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for roamdown.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, db: str | None = None) -> Path:
    """Write a default roamdown.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"roamdown.toml already exists at {config_path}"
        raise FileExistsError(msg)

    db_line = f'db = "{db}"' if db else '# db = "~/.emacs.d/org-roam.db"'
    content = f"""\
[roamdown]
{db_line}
# target_dir = "export"

# [converter]
# program = "emacs"
# init_file = "~/.emacs.d/init.el"
# backend = "gfm"
# requires = ["ox-gfm"]

# [export]
# per_file = false     # patch each backing file once instead of once per node
# keep_going = false   # collect converter failures and continue
"""
    config_path.write_text(content)
    return config_path
