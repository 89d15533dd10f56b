"""roamdown CLI: export an org-roam graph to a directory of Markdown files.

Commands:
    roamdown export --db DB --target-dir DIR   patch id links in place, then export every node
    roamdown check --db DB                     report link counts, dangling ids and title collisions
    roamdown init                              write a default roamdown.toml
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import click

from roamdown.config import RoamdownConfig, init_config, load_config
from roamdown.db import load_nodes
from roamdown.errors import PipelineError, RoamdownError
from roamdown.exporter import EmacsConverter
from roamdown.patcher import plan_file
from roamdown.pipeline import PipelineResult, run_pipeline

_CONFIRM_PROMPT = "This will write to your org-roam files. Make sure you have a backup. Continue? [y/N]"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg(ctx: click.Context) -> RoamdownConfig:
    try:
        return load_config(ctx.obj.get("config_path"))
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(message)s",
    )


def _pick_path(option: str | None, configured: Path | None, flag: str) -> Path:
    if option:
        return Path(option).expanduser().resolve()
    if configured is not None:
        return configured
    raise click.UsageError(f"Missing option '{flag}' (or set it in roamdown.toml)")


def _progress(label: str, total: int) -> Any:
    return click.progressbar(length=total, label=label, show_eta=True, show_pos=True)


def _report_failure(err: PipelineError) -> None:
    click.echo(f"Failed to {err.operation} {err.node.title}:", err=True)
    if err.__cause__ is not None:
        click.echo(f"  {err.__cause__}", err=True)
    if err.diagnostics:
        click.echo(err.diagnostics, err=True)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="roamdown")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=True),
    help="Path to roamdown.toml (default: search upward from cwd)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """roamdown: export an org-roam graph to linked Markdown files."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ---------------------------------------------------------------------------
# roamdown init
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--dir", "root", default=".", show_default=True, help="Directory to write roamdown.toml in")
@click.option("--db", default=None, help="org-roam database to record in the config")
def init(root: str, db: str | None) -> None:
    """Create a default roamdown.toml."""
    try:
        config_path = init_config(Path(root).resolve(), db=db)
    except FileExistsError:
        click.echo("roamdown.toml already exists, skipping init")
        return
    click.echo(f"Created {config_path}")


# ---------------------------------------------------------------------------
# roamdown export
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--db", "-d", default=None, help="Absolute location of the org-roam database")
@click.option("--target-dir", "-t", default=None, help="Absolute location of the target directory")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
@click.option("--per-file", is_flag=True, help="Patch each backing file once instead of once per node")
@click.option("--keep-going", is_flag=True, help="Continue past converter failures and report them at the end")
@click.option("--verbose", "-v", is_flag=True)
@click.pass_context
def export(
    ctx: click.Context,
    db: str | None,
    target_dir: str | None,
    yes: bool,
    per_file: bool,
    keep_going: bool,
    verbose: bool,
) -> None:
    """Rewrite id links in every org-roam file, then export each node to Markdown.

    \b
    Files are modified in place. Existing Markdown files in the target
    directory are never overwritten, so an interrupted run can be resumed.
    """
    _setup_logging(verbose)
    cfg = _load_cfg(ctx)
    db_path = _pick_path(db, cfg.db, "--db")
    target = _pick_path(target_dir, cfg.target_dir, "--target-dir")

    if not yes:
        try:
            answer = click.prompt(_CONFIRM_PROMPT, default="", show_default=False, prompt_suffix=" ")
        except click.Abort:
            # closed stdin counts as "no"
            return
        if answer != "y":
            return

    click.echo("Collecting nodes...")
    try:
        index = load_nodes(db_path)
    except RoamdownError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Loaded {len(index)} nodes")

    try:
        result = run_pipeline(
            index,
            target,
            EmacsConverter.from_config(cfg.converter),
            per_file=per_file or cfg.export.per_file,
            keep_going=keep_going or cfg.export.keep_going,
            reporter=_progress,
        )
    except PipelineError as err:
        _report_failure(err)
        raise click.ClickException(str(err)) from err

    _summarize(result)


def _summarize(result: PipelineResult) -> None:
    click.echo(
        f"Patched {result.patched} files, exported {result.exported} nodes, "
        f"skipped {result.skipped} existing"
    )
    if result.failures:
        for err in result.failures:
            _report_failure(err)
        raise click.ClickException(f"{len(result.failures)} node(s) failed to export")


# ---------------------------------------------------------------------------
# roamdown check
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--db", "-d", default=None, help="Absolute location of the org-roam database")
@click.option("--verbose", "-v", is_flag=True, help="List every file, not only problems")
@click.pass_context
def check(ctx: click.Context, db: str | None, verbose: bool) -> None:
    """Resolve every id link without writing anything."""
    cfg = _load_cfg(ctx)
    db_path = _pick_path(db, cfg.db, "--db")
    try:
        index = load_nodes(db_path)
        plans = [plan_file(path, index) for path in index.files()]
    except RoamdownError as exc:
        raise click.ClickException(str(exc)) from exc

    total_links = 0
    dangling = 0
    for plan in plans:
        total_links += plan.links
        dangling += len(plan.dangling)
        if verbose or not plan.ok:
            click.echo(f"  {plan.path}: {plan.links} link(s)")
        for node_id in plan.dangling:
            click.echo(f"    dangling: id:{node_id}")

    for name, nodes in index.title_collisions().items():
        click.echo(f"  collision: {name} <- {', '.join(n.id for n in nodes)}")

    click.echo(f"{len(index)} nodes, {len(plans)} files, {total_links} links, {dangling} dangling")
    if dangling:
        raise click.ClickException(f"{dangling} dangling link target(s)")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
