"""aepsite CLI entry point."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn

import click

from aepsite import __version__
from aepsite.errors import AepsiteError

if TYPE_CHECKING:
    from collections.abc import Callable

    from aepsite.config import SiteConfig
    from aepsite.pipeline import PipelineResult


@click.group()
@click.version_option(version=__version__, prog_name="aepsite")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="AEP checkout to build from (default: current directory).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: .aepsite.yml in the AEP checkout, if present).",
)
@click.option(
    "--sg-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Site generator checkout (default: from config or /tmp/site-generator).",
)
@click.pass_context
def main(
    ctx: click.Context,
    *,
    verbose: bool,
    quiet: bool,
    project: Path | None,
    config_path: Path | None,
    sg_dir: Path | None,
) -> None:
    """aepsite - build the AEP documentation site."""
    from aepsite.logging_setup import configure_logging

    configure_logging(verbose=verbose, quiet=quiet)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["project"] = (project or Path.cwd()).resolve()
    ctx.obj["config_path"] = config_path
    ctx.obj["sg_dir"] = sg_dir.resolve() if sg_dir is not None else None


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _load_config(ctx: click.Context) -> SiteConfig:
    from aepsite.config import load_config

    obj: dict[str, Any] = ctx.obj
    try:
        return load_config(obj["project"], obj["config_path"], sg_directory=obj["sg_dir"])
    except AepsiteError as exc:
        _fail(str(exc))


_DOUBLE_QUOTE_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"', "$": "\\$", "`": "\\`"})


def _double_quote(value: str) -> str:
    """Wrap *value* in double quotes, escaping what a POSIX shell expands there."""
    return '"' + value.translate(_DOUBLE_QUOTE_ESCAPES) + '"'


_STATUS_STYLES = {"ok": "green", "failed": "red", "skipped": "dim"}


def _print_summary(result: PipelineResult) -> None:
    from rich.console import Console
    from rich.table import Table

    table = Table(title=f"aepsite {result.mode}", show_header=True)
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Exit", justify="right")
    for step_result in result.results:
        style = _STATUS_STYLES.get(step_result.status, "")
        exit_str = "" if step_result.status == "skipped" else str(step_result.returncode)
        table.add_row(
            step_result.step.name,
            f"[{style}]{step_result.status}[/{style}]",
            exit_str,
        )
    Console().print(table)


def _pipeline_options(func: Callable[..., Any]) -> Callable[..., Any]:
    from aepsite.pipeline import SKIPPABLE_STEPS

    options = [
        click.option(
            "--keep-going",
            is_flag=True,
            default=False,
            help="Run every step even after a failure; exit with the last step's code.",
        ),
        click.option(
            "--dry-run",
            is_flag=True,
            default=False,
            help="Print the commands without running them.",
        ),
        click.option(
            "--skip",
            "skip",
            multiple=True,
            type=click.Choice(list(SKIPPABLE_STEPS)),
            help="Skip a step (repeatable).",
        ),
        click.option(
            "--no-browsers",
            is_flag=True,
            default=False,
            help="Do not install the headless browser.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _run_mode(
    ctx: click.Context,
    mode: str,
    *,
    keep_going: bool,
    dry_run: bool,
    skip: tuple[str, ...],
    no_browsers: bool,
) -> None:
    from dataclasses import replace

    from aepsite.pipeline import run_pipeline
    from aepsite.runner import CommandRunner

    config = _load_config(ctx)
    if no_browsers:
        config = replace(config, install_browsers=False)

    try:
        result = run_pipeline(
            config,
            CommandRunner(dry_run=dry_run),
            mode=mode,
            keep_going=keep_going,
            skip=skip,
        )
    except AepsiteError as exc:
        _fail(str(exc))

    if not ctx.obj["quiet"]:
        _print_summary(result)
    sys.exit(result.exit_code)


@main.command()
@_pipeline_options
@click.pass_context
def build(
    ctx: click.Context,
    *,
    keep_going: bool,
    dry_run: bool,
    skip: tuple[str, ...],
    no_browsers: bool,
) -> None:
    """Check out the generator and linters, then build the static site."""
    _run_mode(
        ctx, "build", keep_going=keep_going, dry_run=dry_run, skip=skip, no_browsers=no_browsers
    )


@main.command()
@_pipeline_options
@click.pass_context
def serve(
    ctx: click.Context,
    *,
    keep_going: bool,
    dry_run: bool,
    skip: tuple[str, ...],
    no_browsers: bool,
) -> None:
    """Prepare the generator like ``build``, then start its dev server."""
    _run_mode(
        ctx, "serve", keep_going=keep_going, dry_run=dry_run, skip=skip, no_browsers=no_browsers
    )


@main.command()
@click.option("--dry-run", is_flag=True, default=False, help="Print the clone commands only.")
@click.pass_context
def checkout(ctx: click.Context, *, dry_run: bool) -> None:
    """Clone the generator and linter repositories that are missing."""
    from aepsite.checkout import ensure_checkouts
    from aepsite.config import build_environment
    from aepsite.runner import CommandRunner

    config = _load_config(ctx)
    try:
        results = ensure_checkouts(
            config.repositories,
            CommandRunner(dry_run=dry_run),
            env=build_environment(config),
        )
    except AepsiteError as exc:
        _fail(str(exc))

    exit_code = 0
    for res in results:
        click.echo(f"  [{res.status}] {res.repository.name} -> {res.repository.path}")
        if not res.ok:
            exit_code = res.returncode
    sys.exit(exit_code)


@main.command("scaffold")
@click.pass_context
def scaffold_cmd(ctx: click.Context) -> None:
    """Create the output directories inside the generator checkout."""
    from aepsite.scaffold import scaffold

    config = _load_config(ctx)
    if not config.sg_directory.is_dir():
        _fail(
            f"site generator directory not found: {config.sg_directory}. "
            "Run `aepsite checkout` first."
        )

    try:
        created = scaffold(config.sg_directory, config.scaffold_dirs)
    except AepsiteError as exc:
        _fail(str(exc))

    if not created:
        click.echo("All directories already exist.")
    for path in created:
        click.echo(f"Created {path}")


@main.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def env(ctx: click.Context, *, output_json: bool) -> None:
    """Print the environment variables the site generator reads."""
    from aepsite.config import environment_variables

    variables = environment_variables(_load_config(ctx))
    if output_json:
        click.echo(json.dumps(variables, indent=2))
        return
    for name, value in variables.items():
        click.echo(f"export {name}={_double_quote(value)}")


@main.command()
@click.pass_context
def doctor(ctx: click.Context) -> None:
    """Check tools, the AEP checkout and repository state before building."""
    from aepsite.doctor import Severity, run_checks

    checks = run_checks(_load_config(ctx))

    icons = {
        Severity.OK: "[ok]",
        Severity.INFO: "[info]",
        Severity.WARNING: "[warn]",
        Severity.ERROR: "[ERR]",
    }

    for check in checks:
        icon = icons.get(check.severity, "[?]")
        click.echo(f"  {icon} {check.description}")

    if any(c.severity == Severity.ERROR for c in checks):
        sys.exit(1)


@main.command("watch")
@click.option(
    "--debounce",
    default=500,
    type=int,
    help="Debounce delay in milliseconds (default: 500).",
)
@click.pass_context
def watch_cmd(ctx: click.Context, *, debounce: int) -> None:
    """Watch AEP content and rebuild the site on changes.

    Requires watchfiles: pip install aepsite[watch]
    """
    try:
        from aepsite.watcher import watch
    except ImportError:
        _fail("watch requires 'watchfiles'. Install with: pip install aepsite[watch]")

    from aepsite.runner import CommandRunner

    config = _load_config(ctx)
    if not config.sg_directory.is_dir():
        _fail(
            f"site generator directory not found: {config.sg_directory}. "
            "Run `aepsite build` first."
        )

    try:
        watch(config, CommandRunner(), debounce_ms=debounce)
    except ImportError:
        _fail("watch requires 'watchfiles'. Install with: pip install aepsite[watch]")
    except AepsiteError as exc:
        _fail(str(exc))
