"""File watcher: regenerate and rebuild the site when AEP content changes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from aepsite.config import build_environment

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from aepsite.config import SiteConfig
    from aepsite.runner import CommandRunner

DEFAULT_DEBOUNCE_MS = 500

_WATCH_EXTENSIONS = frozenset(
    {
        ".md",  # AEP prose
        ".yaml",
        ".yml",  # aep.yaml metadata, site config
        ".json",  # schemas
    }
)

REBUILD_COMMANDS: tuple[tuple[str, ...], ...] = (
    ("npm", "run", "generate"),
    ("npm", "run", "build"),
)


def _filter_relevant(
    changes: Iterable[tuple[object, str]],
    aep_location: Path,
) -> list[tuple[object, str]]:
    """Keep only changes with watched extensions, ignoring hidden/temp files."""
    result: list[tuple[object, str]] = []

    for change_type, path_str in changes:
        p = Path(path_str)

        if p.name.startswith(("~", ".#")) or p.name.endswith((".tmp", ".swp")):
            continue

        if p.suffix not in _WATCH_EXTENSIONS:
            continue

        try:
            rel = p.relative_to(aep_location)
        except ValueError:
            continue

        # Skip .git, .github and other hidden directories.
        if any(part.startswith(".") for part in rel.parts[:-1]):
            continue

        result.append((change_type, path_str))

    return result


def _format_time() -> str:
    """Return current time as ``HH:MM:SS`` string."""
    return datetime.now(tz=timezone.utc).strftime("%H:%M:%S")


@dataclass(frozen=True)
class WatchEvent:
    """A single rebuild triggered by a batch of content changes."""

    files_changed: int
    returncode: int  # 0, or the exit code of the first failing command


def rebuild(config: SiteConfig, runner: CommandRunner) -> int:
    """Run the generate and build commands; stop at the first failure."""
    env = build_environment(config)
    for argv in REBUILD_COMMANDS:
        returncode = runner.run(argv, cwd=config.sg_directory, env=env)
        if returncode != 0:
            return returncode
    return 0


def watch(
    config: SiteConfig,
    runner: CommandRunner,
    debounce_ms: int = DEFAULT_DEBOUNCE_MS,
    callback: Callable[[WatchEvent], None] | None = None,
) -> None:
    """Watch the AEP checkout and rebuild the site on every relevant change.

    Requires ``watchfiles`` (optional dependency).
    """
    from rich.console import Console
    from watchfiles import watch as fs_watch

    console = Console()
    aep_location = config.aep_location

    console.print(f"[bold blue]Watching:[/bold blue] {aep_location}")
    console.print(f"[dim]Debounce: {debounce_ms}ms  |  Press Ctrl+C to stop[/dim]")
    console.print()

    try:
        for batch in fs_watch(aep_location, debounce=debounce_ms):
            relevant = _filter_relevant(batch, aep_location)
            if not relevant:
                continue

            returncode = rebuild(config, runner)
            timestamp = _format_time()
            plural = "s" if len(relevant) != 1 else ""
            if returncode == 0:
                console.print(
                    f"[dim]{timestamp}[/dim] [green]rebuilt[/green] "
                    f"({len(relevant)} file{plural} changed)"
                )
            else:
                console.print(
                    f"[dim]{timestamp}[/dim] [red]rebuild failed (exit {returncode})[/red]"
                )

            if callback is not None:
                callback(WatchEvent(files_changed=len(relevant), returncode=returncode))

    except KeyboardInterrupt:
        console.print("\n[yellow]Watch stopped.[/yellow]")
