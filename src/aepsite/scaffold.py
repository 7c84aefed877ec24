"""Pre-create the output directories the site generator writes into."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from aepsite.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable


def check_scaffold_dir(rel: str) -> PurePosixPath:
    """Return *rel* as a relative path, or raise ``ConfigError`` if it escapes the checkout."""
    path = PurePosixPath(rel)
    if path.is_absolute() or ".." in path.parts or not path.parts:
        msg = f"scaffold directory must be relative to the generator checkout: '{rel}'"
        raise ConfigError(msg)
    return path


def scaffold(sg_directory: Path, dirs: Iterable[str]) -> list[Path]:
    """Create each of *dirs* under *sg_directory* (``mkdir -p``).

    Returns only the directories that did not exist before.
    """
    # All entries are validated before any directory is created.
    targets = [sg_directory / Path(*check_scaffold_dir(d).parts) for d in dirs]

    created: list[Path] = []
    for target in targets:
        if target.is_dir():
            continue
        target.mkdir(parents=True, exist_ok=True)
        created.append(target)
    return created
