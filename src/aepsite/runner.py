"""Child-process execution with ``set -x`` style command tracing."""

from __future__ import annotations

import logging
import shlex
import subprocess
from typing import TYPE_CHECKING

from aepsite.errors import CommandNotFoundError, PipelineError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)


def format_command(argv: Sequence[str]) -> str:
    """Render *argv* the way a shell trace would print it."""
    return shlex.join(argv)


class CommandRunner:
    """Run external tools and hand back their exit codes.

    Non-zero exit codes are returned, not raised: the pipeline decides
    whether a failure stops the run.
    """

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> int:
        """Run *argv* in *cwd* with *env* and return its exit code."""
        logger.info("+ %s", format_command(argv))
        if self.dry_run:
            return 0

        try:
            result = subprocess.run(  # noqa: S603
                list(argv),
                cwd=str(cwd) if cwd is not None else None,
                env=dict(env) if env is not None else None,
                check=False,
            )
        except FileNotFoundError as exc:
            if cwd is not None and not cwd.is_dir():
                msg = f"working directory not found: {cwd}"
                raise PipelineError(msg) from exc
            raise CommandNotFoundError(argv[0]) from exc

        if result.returncode != 0:
            logger.debug("%s exited with %d", argv[0], result.returncode)
        return result.returncode
