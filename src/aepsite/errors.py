"""Exception hierarchy shared across aepsite modules."""

from __future__ import annotations


class AepsiteError(Exception):
    """Base class for errors reported to the user as ``Error: <message>``."""


class ConfigError(AepsiteError):
    """Raised when the build configuration is malformed."""


class CommandNotFoundError(AepsiteError):
    """Raised when a required executable is not on ``PATH``."""

    def __init__(self, executable: str) -> None:
        super().__init__(f"command not found: {executable}")
        self.executable = executable


class PipelineError(AepsiteError):
    """Raised when the pipeline must abort before running further steps."""
