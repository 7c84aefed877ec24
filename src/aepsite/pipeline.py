"""Site build pipeline: ordered steps, fail-fast or keep-going execution.

A run goes through four phases, all inside the generator checkout except
the first:

1. checkout: clone each missing repository;
2. enter: abort unless the generator checkout exists;
3. scaffold: pre-create the output directories;
4. npm: install dependencies, install the headless browser, generate, then
   build (``build`` mode) or start the dev server (``serve`` mode).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from aepsite.checkout import ensure_checkout
from aepsite.config import build_environment, environment_variables
from aepsite.errors import PipelineError
from aepsite.runner import format_command
from aepsite.scaffold import check_scaffold_dir, scaffold

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from aepsite.config import Repository, SiteConfig
    from aepsite.runner import CommandRunner

logger = logging.getLogger(__name__)

MODES = ("build", "serve")

# Names accepted by ``skip``; "checkout" covers every checkout step.
SKIPPABLE_STEPS = ("checkout", "scaffold", "install", "browsers", "generate", "build", "serve")


@dataclass(frozen=True)
class Step:
    """A single pipeline step."""

    name: str
    kind: str  # checkout | enter | scaffold | command
    argv: tuple[str, ...] = ()
    repository: Repository | None = None

    @property
    def group(self) -> str:
        """Name used for skipping; checkout steps share one group."""
        return "checkout" if self.kind == "checkout" else self.name


@dataclass(frozen=True)
class StepResult:
    """Result of running (or skipping) one step."""

    step: Step
    status: str  # ok | failed | skipped
    returncode: int = 0


@dataclass
class PipelineResult:
    """Ordered step results and the overall exit code."""

    mode: str
    results: list[StepResult] = field(default_factory=list)
    exit_code: int = 0

    @property
    def failed(self) -> list[StepResult]:
        return [r for r in self.results if r.status == "failed"]


def build_steps(config: SiteConfig, mode: str = "build") -> list[Step]:
    """Return the ordered steps for *mode* (``build`` or ``serve``)."""
    if mode not in MODES:
        msg = f"unknown mode '{mode}', expected one of {list(MODES)}"
        raise ValueError(msg)

    steps = [
        Step(name=f"checkout:{repo.name}", kind="checkout", repository=repo)
        for repo in config.repositories
    ]
    steps.append(Step(name="enter", kind="enter"))
    steps.append(Step(name="scaffold", kind="scaffold"))
    steps.append(Step(name="install", kind="command", argv=("npm", "install")))
    if config.install_browsers:
        steps.append(
            Step(
                name="browsers",
                kind="command",
                argv=("npx", "playwright", "install", "--with-deps", config.browser),
            )
        )
    steps.append(Step(name="generate", kind="command", argv=("npm", "run", "generate")))
    if mode == "build":
        steps.append(Step(name="build", kind="command", argv=("npm", "run", "build")))
    else:
        steps.append(Step(name="serve", kind="command", argv=("npm", "run", "dev")))
    return steps


def _run_step(
    step: Step,
    config: SiteConfig,
    runner: CommandRunner,
    env: Mapping[str, str],
) -> int:
    """Execute *step* and return its exit code."""
    if step.kind == "checkout" and step.repository is not None:
        return ensure_checkout(step.repository, runner, env=env).returncode

    if step.kind == "enter":
        if not runner.dry_run and not config.sg_directory.is_dir():
            msg = f"site generator directory not found: {config.sg_directory}"
            raise PipelineError(msg)
        return 0

    if step.kind == "scaffold":
        for rel in config.scaffold_dirs:
            logger.info("+ %s", format_command(["mkdir", "-p", rel]))
        if not runner.dry_run:
            scaffold(config.sg_directory, config.scaffold_dirs)
        return 0

    return runner.run(step.argv, cwd=config.sg_directory, env=env)


def run_pipeline(
    config: SiteConfig,
    runner: CommandRunner,
    *,
    mode: str = "build",
    keep_going: bool = False,
    skip: Iterable[str] = (),
    base_env: Mapping[str, str] | None = None,
) -> PipelineResult:
    """Run the pipeline for *mode* and return per-step results.

    By default the first failing step stops the run and its exit code becomes
    the pipeline's. With *keep_going* every step runs and the exit code is
    that of the last step executed.

    Raises ``PipelineError`` when the generator checkout is missing at the
    ``enter`` step, whatever *keep_going* says.
    Raises ``ConfigError`` up front when a scaffold directory escapes the
    generator checkout.
    """
    skipped = set(skip)
    unknown = sorted(skipped - set(SKIPPABLE_STEPS))
    if unknown:
        msg = f"unknown step(s) to skip: {', '.join(unknown)}"
        raise ValueError(msg)

    # Scaffold paths are checked before any step runs, dry-run included.
    for rel in config.scaffold_dirs:
        check_scaffold_dir(rel)

    for name, value in environment_variables(config).items():
        logger.info("+ export %s=%s", name, value)
    env = build_environment(config, base_env)

    result = PipelineResult(mode=mode)
    stopped = False
    for step in build_steps(config, mode):
        if stopped or step.group in skipped:
            result.results.append(StepResult(step=step, status="skipped"))
            continue

        returncode = _run_step(step, config, runner, env)
        status = "ok" if returncode == 0 else "failed"
        result.results.append(StepResult(step=step, status=status, returncode=returncode))
        result.exit_code = returncode

        if returncode != 0 and not keep_going:
            logger.error("Step '%s' failed with exit code %d", step.name, returncode)
            stopped = True

    return result
