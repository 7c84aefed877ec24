"""Idempotent checkout of the external repositories the site build needs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from aepsite.config import Repository
    from aepsite.runner import CommandRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    """Outcome of ensuring a single repository is present."""

    repository: Repository
    status: str  # present | cloned | failed
    returncode: int = 0

    @property
    def ok(self) -> bool:
        return self.status != "failed"


def clone_command(repo: Repository) -> list[str]:
    """Return the ``git clone`` argv for *repo*."""
    argv = ["git", "clone"]
    if repo.branch:
        argv += ["--branch", repo.branch]
    argv += [repo.url, str(repo.path)]
    return argv


def ensure_checkout(
    repo: Repository,
    runner: CommandRunner,
    *,
    env: Mapping[str, str] | None = None,
) -> CheckoutResult:
    """Clone *repo* unless its directory already exists.

    An existing directory is trusted as-is: it is neither validated as a git
    work tree nor updated.
    """
    if repo.path.is_dir():
        logger.debug("%s already present at %s", repo.name, repo.path)
        return CheckoutResult(repository=repo, status="present")

    returncode = runner.run(clone_command(repo), env=env)
    if returncode != 0:
        logger.error("Cloning %s failed (exit %d)", repo.name, returncode)
        return CheckoutResult(repository=repo, status="failed", returncode=returncode)
    return CheckoutResult(repository=repo, status="cloned")


def ensure_checkouts(
    repos: Iterable[Repository],
    runner: CommandRunner,
    *,
    env: Mapping[str, str] | None = None,
) -> list[CheckoutResult]:
    """Ensure every repository in *repos*, in order, without stopping on failure."""
    return [ensure_checkout(repo, runner, env=env) for repo in repos]
