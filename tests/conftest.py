"""Shared test fixtures for aepsite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from aepsite.config import default_config

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from aepsite.config import SiteConfig


class FakeRunner:
    """Records commands instead of running them; returns scripted exit codes."""

    def __init__(
        self,
        returncodes: dict[str, int] | None = None,
        *,
        dry_run: bool = False,
    ) -> None:
        self.dry_run = dry_run
        self.returncodes = returncodes or {}
        self.calls: list[tuple[list[str], Path | None, dict[str, str] | None]] = []

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> int:
        self.calls.append((list(argv), cwd, dict(env) if env is not None else None))
        return self.returncodes.get(" ".join(argv[:3]), 0)

    @property
    def commands(self) -> list[list[str]]:
        return [argv for argv, _cwd, _env in self.calls]


@pytest.fixture()
def aep_project(tmp_path: Path) -> Path:
    """Create a minimal AEP checkout with one proposal."""
    project = tmp_path / "aep"
    content = project / "aep" / "general" / "0121"
    content.mkdir(parents=True)
    (content / "aep.md").write_text("# Resource-oriented design\n", encoding="utf-8")
    return project


@pytest.fixture()
def site_config(aep_project: Path, tmp_path: Path) -> SiteConfig:
    """Default config with the generator checkout inside ``tmp_path``."""
    return default_config(aep_project, tmp_path / "site-generator")


@pytest.fixture()
def runner() -> FakeRunner:
    return FakeRunner()
