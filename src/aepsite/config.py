"""Build configuration: defaults, ``.aepsite.yml`` loading, derived environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from aepsite.errors import ConfigError
from aepsite.scaffold import check_scaffold_dir

if TYPE_CHECKING:
    from collections.abc import Mapping

CONFIG_FILENAME = ".aepsite.yml"
DEFAULT_SG_DIRECTORY = Path("/tmp/site-generator")  # noqa: S108
DEFAULT_BROWSER = "chromium"

# Clone order matters: the linters are cloned inside the generator checkout.
_DEFAULT_REPOSITORIES: tuple[tuple[str, str, str], ...] = (
    ("site-generator", "https://github.com/aep-dev/site-generator.git", "."),
    ("api-linter", "https://github.com/aep-dev/api-linter.git", "api-linter"),
    (
        "aep-openapi-linter",
        "https://github.com/aep-dev/aep-openapi-linter.git",
        "aep-openapi-linter",
    ),
)

DEFAULT_SCAFFOLD_DIRS: tuple[str, ...] = (
    "src/content/docs/tooling/linter/rules",
    "src/content/docs/tooling/openapi-linter/rules",
    "src/content/docs/tooling/website",
)

_REPOSITORY_KEYS = frozenset({"url", "path", "branch"})


@dataclass(frozen=True)
class Repository:
    """An external repository that must be checked out before building."""

    name: str
    url: str
    path: Path
    branch: str | None = None


@dataclass(frozen=True)
class SiteConfig:
    """Everything the pipeline needs to know about one build."""

    aep_location: Path
    sg_directory: Path
    repositories: tuple[Repository, ...]
    scaffold_dirs: tuple[str, ...] = DEFAULT_SCAFFOLD_DIRS
    install_browsers: bool = True
    browser: str = DEFAULT_BROWSER
    source: Path | None = field(default=None, compare=False)

    def repository(self, name: str) -> Repository:
        """Return the repository called *name*."""
        for repo in self.repositories:
            if repo.name == name:
                return repo
        msg = f"unknown repository '{name}'"
        raise KeyError(msg)


def _resolve_repo_path(sg_directory: Path, raw: str | Path) -> Path:
    path = Path(raw)
    if path.is_absolute():
        return path
    if str(path) in ("", "."):
        return sg_directory
    return sg_directory / path


def _default_repositories(sg_directory: Path) -> tuple[Repository, ...]:
    return tuple(
        Repository(name=name, url=url, path=_resolve_repo_path(sg_directory, rel))
        for name, url, rel in _DEFAULT_REPOSITORIES
    )


def default_config(aep_location: Path, sg_directory: Path | None = None) -> SiteConfig:
    """Return the stock configuration for building from *aep_location*."""
    sg_dir = sg_directory or DEFAULT_SG_DIRECTORY
    return SiteConfig(
        aep_location=aep_location,
        sg_directory=sg_dir,
        repositories=_default_repositories(sg_dir),
    )


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        msg = f"{path.name}: invalid YAML ({exc})"
        raise ConfigError(msg) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"{path.name} must be a YAML mapping"
        raise ConfigError(msg)
    return data


def _parse_repositories(
    raw: object,
    sg_directory: Path,
    filename: str,
) -> tuple[Repository, ...]:
    """Merge the ``repositories`` block over the defaults, keeping default order."""
    repos: dict[str, Repository] = {r.name: r for r in _default_repositories(sg_directory)}
    if raw is None:
        return tuple(repos.values())
    if not isinstance(raw, dict):
        msg = f"{filename}: 'repositories' must be a mapping of name -> settings"
        raise ConfigError(msg)

    for name, settings in raw.items():
        if not isinstance(settings, dict):
            msg = f"{filename}: repository '{name}' must be a mapping"
            raise ConfigError(msg)

        unknown = sorted(set(settings) - _REPOSITORY_KEYS)
        if unknown:
            keys = ", ".join(map(str, unknown))
            msg = f"{filename}: repository '{name}': unknown key(s): {keys}"
            raise ConfigError(msg)

        base = repos.get(str(name))
        url = settings.get("url", base.url if base else None)
        if not isinstance(url, str) or not url.strip():
            msg = f"{filename}: repository '{name}' missing required 'url' field"
            raise ConfigError(msg)

        raw_path = settings.get("path")
        if raw_path is None:
            path = base.path if base else sg_directory / str(name)
        elif isinstance(raw_path, str):
            path = _resolve_repo_path(sg_directory, raw_path)
        else:
            msg = f"{filename}: repository '{name}' has a non-string 'path'"
            raise ConfigError(msg)

        branch = settings.get("branch")
        if branch is not None and not isinstance(branch, str):
            msg = f"{filename}: repository '{name}' has a non-string 'branch'"
            raise ConfigError(msg)

        repos[str(name)] = Repository(name=str(name), url=url, path=path, branch=branch)

    return tuple(repos.values())


def load_config(
    project_root: Path,
    config_path: Path | None = None,
    *,
    sg_directory: Path | None = None,
) -> SiteConfig:
    """Load the build configuration for the AEP checkout at *project_root*.

    ``.aepsite.yml`` in *project_root* is optional; an explicit *config_path*
    must exist. A *sg_directory* override wins over the file.
    """
    if config_path is not None:
        if not config_path.is_file():
            msg = f"config file not found: {config_path}"
            raise ConfigError(msg)
        source: Path | None = config_path
    else:
        candidate = project_root / CONFIG_FILENAME
        source = candidate if candidate.is_file() else None

    data = _read_yaml(source) if source is not None else {}
    filename = source.name if source is not None else CONFIG_FILENAME

    known = {"sg_directory", "repositories", "scaffold_dirs", "install_browsers", "browser"}
    unknown = sorted(set(data) - known)
    if unknown:
        msg = f"{filename}: unknown key(s): {', '.join(unknown)}"
        raise ConfigError(msg)

    sg_dir = sg_directory
    if sg_dir is None:
        raw_sg = data.get("sg_directory")
        if raw_sg is None:
            sg_dir = DEFAULT_SG_DIRECTORY
        elif isinstance(raw_sg, str) and raw_sg.strip():
            sg_dir = Path(raw_sg).expanduser()
            if not sg_dir.is_absolute():
                sg_dir = project_root / sg_dir
        else:
            msg = f"{filename}: 'sg_directory' must be a non-empty string"
            raise ConfigError(msg)

    config = default_config(project_root, sg_dir)
    repositories = _parse_repositories(data.get("repositories"), sg_dir, filename)

    scaffold_dirs = data.get("scaffold_dirs", list(DEFAULT_SCAFFOLD_DIRS))
    if not isinstance(scaffold_dirs, list) or not all(isinstance(d, str) for d in scaffold_dirs):
        msg = f"{filename}: 'scaffold_dirs' must be a list of strings"
        raise ConfigError(msg)
    for rel in scaffold_dirs:
        try:
            check_scaffold_dir(rel)
        except ConfigError as exc:
            msg = f"{filename}: {exc}"
            raise ConfigError(msg) from exc

    install_browsers = data.get("install_browsers", True)
    if not isinstance(install_browsers, bool):
        msg = f"{filename}: 'install_browsers' must be true or false"
        raise ConfigError(msg)

    browser = data.get("browser", DEFAULT_BROWSER)
    if not isinstance(browser, str) or not browser.strip():
        msg = f"{filename}: 'browser' must be a non-empty string"
        raise ConfigError(msg)

    return replace(
        config,
        repositories=repositories,
        scaffold_dirs=tuple(scaffold_dirs),
        install_browsers=install_browsers,
        browser=browser,
        source=source,
    )


def environment_variables(config: SiteConfig) -> dict[str, str]:
    """Return the variables the site generator reads, in export order.

    The linter locations follow the configured checkout paths.
    """
    paths = {repo.name: repo.path for repo in config.repositories}
    linter = paths.get("api-linter", config.sg_directory / "api-linter")
    openapi_linter = paths.get("aep-openapi-linter", config.sg_directory / "aep-openapi-linter")
    return {
        "AEP_LOCATION": str(config.aep_location),
        "SG_DIRECTORY": str(config.sg_directory),
        "AEP_LINTER_LOC": str(linter),
        "AEP_OPENAPI_LINTER_LOC": str(openapi_linter),
    }


def build_environment(
    config: SiteConfig,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Merge the generator variables over *base* (default: ``os.environ``)."""
    env = dict(os.environ if base is None else base)
    env.update(environment_variables(config))
    return env
