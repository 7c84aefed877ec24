"""Doctor: preflight checks before running the site build."""

from __future__ import annotations

import enum
import logging
import shutil
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aepsite.config import SiteConfig

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("git", "npm", "npx")


class Severity(enum.Enum):
    """Severity level for a check result."""

    OK = "ok"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Check:
    """Result of a single preflight check."""

    name: str
    severity: Severity
    description: str


def _check_tools() -> list[Check]:
    """Executables the pipeline shells out to."""
    checks: list[Check] = []
    for tool in REQUIRED_TOOLS:
        location = shutil.which(tool)
        if location is None:
            checks.append(
                Check("tools", Severity.ERROR, f"'{tool}' not found on PATH.")
            )
        else:
            checks.append(Check("tools", Severity.OK, f"'{tool}' found at {location}."))
    return checks


def _check_aep_location(config: SiteConfig) -> list[Check]:
    """The AEP checkout should hold the ``aep/`` content tree."""
    location = config.aep_location
    if not location.is_dir():
        return [
            Check("aep_location", Severity.ERROR, f"AEP location '{location}' does not exist.")
        ]
    if not (location / "aep").is_dir():
        return [
            Check(
                "aep_location",
                Severity.WARNING,
                f"No 'aep/' content directory in '{location}'. Is this an AEP checkout?",
            )
        ]
    return [Check("aep_location", Severity.OK, f"AEP content found in '{location}'.")]


def _check_checkouts(config: SiteConfig) -> list[Check]:
    """Which repositories are present and which will be cloned."""
    checks: list[Check] = []
    for repo in config.repositories:
        if repo.path.is_dir():
            checks.append(
                Check("checkouts", Severity.OK, f"{repo.name} present at {repo.path}.")
            )
        else:
            checks.append(
                Check(
                    "checkouts",
                    Severity.INFO,
                    f"{repo.name} missing at {repo.path}; will clone {repo.url}.",
                )
            )
    return checks


def run_checks(config: SiteConfig) -> list[Check]:
    """Run all preflight checks and return results."""
    results: list[Check] = []
    results.extend(_check_tools())
    results.extend(_check_aep_location(config))
    results.extend(_check_checkouts(config))
    errors = sum(1 for c in results if c.severity == Severity.ERROR)
    if errors:
        logger.debug("doctor found %d error(s)", errors)
    return results
