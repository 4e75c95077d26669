"""
Preflight checks run before the lifecycle commands.

  - ``check_dependencies``: is the minion executable there to be used?
  - ``find_standard_install`` / ``ensure_no_conflict``: is salt-minion
    already installed by the system package manager? The single-binary
    minion and a packaged one must never be installed side by side.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import ConflictingInstallation, DependencyMissing
from .models import MinionLayout
from .state import LifecycleContext, LifecycleState

logger = logging.getLogger("svtminion.preflight")


class DependencyStatus(str, Enum):
    """Status of a single dependency."""
    PRESENT = "present"
    MISSING = "missing"


@dataclass
class DependencyCheck:
    """Result of checking one dependency."""

    name: str
    path: Path
    status: DependencyStatus

    @property
    def ok(self) -> bool:
        return self.status == DependencyStatus.PRESENT


@dataclass
class DependencyReport:
    """Combined result of all dependency checks."""

    checks: list[DependencyCheck] = field(default_factory=list)

    @property
    def all_ok(self) -> bool:
        return all(c.ok for c in self.checks)

    @property
    def missing(self) -> list[DependencyCheck]:
        return [c for c in self.checks if not c.ok]

    @property
    def exit_code(self) -> int:
        return 0 if self.all_ok else 1


def _check_path(name: str, path: Path) -> DependencyCheck:
    status = DependencyStatus.PRESENT if path.is_file() else DependencyStatus.MISSING
    return DependencyCheck(name=name, path=path, status=status)


def check_dependencies(ctx: LifecycleContext, layout: MinionLayout) -> DependencyReport:
    """Check that the salt-minion executable is available.

    Updates the lifecycle state from what is found: INSTALLED when the
    executable exists, NOT_INSTALLED otherwise.

    Args:
        ctx: Shared lifecycle context.
        layout: Filesystem layout.

    Returns:
        DependencyReport; ``exit_code`` is 0 when everything is present.
    """
    report = DependencyReport(checks=[_check_path("salt-minion", layout.marker)])

    if report.all_ok:
        ctx.set(LifecycleState.INSTALLED)
    else:
        ctx.set(LifecycleState.NOT_INSTALLED)
        for check in report.missing:
            logger.error("%s", DependencyMissing(f"{check.name} not found at {check.path}"))
    return report


def find_standard_install(layout: MinionLayout) -> Optional[Path]:
    """Return the path of a package-manager salt-minion, if one exists."""
    for path in layout.standard_install_paths():
        if path.exists():
            return path
    return None


def ensure_no_conflict(layout: MinionLayout) -> None:
    """Refuse to go on when a standard salt-minion installation is present.

    Raises:
        ConflictingInstallation: If one is found.
    """
    existing = find_standard_install(layout)
    if existing is not None:
        raise ConflictingInstallation(str(existing))
