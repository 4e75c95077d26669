"""
Remove the salt-minion.

Steps:
  1. Note when there is nothing installed (removal still goes ahead,
     so leftovers of a half-finished install get cleaned up)
  2. Mark the lifecycle REMOVING
  3. Terminate the running minion and give it a grace period
  4. If it is still running, mark REMOVE_FAILED and stop
  5. Delete every installed file and directory, mark NOT_INSTALLED
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from .errors import NotInstalledError, ProcessStillRunning
from .models import MinionSettings
from .process import find_minion_pid, terminate_process
from .state import LifecycleContext, LifecycleState

logger = logging.getLogger("svtminion.uninstaller")


@dataclass
class RemoveResult:
    """Outcome of a remove run.

    Attributes:
        errors: Failures recorded along the way.
        removed: Paths that were deleted.
    """

    errors: list[Exception] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def _delete_path(path: Path) -> bool:
    """Delete a file, symlink, or directory tree. Returns True on success."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
        return True
    except FileNotFoundError:
        return True
    except OSError as exc:
        logger.warning("Could not remove %s: %s", path, exc)
        return False


class Uninstaller:
    """Stops the minion and deletes its files, keeping the lifecycle state current.

    Args:
        ctx: Shared lifecycle context.
        settings: Minion settings.
    """

    def __init__(self, ctx: LifecycleContext, settings: MinionSettings):
        self.ctx = ctx
        self.settings = settings
        self.layout = settings.layout

    def remove(self) -> RemoveResult:
        result = RemoveResult()

        if not self.layout.marker.is_file():
            self.ctx.set(LifecycleState.NOT_INSTALLED)
            err = NotInstalledError(f"salt-minion is not installed at {self.layout.marker}")
            logger.warning("%s, removing leftovers anyway", err)
            result.errors.append(err)

        self.ctx.set(LifecycleState.REMOVING)

        name = self.settings.agent_name
        pid = find_minion_pid(name)
        if pid is not None:
            terminate_process(pid, self.settings.grace_period)

        pid = find_minion_pid(name)
        if pid is not None:
            err = ProcessStillRunning(pid)
            logger.error("%s after %ss, not removing files", err, self.settings.grace_period)
            result.errors.append(err)
            self.ctx.set(LifecycleState.REMOVE_FAILED)
            return result

        for path in self.layout.removal_targets():
            if _delete_path(path):
                result.removed.append(path)
        logger.info("Removed %d path(s)", len(result.removed))

        self.ctx.set(LifecycleState.NOT_INSTALLED)
        return result
