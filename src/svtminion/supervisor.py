"""
Supervisor loop run after a successful install.

Starts the minion in the background, then checks every few seconds
that it is still there. When it disappears the lifecycle state
leaves INSTALLED and the loop ends; the minion is never restarted.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .models import MinionSettings
from .process import find_minion_pid, launch_minion
from .state import LifecycleContext, LifecycleState

logger = logging.getLogger("svtminion.supervisor")


class Supervisor:
    """Watches the minion while the lifecycle state is INSTALLED.

    Args:
        ctx: Shared lifecycle context.
        settings: Minion settings.
        sleep: Sleep function, replaceable in tests.
    """

    def __init__(
        self,
        ctx: LifecycleContext,
        settings: MinionSettings,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.ctx = ctx
        self.settings = settings
        self.layout = settings.layout
        self._sleep = sleep or time.sleep
        self.iterations = 0

    def start_minion(self) -> Optional[int]:
        """Launch the installed minion. Returns its pid, or None if it would not start."""
        try:
            return launch_minion(self.layout.marker)
        except OSError as exc:
            logger.error("Could not start %s: %s", self.layout.marker, exc)
            return None

    def check(self) -> LifecycleState:
        """One supervision step: reconcile the state with the process table."""
        if find_minion_pid(self.settings.agent_name) is None:
            self.ctx.set(LifecycleState.REMOVE_FAILED)
            if not self.layout.base_location.is_dir():
                self.ctx.set(LifecycleState.NOT_INSTALLED)
            logger.warning(
                "salt-minion process gone, status now %s", self.ctx.state.name,
            )
        return self.ctx.state

    def run(self) -> LifecycleState:
        """Start the minion and poll until it is gone or the invocation is interrupted."""
        if self.ctx.state != LifecycleState.INSTALLED:
            return self.ctx.state

        self.start_minion()
        logger.info(
            "Supervising salt-minion every %ss (Ctrl+C to stop)",
            self.settings.poll_interval,
        )
        while self.ctx.state == LifecycleState.INSTALLED:
            self._sleep(self.settings.poll_interval)
            self.iterations += 1
            self.check()
        return self.ctx.state
