"""
Exit and interrupt handling.

Whatever the invocation was doing when it ended, the lifecycle
state is settled to something terminal:

  INSTALLING -> INSTALL_FAILED
  REMOVING   -> REMOVE_FAILED, or NOT_INSTALLED if the minion and
                its directory turn out to be gone after a grace period
  anything else -> NOT_INSTALLED
"""

from __future__ import annotations

import logging
import signal
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from .models import MinionSettings
from .process import find_minion_pid
from .state import LifecycleContext, LifecycleState

logger = logging.getLogger("svtminion.cleanup")


class CleanupHandler:
    """Settles the lifecycle state once, at the end of an invocation.

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
        self._sleep = sleep or time.sleep
        self._lock = threading.Lock()
        self._done = False

    def run(self) -> LifecycleState:
        """Reconcile the state. Only the first call does anything; never raises."""
        with self._lock:
            if self._done:
                return self.ctx.state
            self._done = True

        try:
            self._reconcile()
        except (KeyboardInterrupt, SystemExit) as exc:
            logger.warning("Cleanup interrupted (%s), status left at %s",
                           type(exc).__name__, self.ctx.state.name)
        except Exception as exc:
            logger.error("Cleanup failed: %s", exc)
        return self.ctx.state

    def _reconcile(self) -> None:
        current = self.ctx.state
        if current == LifecycleState.INSTALLING:
            self.ctx.set(LifecycleState.INSTALL_FAILED)
            logger.warning("Install interrupted, marking it failed")
        elif current == LifecycleState.REMOVING:
            self.ctx.set(LifecycleState.REMOVE_FAILED)
            self._sleep(self.settings.grace_period)
            if (
                find_minion_pid(self.settings.agent_name) is None
                and not self.settings.layout.base_location.is_dir()
            ):
                self.ctx.set(LifecycleState.NOT_INSTALLED)
            else:
                logger.warning("Removal interrupted before it completed")
        else:
            self.ctx.set(LifecycleState.NOT_INSTALLED)

    @contextmanager
    def guard(self) -> Iterator["CleanupHandler"]:
        """Run the wrapped block with cleanup guaranteed on the way out.

        SIGTERM is turned into SystemExit for the duration so the
        ``finally`` runs for it too; SIGINT already raises
        KeyboardInterrupt.
        """
        installed = threading.current_thread() is threading.main_thread()
        if installed:
            previous = signal.signal(signal.SIGTERM, _raise_exit)
        try:
            yield self
        except (KeyboardInterrupt, SystemExit) as exc:
            logger.info("Interrupted (%s), cleaning up", type(exc).__name__)
            raise
        except Exception:
            logger.exception("Unexpected failure, cleaning up")
            raise
        finally:
            self.run()
            if installed:
                signal.signal(signal.SIGTERM, previous if previous is not None else signal.SIG_DFL)


def _raise_exit(signum, frame):
    raise SystemExit(128 + signum)
