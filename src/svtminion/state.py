"""
Lifecycle state of the minion for a single invocation.

The state lives in one LifecycleContext owned by the CLI and handed
to every component that may change it. Four of the six states are
sticky: once set they are reported verbatim instead of being
re-derived from what is on disk.
"""

from __future__ import annotations

import logging
import threading
from enum import IntEnum

from .errors import UnknownStatus
from .models import MinionLayout

logger = logging.getLogger("svtminion.state")

HISTORY_LIMIT = 50


class LifecycleState(IntEnum):
    """Installer status codes; the value is the process exit code for --status."""

    INSTALLED = 0
    INSTALLING = 1
    NOT_INSTALLED = 2
    INSTALL_FAILED = 3
    REMOVING = 4
    REMOVE_FAILED = 5

    @classmethod
    def from_value(cls, value: object) -> "LifecycleState":
        """Coerce an ordinal into a state.

        Raises:
            UnknownStatus: If ``value`` is not one of the known ordinals.
        """
        try:
            return cls(value)
        except ValueError:
            raise UnknownStatus(value) from None


STICKY_STATES = frozenset({
    LifecycleState.INSTALLING,
    LifecycleState.INSTALL_FAILED,
    LifecycleState.REMOVING,
    LifecycleState.REMOVE_FAILED,
})


class LifecycleContext:
    """Holder of the current lifecycle state.

    Writes go through :meth:`set`, which records the transition.
    The lock is re-entrant because cleanup may run while a handler
    is between two writes on the same thread.
    """

    def __init__(self, state: LifecycleState = LifecycleState.NOT_INSTALLED):
        self._lock = threading.RLock()
        self._state = state
        self.history: list[tuple[LifecycleState, LifecycleState]] = []

    @classmethod
    def at_startup(cls, layout: MinionLayout) -> "LifecycleContext":
        """Initial context: INSTALLED if the marker exists, else NOT_INSTALLED."""
        if layout.marker.is_file():
            state = LifecycleState.INSTALLED
        else:
            state = LifecycleState.NOT_INSTALLED
        logger.debug("Status on startup is %s (%d)", state.name, state)
        return cls(state)

    @property
    def state(self) -> LifecycleState:
        with self._lock:
            return self._state

    def set(self, new_state: LifecycleState) -> LifecycleState:
        """Replace the current state and return the previous one."""
        with self._lock:
            old = self._state
            self._state = new_state
            if old != new_state:
                self.history.append((old, new_state))
                if len(self.history) > HISTORY_LIMIT:
                    self.history = self.history[-HISTORY_LIMIT:]
                logger.debug("Status %s -> %s", old.name, new_state.name)
            return old

    @property
    def is_sticky(self) -> bool:
        return self.state in STICKY_STATES


def resolve_status(ctx: LifecycleContext, layout: MinionLayout) -> LifecycleState:
    """Discover the current status.

    Sticky states are returned unchanged. Otherwise the presence of
    the minion executable decides between INSTALLED and NOT_INSTALLED.

    Args:
        ctx: Shared lifecycle context; updated in place.
        layout: Filesystem layout holding the marker.

    Returns:
        The resolved LifecycleState.
    """
    current = ctx.state
    if current in STICKY_STATES:
        return current
    if layout.marker.is_file():
        ctx.set(LifecycleState.INSTALLED)
    else:
        ctx.set(LifecycleState.NOT_INSTALLED)
    return ctx.state
