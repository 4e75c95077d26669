"""
Install the salt-minion.

Steps:
  1. Mark the lifecycle INSTALLING
  2. Fetch and unpack the single-binary minion
  3. Write the minion configuration from tools.conf
  4. Mark INSTALLED if both worked and the executable is there,
     otherwise INSTALL_FAILED

Failures of steps 2 and 3 are or-ed into one result code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntFlag

from .errors import ConfigTranslationFailed, FetchFailed
from .fetcher import fetch_minion
from .models import MinionSettings
from .state import LifecycleContext, LifecycleState
from .translator import translate_config

logger = logging.getLogger("svtminion.installer")


class InstallFailure(IntFlag):
    """Bits of the install result code."""

    NONE = 0
    FETCH = 1
    CONFIG = 2


@dataclass
class InstallResult:
    """Outcome of an install run.

    Attributes:
        failures: Or-ed failure bits; NONE on success.
        errors: Messages of the failures, in order.
    """

    failures: InstallFailure = InstallFailure.NONE
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failures == InstallFailure.NONE

    @property
    def exit_code(self) -> int:
        return int(self.failures)


class Installer:
    """Fetches and configures the minion, keeping the lifecycle state current.

    Args:
        ctx: Shared lifecycle context.
        settings: Minion settings.
    """

    def __init__(self, ctx: LifecycleContext, settings: MinionSettings):
        self.ctx = ctx
        self.settings = settings
        self.layout = settings.layout

    def install(self) -> InstallResult:
        result = InstallResult()
        self.ctx.set(LifecycleState.INSTALLING)

        try:
            fetch_minion(self.settings)
        except FetchFailed as exc:
            logger.error("Fetching salt-minion failed: %s", exc)
            result.failures |= InstallFailure.FETCH
            result.errors.append(str(exc))
            self.ctx.set(LifecycleState.INSTALL_FAILED)

        try:
            translate_config(self.layout, self.settings.section_name)
        except ConfigTranslationFailed as exc:
            logger.error("Configuring salt-minion failed: %s", exc)
            result.failures |= InstallFailure.CONFIG
            result.errors.append(str(exc))

        if result.ok and self.layout.marker.is_file():
            self.ctx.set(LifecycleState.INSTALLED)
            logger.info("salt-minion installed at %s", self.layout.marker)
        else:
            if result.ok:
                result.failures |= InstallFailure.FETCH
                result.errors.append(f"{self.layout.marker} missing after install")
            self.ctx.set(LifecycleState.INSTALL_FAILED)
        return result
