"""Exceptions raised by the minion lifecycle components."""

from __future__ import annotations


class MinionError(Exception):
    """Base class for all svtminion failures."""


class FetchFailed(MinionError):
    """Raised when download, verification, or extraction of the minion fails."""


class ConfigTranslationFailed(MinionError):
    """Raised when the minion configuration cannot be written."""


class ProcessStillRunning(MinionError):
    """Raised when the minion outlives its termination grace period."""

    def __init__(self, pid: int):
        super().__init__(f"salt-minion process {pid} still running")
        self.pid = pid


class NotInstalledError(MinionError):
    """Raised when removal is requested but nothing is installed."""


class UnknownStatus(MinionError):
    """Raised for a status value outside the lifecycle enumeration."""

    def __init__(self, value: object):
        super().__init__(f"unknown status value: {value!r}")
        self.value = value


class DependencyMissing(MinionError):
    """Raised when something the minion needs is not present."""


class ConflictingInstallation(MinionError):
    """Raised when a standard salt-minion installation already exists."""

    def __init__(self, path: str):
        super().__init__(f"existing salt-minion installation found at {path}")
        self.path = path
