"""Shared test fixtures for svtminion."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from svtminion.models import MinionSettings


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep the host's SVTMINION_* variables out of the tests."""
    for name in ("SVTMINION_ROOT", "SVTMINION_CONFIG", "SVTMINION_VERSION", "SVTMINION_BASE_URL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_logger():
    """Undo whatever setup_logging did to the package logger."""
    yield
    logger = logging.getLogger("svtminion")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def minion_root(tmp_path: Path) -> Path:
    """Provide an empty filesystem root for a minion layout."""
    root = tmp_path / "root"
    root.mkdir()
    return root


@pytest.fixture
def settings(minion_root: Path) -> MinionSettings:
    """Settings rooted at the scratch root, with no waiting."""
    return MinionSettings(root=minion_root, grace_period=0, poll_interval=0.01)


@pytest.fixture
def installed_root(settings: MinionSettings) -> Path:
    """A root with the minion executable, config, and service files in place."""
    layout = settings.layout
    layout.salt_dir.mkdir(parents=True)
    layout.marker.write_text("#!/bin/sh\n")
    layout.marker.chmod(0o755)
    layout.conf_dir.mkdir(parents=True)
    layout.minion_conf.write_text("enable_fqdns_grains: False\n")
    root = settings.root
    for d in ("var/run/salt", "var/cache/salt", "var/log/salt", "etc/init.d",
              "usr/lib/systemd/system"):
        (root / d).mkdir(parents=True, exist_ok=True)
    (root / "etc/init.d/salt-minion").write_text("#!/bin/sh\n")
    (root / "usr/lib/systemd/system/salt-minion.service").write_text("[Unit]\n")
    (root / "usr/lib/systemd/system/other.service").write_text("[Unit]\n")
    return root
