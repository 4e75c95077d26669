"""
Pydantic models for minion settings and the on-disk layout.

Every path the lifecycle touches is derived from a single root
prefix, so a whole installation can be exercised under a scratch
directory as easily as under ``/``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from . import MINION_ROOT

DEFAULT_BASE_URL = "https://repo.saltproject.io/salt/singlebin"
DEFAULT_VERSION = "3003"
SETTINGS_FILE = "etc/vmware-tools/svtminion.yaml"

# Removed on uninstall, relative to the root prefix. Entries may be globs.
REMOVE_PATTERNS = [
    "opt/saltstack",
    "etc/salt",
    "var/run/salt",
    "var/cache/salt",
    "var/log/salt",
    "etc/init.d/salt*",
    "usr/lib/systemd/system/salt*.service",
]

# Where a package-manager install of salt-minion would put its executable.
STANDARD_INSTALL_PATHS = [
    "usr/bin/salt-minion",
    "usr/local/bin/salt-minion",
    "usr/sbin/salt-minion",
]


def _rooted(root: Path, relative: str) -> Path:
    return root / relative.lstrip("/")


class MinionLayout(BaseModel):
    """Filesystem locations used by the minion, all under ``root``."""

    root: Path
    agent_name: str = "salt"

    @property
    def base_location(self) -> Path:
        return _rooted(self.root, "opt/saltstack")

    @property
    def salt_dir(self) -> Path:
        return self.base_location / "salt"

    @property
    def marker(self) -> Path:
        """The minion executable; its presence means 'installed'."""
        return self.salt_dir / self.agent_name

    @property
    def conf_dir(self) -> Path:
        return _rooted(self.root, "etc/salt")

    @property
    def minion_conf(self) -> Path:
        return self.conf_dir / "minion"

    @property
    def vmtools_conf(self) -> Path:
        return _rooted(self.root, "etc/vmware-tools/tools.conf")

    @property
    def log_dir(self) -> Path:
        return _rooted(self.root, "var/log/salt")

    def removal_targets(self) -> list[Path]:
        """Expand the removal list into paths that currently exist."""
        targets: list[Path] = []
        for pattern in REMOVE_PATTERNS:
            if any(ch in pattern for ch in "*?["):
                targets.extend(sorted(self.root.glob(pattern)))
            else:
                path = _rooted(self.root, pattern)
                if path.exists() or path.is_symlink():
                    targets.append(path)
        return targets

    def standard_install_paths(self) -> list[Path]:
        return [_rooted(self.root, p) for p in STANDARD_INSTALL_PATHS]


class MinionSettings(BaseModel):
    """Tunables for fetching, configuring, and supervising the minion.

    Attributes:
        root: Filesystem prefix every layout path hangs off.
        agent_name: Executable name of the minion binary.
        version: Salt release to fetch.
        base_url: Repository holding the single-binary releases.
        package_name: Archive file name within the release directory.
        checksum_name: SHA3-512 checksum file name within the release directory.
        verify_checksum: Whether to verify the archive against the checksum file.
        grace_period: Seconds to wait for a terminated minion to exit.
        poll_interval: Seconds between supervisor process checks.
        section_name: tools.conf section holding the minion configuration.
    """

    model_config = ConfigDict(extra="forbid")

    root: Path = Field(default_factory=lambda: Path(MINION_ROOT))
    agent_name: str = "salt"
    version: str = DEFAULT_VERSION
    base_url: str = DEFAULT_BASE_URL
    package_name: str = "salt-3003-3-linux-amd64.tar.gz"
    checksum_name: str = "salt-3003_SHA3_512"
    verify_checksum: bool = True
    grace_period: float = Field(default=5, ge=0)
    poll_interval: float = Field(default=5, gt=0)
    section_name: str = "salt_minion"

    @property
    def layout(self) -> MinionLayout:
        return MinionLayout(root=self.root, agent_name=self.agent_name)

    @property
    def package_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.version}/{self.package_name}"

    @property
    def checksum_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.version}/{self.checksum_name}"


def load_settings(config_path: Optional[Path] = None, **overrides) -> MinionSettings:
    """Build settings from defaults, an optional YAML file, and the environment.

    Precedence, lowest first: built-in defaults, the YAML file,
    ``SVTMINION_*`` environment variables, explicit keyword overrides.

    Args:
        config_path: YAML settings file. Defaults to ``$SVTMINION_CONFIG``
            or ``<root>/etc/vmware-tools/svtminion.yaml``.
        **overrides: Field values that win over everything else.

    Returns:
        Validated MinionSettings.

    Raises:
        pydantic.ValidationError: If the merged values are invalid.
    """
    data: dict = {}

    root = Path(overrides.get("root") or os.environ.get("SVTMINION_ROOT", MINION_ROOT))
    if config_path is None:
        env_path = os.environ.get("SVTMINION_CONFIG")
        config_path = Path(env_path) if env_path else _rooted(root, SETTINGS_FILE)

    if config_path.exists():
        loaded = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        if isinstance(loaded, dict):
            data.update(loaded)

    env_map = {
        "SVTMINION_ROOT": "root",
        "SVTMINION_VERSION": "version",
        "SVTMINION_BASE_URL": "base_url",
    }
    for env_name, field_name in env_map.items():
        value = os.environ.get(env_name)
        if value:
            data[field_name] = value

    data.update({k: v for k, v in overrides.items() if v is not None})
    return MinionSettings(**data)
