"""
Translate the VMware tools configuration into a salt-minion config.

tools.conf is INI-like. The ``[salt_minion]`` section is copied
into ``/etc/salt/minion`` with ``key=value`` rewritten as
``key: value``, after a header comment and one injected setting.
If tools.conf does not exist yet, it is created holding an empty
``[salt_minion]`` section so the administrator has a place to
put configuration.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .errors import ConfigTranslationFailed
from .models import MinionLayout

logger = logging.getLogger("svtminion.translator")

CONF_HEADER = "# Minion configuration file - created by vmtools salt script"
INJECTED_SETTINGS = ["enable_fqdns_grains: False"]


def extract_section(text: str, section: str) -> Optional[list[tuple[str, str]]]:
    """Return the ``key=value`` pairs of ``[section]``, or None if it is absent.

    Blank lines, comments, and lines without ``=`` are skipped.
    Values are split at the first ``=`` and trimmed.
    """
    pairs: list[tuple[str, str]] = []
    found = False
    in_section = False
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith(("#", ";")):
            continue
        if line.startswith("["):
            if in_section:
                break
            in_section = line == f"[{section}]"
            found = found or in_section
            continue
        if not in_section:
            continue
        if "=" not in line:
            logger.debug("Skipping line '%s'", raw)
            continue
        key, _, value = line.partition("=")
        pairs.append((key.strip(), value.strip()))
    return pairs if found else None


def render_minion_conf(pairs: list[tuple[str, str]]) -> str:
    lines = [CONF_HEADER, *INJECTED_SETTINGS]
    lines.extend(f"{key}: {value}" for key, value in pairs)
    return "\n".join(lines) + "\n"


def translate_config(layout: MinionLayout, section: str = "salt_minion") -> Path:
    """Write the minion configuration from the VMware tools configuration.

    Args:
        layout: Filesystem layout with tools.conf and minion config paths.
        section: tools.conf section holding the minion settings.

    Returns:
        Path to the written minion configuration file.

    Raises:
        ConfigTranslationFailed: If either file cannot be read or written.
    """
    tools_conf = layout.vmtools_conf
    try:
        if not tools_conf.exists():
            tools_conf.parent.mkdir(parents=True, exist_ok=True)
            tools_conf.write_text(f"[{section}]\n", encoding="utf-8")
            logger.warning("Creating empty configuration file %s", tools_conf)
            pairs: list[tuple[str, str]] = []
        else:
            found = extract_section(tools_conf.read_text(encoding="utf-8"), section)
            if found is None:
                logger.warning(
                    "No [%s] section in %s, minion gets default configuration",
                    section, tools_conf,
                )
                pairs = []
            else:
                pairs = found

        layout.conf_dir.mkdir(parents=True, exist_ok=True)
        layout.minion_conf.write_text(render_minion_conf(pairs), encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigTranslationFailed(f"cannot translate {tools_conf}: {exc}") from exc

    logger.info("Wrote %d setting(s) to %s", len(pairs), layout.minion_conf)
    return layout.minion_conf
