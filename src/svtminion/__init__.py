"""
svtminion: Salt minion lifecycle manager for VMware tools.

Fetches the Salt single-binary minion, configures it from the
VMware tools configuration, starts it, keeps an eye on it,
and removes it again cleanly when asked.
"""

import os

__version__ = "2021.9.7"
__author__ = "svtminion contributors"

MINION_ROOT = os.environ.get("SVTMINION_ROOT", "/")
