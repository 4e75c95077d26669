"""Locate, launch, and terminate the salt-minion process."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

import psutil

logger = logging.getLogger("svtminion.process")


def _matches(info: dict, name: str) -> bool:
    if info.get("name") == name:
        return True
    cmdline = info.get("cmdline") or []
    return bool(cmdline) and os.path.basename(cmdline[0]) == name


def find_minion_pid(name: str = "salt") -> Optional[int]:
    """Find the pid of the running minion, if any.

    Scans the process table for a process whose name or executable
    basename equals ``name``, skipping this process and zombies that
    have exited but not been reaped. When several match, the lowest
    pid wins.

    Args:
        name: Executable name of the minion.

    Returns:
        The pid, or None if no such process is running.
    """
    own_pid = os.getpid()
    try:
        for proc in psutil.process_iter(["pid", "name", "cmdline", "status"]):
            info = proc.info
            if info.get("pid") == own_pid:
                continue
            if info.get("status") == psutil.STATUS_ZOMBIE:
                continue
            if _matches(info, name):
                return info["pid"]
    except psutil.Error as exc:
        logger.debug("Process scan failed: %s", exc)
    return None


def terminate_process(pid: int, grace_period: float) -> bool:
    """Send SIGTERM to ``pid`` and wait up to ``grace_period`` seconds for it to exit.

    Returns:
        True if the process is gone, False if it is still alive.
    """
    try:
        proc = psutil.Process(pid)
        proc.terminate()
    except psutil.NoSuchProcess:
        return True
    except psutil.AccessDenied as exc:
        logger.error("Not allowed to terminate process %d: %s", pid, exc)
        return False

    logger.info("Sent SIGTERM to salt-minion (PID %d), waiting %ss", pid, grace_period)
    gone, alive = psutil.wait_procs([proc], timeout=grace_period)
    return not alive


def launch_minion(executable: Path) -> int:
    """Start ``<executable> minion`` detached from this process.

    Returns:
        The pid of the launched process.
    """
    proc = subprocess.Popen(
        [str(executable), "minion"],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )
    logger.info("Started %s minion in background (PID %d)", executable, proc.pid)
    return proc.pid
