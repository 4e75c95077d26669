"""Tests for process location and termination.

psutil is mocked so no real processes are scanned or signalled.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import psutil

from svtminion.process import find_minion_pid, launch_minion, terminate_process


def _proc(pid: int, name: str, cmdline=None, status=psutil.STATUS_SLEEPING) -> MagicMock:
    proc = MagicMock()
    proc.info = {"pid": pid, "name": name, "cmdline": cmdline or [], "status": status}
    return proc


class TestFindMinionPid:
    """Tests for find_minion_pid."""

    @patch("svtminion.process.psutil.process_iter")
    def test_none_running(self, mock_iter: MagicMock) -> None:
        mock_iter.return_value = [_proc(1, "systemd"), _proc(50, "sshd")]
        assert find_minion_pid("salt") is None

    @patch("svtminion.process.psutil.process_iter")
    def test_matches_by_name(self, mock_iter: MagicMock) -> None:
        mock_iter.return_value = [_proc(1, "systemd"), _proc(200, "salt")]
        assert find_minion_pid("salt") == 200

    @patch("svtminion.process.psutil.process_iter")
    def test_matches_by_cmdline(self, mock_iter: MagicMock) -> None:
        mock_iter.return_value = [
            _proc(300, "python3", ["/opt/saltstack/salt/salt", "minion"]),
        ]
        assert find_minion_pid("salt") == 300

    @patch("svtminion.process.psutil.process_iter")
    def test_partial_name_does_not_match(self, mock_iter: MagicMock) -> None:
        mock_iter.return_value = [_proc(10, "salt-api", ["/usr/bin/salt-api"])]
        assert find_minion_pid("salt") is None

    @patch("svtminion.process.psutil.process_iter")
    def test_first_match_wins(self, mock_iter: MagicMock) -> None:
        mock_iter.return_value = [_proc(100, "salt"), _proc(101, "salt")]
        assert find_minion_pid("salt") == 100

    @patch("svtminion.process.psutil.process_iter")
    def test_skips_own_process(self, mock_iter: MagicMock) -> None:
        mock_iter.return_value = [_proc(os.getpid(), "salt"), _proc(999999, "salt")]
        assert find_minion_pid("salt") == 999999

    @patch("svtminion.process.psutil.process_iter")
    def test_skips_zombies(self, mock_iter: MagicMock) -> None:
        mock_iter.return_value = [
            _proc(100, "salt", status=psutil.STATUS_ZOMBIE),
            _proc(101, "salt"),
        ]
        assert find_minion_pid("salt") == 101

    @patch("svtminion.process.psutil.process_iter")
    def test_only_zombie_means_not_found(self, mock_iter: MagicMock) -> None:
        mock_iter.return_value = [_proc(100, "salt", status=psutil.STATUS_ZOMBIE)]
        assert find_minion_pid("salt") is None

    @patch("svtminion.process.psutil.process_iter")
    def test_scan_error_means_not_found(self, mock_iter: MagicMock) -> None:
        mock_iter.side_effect = psutil.Error("boom")
        assert find_minion_pid("salt") is None


class TestTerminateProcess:
    """Tests for terminate_process."""

    @patch("svtminion.process.psutil.wait_procs")
    @patch("svtminion.process.psutil.Process")
    def test_exits_in_grace_period(self, mock_process: MagicMock, mock_wait: MagicMock) -> None:
        proc = mock_process.return_value
        mock_wait.return_value = ([proc], [])
        assert terminate_process(123, 5) is True
        proc.terminate.assert_called_once()
        mock_wait.assert_called_once_with([proc], timeout=5)

    @patch("svtminion.process.psutil.wait_procs")
    @patch("svtminion.process.psutil.Process")
    def test_survives_grace_period(self, mock_process: MagicMock, mock_wait: MagicMock) -> None:
        proc = mock_process.return_value
        mock_wait.return_value = ([], [proc])
        assert terminate_process(123, 5) is False

    @patch("svtminion.process.psutil.Process")
    def test_already_gone(self, mock_process: MagicMock) -> None:
        mock_process.side_effect = psutil.NoSuchProcess(123)
        assert terminate_process(123, 5) is True

    @patch("svtminion.process.psutil.Process")
    def test_access_denied(self, mock_process: MagicMock) -> None:
        mock_process.return_value.terminate.side_effect = psutil.AccessDenied(123)
        assert terminate_process(123, 5) is False


class TestLaunchMinion:
    """Tests for launch_minion."""

    @patch("svtminion.process.subprocess.Popen")
    def test_detached_launch(self, mock_popen: MagicMock) -> None:
        mock_popen.return_value.pid = 4321
        pid = launch_minion(Path("/opt/saltstack/salt/salt"))
        assert pid == 4321
        args, kwargs = mock_popen.call_args
        assert args[0] == ["/opt/saltstack/salt/salt", "minion"]
        assert kwargs["start_new_session"] is True
