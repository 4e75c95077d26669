"""Tests for the supervisor loop."""

from __future__ import annotations

import sys
import time
from unittest.mock import MagicMock, patch

import pytest

from svtminion.state import LifecycleContext, LifecycleState
from svtminion.supervisor import Supervisor


@pytest.fixture
def mock_launch():
    with patch("svtminion.supervisor.launch_minion") as m:
        m.return_value = 1234
        yield m


class TestSupervisor:
    """Tests for Supervisor.run and Supervisor.check."""

    def test_not_entered_unless_installed(self, settings, mock_launch) -> None:
        ctx = LifecycleContext(LifecycleState.INSTALL_FAILED)
        assert Supervisor(ctx, settings, sleep=MagicMock()).run() is LifecycleState.INSTALL_FAILED
        mock_launch.assert_not_called()

    def test_minion_gone_with_files(self, settings, installed_root, mock_launch) -> None:
        ctx = LifecycleContext(LifecycleState.INSTALLED)
        sleep = MagicMock()
        with patch("svtminion.supervisor.find_minion_pid", side_effect=[1234, 1234, None]):
            sup = Supervisor(ctx, settings, sleep=sleep)
            assert sup.run() is LifecycleState.REMOVE_FAILED

        assert sup.iterations == 3
        sleep.assert_called_with(settings.poll_interval)
        mock_launch.assert_called_once_with(settings.layout.marker)

    def test_minion_gone_without_files(self, settings, installed_root, mock_launch) -> None:
        ctx = LifecycleContext(LifecycleState.INSTALLED)

        def vanish(seconds):
            import shutil
            shutil.rmtree(settings.layout.base_location)

        with patch("svtminion.supervisor.find_minion_pid", return_value=None):
            assert Supervisor(ctx, settings, sleep=vanish).run() is LifecycleState.NOT_INSTALLED

    def test_check_with_process(self, settings, installed_root) -> None:
        ctx = LifecycleContext(LifecycleState.INSTALLED)
        with patch("svtminion.supervisor.find_minion_pid", return_value=99):
            assert Supervisor(ctx, settings).check() is LifecycleState.INSTALLED

    def test_launch_failure_is_logged(self, settings, installed_root) -> None:
        ctx = LifecycleContext(LifecycleState.INSTALLED)
        with patch("svtminion.supervisor.launch_minion", side_effect=PermissionError("noexec")):
            with patch("svtminion.supervisor.find_minion_pid", return_value=None):
                sup = Supervisor(ctx, settings, sleep=MagicMock())
                assert sup.run() is LifecycleState.REMOVE_FAILED

    def test_interrupt_ends_loop(self, settings, installed_root, mock_launch) -> None:
        ctx = LifecycleContext(LifecycleState.INSTALLED)
        sleep = MagicMock(side_effect=KeyboardInterrupt)
        with pytest.raises(KeyboardInterrupt):
            Supervisor(ctx, settings, sleep=sleep).run()
        assert ctx.state is LifecycleState.INSTALLED


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
class TestSupervisorRealProcess:
    """Supervisor.run against a real, short-lived minion executable."""

    def test_exited_minion_is_noticed(self, settings, installed_root) -> None:
        ctx = LifecycleContext(LifecycleState.INSTALLED)
        naps = []

        def nap(seconds):
            naps.append(seconds)
            if len(naps) > 200:
                raise RuntimeError(f"still {ctx.state.name} after {len(naps)} polls")
            time.sleep(0.05)

        sup = Supervisor(ctx, settings, sleep=nap)

        assert sup.run() is LifecycleState.REMOVE_FAILED
        assert sup.iterations < 200
