"""
svtminion CLI: salt-minion integration for VMware tools.

One action per invocation, chosen by flag in this order of
precedence: --status, --depends, --install, --remove. A successful
install hands over to the supervisor loop until interrupted.

Entry point: svtminion.cli:main
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from pydantic import ValidationError
from rich.console import Console

from . import __version__
from .cleanup import CleanupHandler
from .errors import ConflictingInstallation, UnknownStatus
from .installer import Installer
from .logs import setup_logging
from .models import MinionSettings, load_settings
from .preflight import check_dependencies, ensure_no_conflict
from .state import LifecycleContext, LifecycleState, resolve_status
from .supervisor import Supervisor
from .uninstaller import Uninstaller

logger = logging.getLogger("svtminion.cli")

console = Console()
err_console = Console(stderr=True)

EXIT_FAILURE = 1
SCRIPT_FAILED = 126


def _error(msg: str, log_file: Optional[Path]) -> None:
    """Log an error and point the user at the log file."""
    logger.error(msg)
    err_console.print(f"[bold red]ERROR:[/] {msg}", highlight=False)
    if log_file is not None:
        err_console.print(f"One or more errors found. See {log_file} for details.", highlight=False)


def status_exit_code(value: object) -> int:
    """Exit code for --status: the state ordinal, or SCRIPT_FAILED if unknown."""
    try:
        return int(LifecycleState.from_value(value))
    except UnknownStatus as exc:
        logger.error("%s", exc)
        return SCRIPT_FAILED


def _do_install(ctx: LifecycleContext, settings: MinionSettings, log_file: Optional[Path]) -> int:
    try:
        ensure_no_conflict(settings.layout)
    except ConflictingInstallation as exc:
        _error(f"{exc}, remove it before installing the VMware tools salt-minion", log_file)
        return EXIT_FAILURE

    console.print(f"Installing salt-minion {settings.version} to [cyan]{settings.layout.salt_dir}[/]")
    result = Installer(ctx, settings).install()
    if not result.ok:
        for msg in result.errors:
            _error(msg, log_file)
        return result.exit_code

    console.print("[green]salt-minion installed.[/]")
    Supervisor(ctx, settings).run()
    return result.exit_code


def _do_remove(ctx: LifecycleContext, settings: MinionSettings, log_file: Optional[Path]) -> int:
    console.print("Removing salt-minion")
    result = Uninstaller(ctx, settings).remove()
    for exc in result.errors:
        _error(str(exc), log_file)
    if ctx.state == LifecycleState.NOT_INSTALLED:
        console.print("[green]salt-minion removed.[/]")
    return result.exit_code


def dispatch(
    ctx: LifecycleContext,
    settings: MinionSettings,
    log_file: Optional[Path],
    status_chk: bool = False,
    depends: bool = False,
    install: bool = False,
    remove: bool = False,
) -> Optional[int]:
    """Run the selected action and return its exit code.

    Returns None when no action was selected.
    """
    if status_chk:
        state = resolve_status(ctx, settings.layout)
        logger.info("Status is %s", state.name)
        return status_exit_code(state)
    if depends:
        report = check_dependencies(ctx, settings.layout)
        for check in report.missing:
            _error(f"{check.name} not found at {check.path}", log_file)
        return report.exit_code
    if install:
        return _do_install(ctx, settings, log_file)
    if remove:
        return _do_remove(ctx, settings, log_file)
    return None


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-c", "--status", "status_chk", is_flag=True, help="Return status for this script.")
@click.option("-d", "--debug", is_flag=True, help="Enable debugging logging.")
@click.option("-e", "--depends", is_flag=True, help="Check dependencies required to run this script exist.")
@click.option("-i", "--install", is_flag=True, help="Install and activate the salt-minion.")
@click.option("-r", "--remove", is_flag=True, help="Deactivate and remove the salt-minion.")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging and messages.")
@click.version_option(version=__version__, prog_name="svtminion")
def main(
    status_chk: bool,
    debug: bool,
    depends: bool,
    install: bool,
    remove: bool,
    verbose: bool,
) -> None:
    """salt-minion vmtools integration script.

    Status codes returned by --status:
    0 installed, 1 installing, 2 notInstalled,
    3 installFailed, 4 removing, 5 removeFailed.

    Example: svtminion --status
    """
    try:
        settings = load_settings()
    except (ValidationError, yaml.YAMLError) as exc:
        _error(f"invalid settings: {exc}", None)
        sys.exit(EXIT_FAILURE)

    log_file = setup_logging(settings.layout.log_dir, verbose=verbose, debug=debug)
    logger.info("svtminion %s: run started", __version__)

    ctx = LifecycleContext.at_startup(settings.layout)
    cleanup = CleanupHandler(ctx, settings)
    with cleanup.guard():
        code = dispatch(
            ctx, settings, log_file,
            status_chk=status_chk, depends=depends, install=install, remove=remove,
        )

    if code is None:
        click.echo(click.get_current_context().get_help())
        code = EXIT_FAILURE

    logger.info("svtminion: run finished with exit code %d", code)
    sys.exit(code)


if __name__ == "__main__":
    main()
