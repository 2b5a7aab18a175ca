"""CLI package for claude-sandbox.

This package contains the CLI commands and supporting modules:
- commands: Click command definitions (this module)
- build: Image building
- run: Container session execution
- utils: Console, error reporting, injectable services
"""

from __future__ import annotations

import sys

import click

from .. import __version__
from ..constants import (
    DEFAULT_CPUS,
    DEFAULT_MEMORY_GB,
    EXIT_INTERRUPTED,
    MAX_CPUS,
    MAX_MEMORY_GB,
    MIN_CPUS,
    MIN_MEMORY_GB,
    SANDBOX_DIR,
)
from ..errors import SandboxError
from ..generator import materialize
from ..logging import get_logger, set_debug
from ..paths import ProjectConfig
from ..run_config import RunSettings
from .build import build_image
from .run import diagnose_container_failure, run_session
from .utils import Services, abort, console

logger = get_logger(__name__)

__all__ = ["cli", "Services"]


@click.group()
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging")
@click.version_option(version=__version__, prog_name="claude-sandbox")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """claude-sandbox - Launch Claude Code in a sandboxed Apple container VM.

    Run 'claude-sandbox init', then 'build', then 'run' in a project directory.
    """
    if debug:
        set_debug(True)
    if ctx.obj is None:
        ctx.obj = Services()


@cli.command()
@click.option("--force", "-f", is_flag=True, help=f"Overwrite existing files in {SANDBOX_DIR}/")
def init(force: bool) -> None:
    """Initialize workspace with default Containerfile."""
    project = ProjectConfig.locate()
    try:
        materialize(project, force=force)
    except SandboxError as e:
        abort(e)
    console.print(f"[green]✓ Initialized workspace in {SANDBOX_DIR}/[/green]")
    console.print("[dim]Next: claude-sandbox build[/dim]")


@cli.command()
@click.pass_obj
def build(services: Services) -> None:
    """Build container image from the workspace Containerfile."""
    project = ProjectConfig.locate()
    try:
        build_image(project, services.executor)
    except SandboxError as e:
        abort(e)


@cli.command()
@click.option(
    "--cpus",
    type=int,
    default=DEFAULT_CPUS,
    show_default=True,
    help=f"Number of CPUs ({MIN_CPUS}-{MAX_CPUS})",
)
@click.option(
    "--memory",
    type=int,
    default=DEFAULT_MEMORY_GB,
    show_default=True,
    help=f"Memory in GB ({MIN_MEMORY_GB}-{MAX_MEMORY_GB})",
)
@click.pass_obj
def run(services: Services, cpus: int, memory: int) -> None:
    """Run Claude Code in the container."""
    settings = RunSettings.from_cli(cpus=cpus, memory=memory)
    project = ProjectConfig.locate()
    try:
        returncode = run_session(project, settings, services.credentials, services.executor)
    except SandboxError as e:
        abort(e)

    if returncode == EXIT_INTERRUPTED:
        console.print("[dim]Session interrupted[/dim]")
    elif returncode != 0:
        diagnose_container_failure(returncode, settings)
    sys.exit(returncode)


if __name__ == "__main__":  # pragma: no cover
    cli()
