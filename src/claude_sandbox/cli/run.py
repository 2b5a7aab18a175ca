"""Run operations for claude-sandbox.

Handles the interactive session: pre-flight checks, credential lookup,
container execution and exit diagnostics.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from ..constants import EXIT_INTERRUPTED, IMAGE_NAME, MAX_MEMORY_GB, TOKEN_ENV_VAR
from ..container import (
    check_container_available,
    get_container_name,
    get_run_cmd,
    image_exists,
    normalize_exit_status,
)
from ..errors import ImageNotFoundError
from ..logging import get_logger, secret_filter
from ..session import ContainerSession
from .utils import console

if TYPE_CHECKING:
    from ..container import CommandExecutor
    from ..credentials import CredentialStore
    from ..paths import ProjectConfig
    from ..run_config import RunSettings

logger = get_logger(__name__)


def diagnose_container_failure(returncode: int, settings: RunSettings) -> None:
    """Print actionable feedback for a non-zero session exit.

    Args:
        returncode: Exit status of the container runtime.
        settings: Resource bounds the session ran with.
    """
    if returncode == 137:
        console.print("[yellow]Container was killed (out of memory or manual stop)[/yellow]")
        if settings.memory_gb < MAX_MEMORY_GB:
            console.print(f"[dim]Try: claude-sandbox run --memory {MAX_MEMORY_GB}[/dim]")
        return
    if returncode == 139:
        console.print("[yellow]Container crashed (segmentation fault)[/yellow]")
        return
    if returncode == 143:
        console.print("[dim]Container terminated by signal[/dim]")
        return
    console.print(f"[yellow]Container exited with code {returncode}[/yellow]")


def run_session(
    project: ProjectConfig,
    settings: RunSettings,
    credentials: CredentialStore,
    executor: CommandExecutor,
    *,
    tty: bool | None = None,
) -> int:
    """Run Claude Code in a fresh container and block until it exits.

    Every check that can fail happens before the runtime is asked to start
    anything; once started, the container is deleted however the session ends.

    Args:
        project: Initialized project to mount.
        settings: Resource bounds (validated here).
        credentials: Store to read the OAuth token from.
        executor: Runs the container CLI.
        tty: Allocate a terminal; defaults to whether stdin is a terminal.

    Returns:
        Exit status of the container runtime (130 if interrupted). A runtime
        killed by signal N reports 128+N.

    Raises:
        InvalidResourceParameterError: If settings are out of range.
        NotInitializedError: If init has not been run.
        ExternalToolUnavailableError: If the container CLI is unavailable.
        ImageNotFoundError: If build has not been run.
        CredentialNotFoundError: If no token is stored.
        CredentialStoreUnavailableError: If the store cannot be queried.
    """
    settings.validate()
    project.require_initialized()
    check_container_available(executor)

    if not image_exists(executor):
        raise ImageNotFoundError(
            f"Image '{IMAGE_NAME}' not found.\n"
            "Run 'claude-sandbox build' first to build the image."
        )

    token = credentials.fetch_token()

    if tty is None:
        tty = sys.stdin.isatty()
    name = get_container_name(project)
    cmd = get_run_cmd(project, settings, name, tty=tty)
    logger.debug("exec: %s (%s passed via environment)", " ".join(cmd), TOKEN_ENV_VAR)
    logger.debug("Running with cpus=%d, memory=%s", settings.cpus, settings.memory_flag)

    secret_filter.add(token)
    try:
        with ContainerSession(executor, cmd, name=name, env={TOKEN_ENV_VAR: token}) as session:
            try:
                return normalize_exit_status(session.wait())
            except KeyboardInterrupt:
                return EXIT_INTERRUPTED
    finally:
        secret_filter.discard(token)
